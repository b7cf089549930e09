"""Tests for the album bot heuristic."""

import pytest

from app.services.bot_detection import BotDetector, BotVerdict, referer_hostname
from app.services.bot_patterns import BotPatternSet

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MAC_SAFARI_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
BROWSER_HEADERS = {"accept-language": "en-US", "sec-fetch-site": "same-origin"}


@pytest.fixture
def detector() -> BotDetector:
    return BotDetector(allowed_referer_domains=["memorylocks.com", "localhost"])


class TestClassify:
    @pytest.mark.parametrize("user_agent", [None, "", "Mozilla"])
    def test_missing_or_short_user_agent_is_bot(self, detector: BotDetector, user_agent) -> None:
        verdict = detector.classify(user_agent, None, BROWSER_HEADERS)

        assert verdict.is_bot is True
        assert verdict.reason == "short-user-agent"

    @pytest.mark.parametrize(
        "user_agent",
        [
            "MemoryLocks/3 CFNetwork/1410.0.3 Darwin/22.6.0",
            "Dalvik/2.1.0 (Linux; U; Android 14; Pixel 8)",
            ".NET/8.0 (MemoryLocks.Mobile)",
            "Microsoft.Maui client 1.0",
        ],
    )
    def test_native_app_clients_are_human(self, detector: BotDetector, user_agent: str) -> None:
        verdict = detector.classify(user_agent, None, {})

        assert verdict.is_bot is False
        assert verdict.reason == "allowed-app"

    def test_allow_list_wins_over_deny_list(self, detector: BotDetector) -> None:
        # "bot" appears in the UA but the native client signature comes first
        verdict = detector.classify("RobotApp CFNetwork/1410.0.3 Darwin/22.6.0", None, {})

        assert verdict.is_bot is False

    @pytest.mark.parametrize(
        "user_agent",
        [
            "curl/8.4.0",
            "python-requests/2.31.0",
            "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
            "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0)",
            "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)",
            "Mozilla/5.0 (X11; Linux x86_64) HeadlessChrome/120.0.0.0 Safari/537.36",
            "PostmanRuntime/7.36.0",
            "sqlmap/1.7.2#stable (https://sqlmap.org)",
            "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile Safari Slackbot",
        ],
    )
    def test_automation_signatures_are_bots(self, detector: BotDetector, user_agent: str) -> None:
        verdict = detector.classify(user_agent, None, BROWSER_HEADERS)

        assert verdict.is_bot is True
        assert verdict.reason == "deny-pattern"

    @pytest.mark.parametrize("user_agent", [IPHONE_UA, ANDROID_UA])
    def test_mobile_browsers_are_human_without_extra_headers(self, detector: BotDetector, user_agent: str) -> None:
        verdict = detector.classify(user_agent, "https://evil.example/", {})

        assert verdict.is_bot is False
        assert verdict.reason == "mobile-browser"

    @pytest.mark.parametrize("user_agent", [DESKTOP_UA, MAC_SAFARI_UA])
    def test_desktop_browser_with_browser_headers_is_human(self, detector: BotDetector, user_agent: str) -> None:
        verdict = detector.classify(user_agent, None, BROWSER_HEADERS)

        assert verdict.is_bot is False
        assert verdict.reason == "desktop-browser"

    def test_desktop_browser_without_accept_language_is_bot(self, detector: BotDetector) -> None:
        verdict = detector.classify(DESKTOP_UA, None, {"sec-fetch-site": "none"})

        assert verdict.reason == "missing-accept-language"
        assert verdict.is_bot is True

    def test_desktop_browser_without_fetch_metadata_is_bot(self, detector: BotDetector) -> None:
        verdict = detector.classify(DESKTOP_UA, None, {"accept-language": "en"})

        assert verdict.reason == "missing-fetch-metadata"

    def test_any_fetch_metadata_header_is_enough(self, detector: BotDetector) -> None:
        headers = {"accept-language": "en", "sec-fetch-dest": "document"}

        assert detector.is_bot(DESKTOP_UA, None, headers) is False

    def test_empty_header_values_count_as_missing(self, detector: BotDetector) -> None:
        headers = {"accept-language": "", "sec-fetch-site": "same-origin"}

        assert detector.classify(DESKTOP_UA, None, headers).reason == "missing-accept-language"

    def test_header_names_are_case_insensitive(self, detector: BotDetector) -> None:
        headers = {"Accept-Language": "en", "SEC-FETCH-MODE": "navigate"}

        assert detector.is_bot(DESKTOP_UA, None, headers) is False

    @pytest.mark.parametrize(
        ("referer", "is_bot"),
        [
            ("https://memorylocks.com/album/x", False),
            ("https://album.memorylocks.com/abc", False),
            ("http://localhost:5173/", False),
            ("https://evil.example/", True),
            ("https://notmemorylocks.com/", True),
            ("android-app://com.google.android.gm/", False),
            ("not a url", False),
        ],
    )
    def test_desktop_referer_must_be_owned(self, detector: BotDetector, referer: str, is_bot: bool) -> None:
        assert detector.is_bot(DESKTOP_UA, referer, BROWSER_HEADERS) is is_bot

    def test_unrecognized_client_fails_closed(self, detector: BotDetector) -> None:
        verdict = detector.classify("SomeUnknownClient 1", None, BROWSER_HEADERS)

        assert verdict.is_bot is True
        assert verdict.reason == "unrecognized-client"

    def test_failing_rule_is_treated_as_bot(self) -> None:
        class ExplodingPattern:
            def search(self, text: str):
                raise RuntimeError("boom")

        patterns = BotPatternSet(allowed_apps=(ExplodingPattern(),))
        verdict = BotDetector(patterns=patterns).classify(DESKTOP_UA, None, BROWSER_HEADERS)

        assert verdict.is_bot is True
        assert verdict.reason == "rule-error"


class TestValidateAlbumAccess:
    def test_rejects_foreign_referer_for_mobile(self, detector: BotDetector) -> None:
        assert detector.validate_album_access(IPHONE_UA, "https://evil.example/", {}) is False

    def test_accepts_owned_or_absent_referer(self, detector: BotDetector) -> None:
        assert detector.validate_album_access(IPHONE_UA, None, {}) is True
        assert detector.validate_album_access(IPHONE_UA, "https://memorylocks.com/", {}) is True

    def test_rejects_bots(self, detector: BotDetector) -> None:
        assert detector.validate_album_access("curl/8.4.0", None, {}) is False

    def test_strict_verdict_names_the_foreign_referer(self, detector: BotDetector) -> None:
        verdict = detector.album_verdict(IPHONE_UA, "https://evil.example/", {}, strict_referer=True)

        assert verdict == BotVerdict(True, "foreign-referer")

    def test_lenient_verdict_is_the_classifier_verdict(self, detector: BotDetector) -> None:
        assert detector.album_verdict(IPHONE_UA, "https://evil.example/", {}) == BotVerdict(False, "mobile-browser")
        assert detector.album_verdict("curl/8.4.0", None, {}, strict_referer=True).reason == "deny-pattern"


class TestScore:
    def test_clean_browser_scores_zero(self, detector: BotDetector) -> None:
        assert detector.score(DESKTOP_UA, "https://memorylocks.com/", BROWSER_HEADERS) == 0.0

    def test_partial_weights_add_up(self, detector: BotDetector) -> None:
        # no accept-language (0.2) + no sec-fetch-site (0.1)
        assert detector.score(DESKTOP_UA, None, {}) == pytest.approx(0.3)

    def test_foreign_referer_weight(self, detector: BotDetector) -> None:
        assert detector.score(DESKTOP_UA, "https://evil.example/", BROWSER_HEADERS) == pytest.approx(0.3)

    def test_score_is_clamped_to_one(self, detector: BotDetector) -> None:
        # short UA 0.4 + deny 0.5 + headers 0.3 + foreign referer 0.3 = 1.5
        assert detector.score("curl/8", "https://evil.example/", {}) == 1.0

    def test_score_never_decides(self, detector: BotDetector) -> None:
        # a mobile browser without headers still scores but is admitted
        assert detector.score(IPHONE_UA, None, {}) > 0
        assert detector.is_bot(IPHONE_UA, None, {}) is False


@pytest.mark.parametrize(
    ("referer", "hostname"),
    [
        ("https://Memorylocks.com/path", "memorylocks.com"),
        ("http://127.0.0.1:8000/", "127.0.0.1"),
        ("ftp://memorylocks.com/", None),
        ("", None),
        (None, None),
    ],
)
def test_referer_hostname(referer, hostname) -> None:
    assert referer_hostname(referer) == hostname


def test_from_settings_uses_owned_domains() -> None:
    from app.core.config import BotProtectionSettings

    detector = BotDetector.from_settings(BotProtectionSettings(allowed_referer_domains="example.org"))

    assert detector.allowed_referer_domains == ("example.org",)
    assert detector.has_foreign_referer("https://memorylocks.com/") is True
    assert detector.has_foreign_referer("https://www.example.org/") is False
