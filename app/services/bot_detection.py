"""Heuristic bot detection for the public album endpoint.

The album endpoint has no authentication, so automated clients are filtered
using the signals every request carries: the User-Agent string, the Referer
and a handful of headers that modern browsers always send.

Classification is an ordered list of rules; the first rule whose predicate
matches decides the verdict:

1. absent or too-short User-Agent → bot
2. allow-listed native app client → human (wins over the deny list)
3. deny-listed automation signature → bot
4. mobile browser → human
5. desktop browser → human only with Accept-Language, Sec-Fetch-* and an
   owned (or absent) referer
6. anything else → bot (fail closed)

Unknown but legitimate clients are rejected on purpose: the endpoint has no
other line of defence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping
from urllib.parse import urlsplit

from app.core.config import BotProtectionSettings, settings, split_csv
from app.services.bot_patterns import BotPatternSet

logger = logging.getLogger(__name__)

MIN_USER_AGENT_LENGTH = 10

FETCH_METADATA_HEADERS = ("sec-fetch-site", "sec-fetch-mode", "sec-fetch-dest")

# Partial weights of the analytics score
SCORE_SHORT_USER_AGENT = 0.4
SCORE_DENY_PATTERN = 0.5
SCORE_NO_ACCEPT_LANGUAGE = 0.2
SCORE_NO_SEC_FETCH_SITE = 0.1
SCORE_FOREIGN_REFERER = 0.3


@dataclass(frozen=True)
class BotSignals:
    """Normalized request signals; header names are lower-cased."""

    user_agent: str
    referer: str | None
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        user_agent: str | None,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> "BotSignals":
        normalized = {str(k).lower(): v for k, v in (headers or {}).items() if v}
        return cls(user_agent=user_agent or "", referer=referer or None, headers=normalized)

    def header(self, name: str) -> str | None:
        return self.headers.get(name) or None


@dataclass(frozen=True)
class BotVerdict:
    is_bot: bool
    reason: str


@dataclass(frozen=True)
class BotRule:
    """A predicate and the verdict it produces when it matches."""

    name: str
    matches: Callable[[BotSignals], bool]
    verdict: Callable[[BotSignals], BotVerdict]


def _any_match(patterns: Iterable, text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def referer_hostname(referer: str | None) -> str | None:
    """Hostname of an http(s) referer; ``None`` when absent or unparseable."""

    if not referer:
        return None
    try:
        parts = urlsplit(referer)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https"):
        return None
    return parts.hostname


class BotDetector:
    """Classify requests as automated or human.

    Args:
        patterns: Compiled user-agent pattern lists.
        allowed_referer_domains: Owned domains; subdomains are accepted too.
    """

    def __init__(
        self,
        patterns: BotPatternSet | None = None,
        allowed_referer_domains: Iterable[str] = (),
    ) -> None:
        self.patterns = patterns or BotPatternSet()
        self.allowed_referer_domains = tuple(d.lower() for d in allowed_referer_domains)
        self.rules: tuple[BotRule, ...] = self._build_rules()

    @classmethod
    def from_settings(cls, bot_settings: BotProtectionSettings | None = None) -> "BotDetector":
        cfg = bot_settings or settings.bot
        patterns = BotPatternSet.from_file(cfg.rules_file) if cfg.rules_file else BotPatternSet()
        return cls(
            patterns=patterns,
            allowed_referer_domains=split_csv(cfg.allowed_referer_domains),
        )

    def _build_rules(self) -> tuple[BotRule, ...]:
        p = self.patterns
        return (
            BotRule(
                "short-user-agent",
                lambda s: len(s.user_agent) < MIN_USER_AGENT_LENGTH,
                lambda s: BotVerdict(True, "short-user-agent"),
            ),
            BotRule(
                "allowed-app",
                lambda s: _any_match(p.allowed_apps, s.user_agent),
                lambda s: BotVerdict(False, "allowed-app"),
            ),
            BotRule(
                "deny-pattern",
                lambda s: _any_match(p.deny, s.user_agent),
                lambda s: BotVerdict(True, "deny-pattern"),
            ),
            BotRule(
                "mobile-browser",
                lambda s: _any_match(p.mobile_browsers, s.user_agent),
                lambda s: BotVerdict(False, "mobile-browser"),
            ),
            BotRule(
                "desktop-browser",
                lambda s: _any_match(p.desktop_browsers, s.user_agent),
                self._validate_desktop_browser,
            ),
        )

    def is_allowed_referer_host(self, hostname: str) -> bool:
        host = hostname.lower()
        return any(host == domain or host.endswith("." + domain) for domain in self.allowed_referer_domains)

    def has_foreign_referer(self, referer: str | None) -> bool:
        """True when the referer is an http(s) URL outside the owned domains."""

        hostname = referer_hostname(referer)
        return hostname is not None and not self.is_allowed_referer_host(hostname)

    def _validate_desktop_browser(self, signals: BotSignals) -> BotVerdict:
        if not signals.header("accept-language"):
            return BotVerdict(True, "missing-accept-language")
        if not any(signals.header(name) for name in FETCH_METADATA_HEADERS):
            return BotVerdict(True, "missing-fetch-metadata")
        if self.has_foreign_referer(signals.referer):
            return BotVerdict(True, "foreign-referer")
        return BotVerdict(False, "desktop-browser")

    def classify(
        self,
        user_agent: str | None,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> BotVerdict:
        """Run the rules in order and return the first verdict.

        Never raises: a failing rule is logged and the request is treated
        as a bot.
        """
        signals = BotSignals.build(user_agent, referer, headers)
        try:
            for rule in self.rules:
                if rule.matches(signals):
                    return rule.verdict(signals)
        except Exception:  # noqa: BLE001
            logger.exception("bot_detection.rule_failed")
            return BotVerdict(True, "rule-error")
        return BotVerdict(True, "unrecognized-client")

    def is_bot(
        self,
        user_agent: str | None,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> bool:
        return self.classify(user_agent, referer, headers).is_bot

    def album_verdict(
        self,
        user_agent: str | None,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        strict_referer: bool = False,
    ) -> BotVerdict:
        """Verdict for an album read.

        With ``strict_referer`` a foreign referer rejects every client class,
        not only desktop browsers.
        """
        verdict = self.classify(user_agent, referer, headers)
        if strict_referer and not verdict.is_bot and self.has_foreign_referer(referer):
            return BotVerdict(True, "foreign-referer")
        return verdict

    def validate_album_access(
        self,
        user_agent: str | None,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> bool:
        """Stricter album check: not a bot, and no foreign referer for any client."""

        return not self.album_verdict(user_agent, referer, headers, strict_referer=True).is_bot


    def score(
        self,
        user_agent: str | None,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> float:
        """Bot likelihood in [0, 1] for analytics (0 = human, 1 = bot).

        Not used for admission decisions.
        """
        signals = BotSignals.build(user_agent, referer, headers)
        total = 0.0

        if len(signals.user_agent) < MIN_USER_AGENT_LENGTH:
            total += SCORE_SHORT_USER_AGENT
        if _any_match(self.patterns.deny, signals.user_agent):
            total += SCORE_DENY_PATTERN
        if not signals.header("accept-language"):
            total += SCORE_NO_ACCEPT_LANGUAGE
        if not signals.header("sec-fetch-site"):
            total += SCORE_NO_SEC_FETCH_SITE
        if self.has_foreign_referer(signals.referer):
            total += SCORE_FOREIGN_REFERER

        return min(round(total, 4), 1.0)
