"""Default user-agent pattern lists for the album bot heuristic.

Patterns are plain regular expression strings so they can be replaced from a
JSON file (``BOT_RULES_FILE``) without touching code. Case-insensitive
patterns carry an inline ``(?i)`` flag; the rest are matched as written.

JSON override shape::

    {
      "allowed_apps": ["..."],
      "deny": ["..."],
      "mobile_browsers": ["..."],
      "desktop_browsers": ["..."]
    }

Keys left out of the file keep their defaults.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

# Native clients of the mobile app. Checked before the deny list.
ALLOWED_APP_PATTERNS: tuple[str, ...] = (
    r"^\.NET/\d+\.\d+",
    r".NET.*HttpClient",
    r"(?i)Xamarin",
    r"(?i)MAUI",
    r"CFNetwork/\d+\.\d+",
    r"Dalvik/\d+\.\d+",
)

DENY_PATTERNS: tuple[str, ...] = (
    # AI/ML services and APIs
    r"(?i)openai|gpt|claude|anthropic|chatgpt|bard|gemini",
    r"(?i)llm|language.*model|ai.*assistant",
    # Search engine and social crawlers
    r"(?i)googlebot|bingbot|slurp|duckduckbot|baiduspider|yandexbot",
    r"(?i)facebookexternalhit|twitterbot|linkedinbot|whatsapp",
    r"(?i)crawler|spider|scraper|bot|indexer",
    # Security and testing tools
    r"(?i)nmap|sqlmap|nikto|dirb|gobuster|ffuf|burp",
    r"(?i)nuclei|katana|subfinder|httpx|masscan",
    r"(?i)nessus|qualys|rapid7|vulnerability.*scanner",
    # HTTP libraries and automation tools
    r"(?i)curl|wget|python.*requests|urllib|httpie",
    r"(?i)postman|insomnia|paw|restclient",
    r"(?i)selenium|puppeteer|playwright|headless",
    r"(?i)phantom|splash|chrome.*headless|firefox.*headless",
    r"(?i)scrapy|beautiful.*soup|mechanize",
    # Monitoring and uptime services
    r"(?i)pingdom|uptimerobot|statuspage|hetrix.*tools",
    r"(?i)site.*monitor|uptime.*monitor|alertsite",
    # Chat apps and link preview generators
    r"(?i)discordbot|telegrambot|slackbot|msteams",
    r"(?i)preview.*generator|link.*preview|meta.*scraper",
    # Generic automation markers
    r"(?i)automated|script|tool.*\d+",
    r"^[a-z]+/\d+\.\d+$",
)

MOBILE_BROWSER_PATTERNS: tuple[str, ...] = (
    r"(?i)Mobile.*Safari",
    r"(?i)Android.*Chrome",
    r"(?i)iPhone.*Safari",
    r"(?i)iPad.*Safari",
    r"(?i)Mobile.*Firefox",
    r"(?i)Opera.*Mobile",
    r"(?i)Samsung.*Browser",
    r"(?i)Edge.*Mobile",
)

DESKTOP_BROWSER_PATTERNS: tuple[str, ...] = (
    r"(?i)Windows.*Chrome",
    r"(?i)Windows.*Firefox",
    r"(?i)Windows.*Edge",
    r"(?i)Windows.*Safari",
    r"(?i)Macintosh.*Chrome",
    r"(?i)Macintosh.*Firefox",
    r"(?i)Macintosh.*Safari",
    r"(?i)X11.*Chrome",
    r"(?i)X11.*Firefox",
    r"(?i)Linux.*Chrome",
    r"(?i)Linux.*Firefox",
)

_GROUPS = ("allowed_apps", "deny", "mobile_browsers", "desktop_browsers")


def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


@dataclass(frozen=True)
class BotPatternSet:
    """Compiled pattern lists consumed by the bot rules."""

    allowed_apps: tuple[re.Pattern[str], ...] = field(default_factory=lambda: _compile(ALLOWED_APP_PATTERNS))
    deny: tuple[re.Pattern[str], ...] = field(default_factory=lambda: _compile(DENY_PATTERNS))
    mobile_browsers: tuple[re.Pattern[str], ...] = field(default_factory=lambda: _compile(MOBILE_BROWSER_PATTERNS))
    desktop_browsers: tuple[re.Pattern[str], ...] = field(default_factory=lambda: _compile(DESKTOP_BROWSER_PATTERNS))

    @classmethod
    def from_mapping(cls, data: dict[str, list[str]]) -> "BotPatternSet":
        """Build a set from raw pattern strings; missing keys keep defaults.

        Raises:
            ValueError: On unknown keys, non-list values or invalid regexes.
        """
        unknown = set(data) - set(_GROUPS)
        if unknown:
            raise ValueError(f"unknown bot pattern groups: {sorted(unknown)}")

        overrides: dict[str, tuple[re.Pattern[str], ...]] = {}
        for key in _GROUPS:
            if key not in data:
                continue
            patterns = data[key]
            if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
                raise ValueError(f"bot pattern group '{key}' must be a list of strings")
            try:
                overrides[key] = _compile(tuple(patterns))
            except re.error as exc:
                raise ValueError(f"invalid regex in bot pattern group '{key}': {exc}") from exc

        return replace(cls(), **overrides)

    @classmethod
    def from_file(cls, path: str | Path) -> "BotPatternSet":
        with Path(path).open(encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("bot rules file must contain a JSON object")
        return cls.from_mapping(data)
