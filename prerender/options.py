import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Pattern, Sequence

import httpx

from prerender import vars as env
from prerender.errors import InvalidPatternError

DEFAULT_PRERENDER_URL = "http://service.prerender.io"

DEFAULT_CRAWLER_USER_AGENTS = (
    "googlebot",
    "yahoo",
    "bingbot",
    "baiduspider",
    "facebookexternalhit",
    "twitterbot",
    "rogerbot",
    "linkedinbot",
    "embedly",
    "quora link preview",
    "showyoubot",
    "outbrain",
    "pinterest",
    "developers.google.com/+/web/snippet",
    "slackbot",
    "vkshare",
    "w3c_validator",
    "redditbot",
    "applebot",
    "whatsapp",
    "flipboard",
    "tumblr",
    "bitlybot",
    "skypeuripreview",
    "nuzzel",
    "discordbot",
    "google page speed",
    "qwantify",
)

DEFAULT_IGNORED_EXTENSIONS = (
    ".js",
    ".css",
    ".xml",
    ".less",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".pdf",
    ".doc",
    ".txt",
    ".ico",
    ".rss",
    ".zip",
    ".mp3",
    ".rar",
    ".exe",
    ".wmv",
    ".avi",
    ".ppt",
    ".mpg",
    ".mpeg",
    ".tif",
    ".wav",
    ".mov",
    ".psd",
    ".ai",
    ".xls",
    ".mp4",
    ".m4a",
    ".swf",
    ".dat",
    ".dmg",
    ".iso",
    ".flv",
    ".m4v",
    ".torrent",
)


def _compile_patterns(patterns: Sequence[str]) -> tuple[Pattern[str], ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as exc:
            raise InvalidPatternError(pattern, str(exc)) from exc
    return tuple(compiled)


@dataclass(frozen=True)
class PrerenderOptions:
    """
    Immutable configuration of the prerender bridge.

    Whitelist and blacklist entries are compiled once, here, so that an
    invalid expression fails when the configuration is loaded instead of on
    the first crawler request.
    """

    prerender_url: str = DEFAULT_PRERENDER_URL
    prerender_token: Optional[str] = None
    crawler_user_agents: Sequence[str] = DEFAULT_CRAWLER_USER_AGENTS
    ignored_extensions: Sequence[str] = DEFAULT_IGNORED_EXTENSIONS
    whitelist_urls: Sequence[str] = ()
    blacklist_urls: Sequence[str] = ()
    http_client_options: Mapping[str, Any] = field(default_factory=dict, hash=False)

    whitelist_patterns: tuple[Pattern[str], ...] = field(
        init=False, repr=False, compare=False
    )
    blacklist_patterns: tuple[Pattern[str], ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if not self.prerender_url:
            raise ValueError("prerender_url is required")

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "prerender_url", self.prerender_url.rstrip("/"))
        object.__setattr__(self, "prerender_token", self.prerender_token or None)
        object.__setattr__(self, "crawler_user_agents", tuple(self.crawler_user_agents))
        object.__setattr__(self, "ignored_extensions", tuple(self.ignored_extensions))
        object.__setattr__(self, "whitelist_urls", tuple(self.whitelist_urls))
        object.__setattr__(self, "blacklist_urls", tuple(self.blacklist_urls))
        object.__setattr__(
            self,
            "http_client_options",
            MappingProxyType(dict(self.http_client_options or {})),
        )
        object.__setattr__(
            self, "whitelist_patterns", _compile_patterns(self.whitelist_urls)
        )
        object.__setattr__(
            self, "blacklist_patterns", _compile_patterns(self.blacklist_urls)
        )

    @classmethod
    def from_env(cls) -> "PrerenderOptions":
        """Build options from the PRERENDER_* environment variables."""
        kwargs: dict[str, Any] = {
            "prerender_url": env.PRERENDER_URL or DEFAULT_PRERENDER_URL,
            "prerender_token": env.PRERENDER_TOKEN or None,
            "whitelist_urls": env.PRERENDER_WHITELIST_URLS,
            "blacklist_urls": env.PRERENDER_BLACKLIST_URLS,
            "http_client_options": {
                "timeout": httpx.Timeout(env.PRERENDER_TIMEOUT),
                "verify": env.PRERENDER_VERIFY_SSL,
            },
        }
        if env.PRERENDER_CRAWLER_USER_AGENTS is not None:
            kwargs["crawler_user_agents"] = env.PRERENDER_CRAWLER_USER_AGENTS
        if env.PRERENDER_IGNORED_EXTENSIONS is not None:
            kwargs["ignored_extensions"] = env.PRERENDER_IGNORED_EXTENSIONS
        return cls(**kwargs)
