from typing import Optional


class PrerenderError(Exception):
    """Base class for every error raised by the prerender bridge."""


class InvalidPatternError(PrerenderError, ValueError):
    """A whitelist or blacklist entry is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid URL pattern {pattern!r}: {reason}")


class TransportFailure(PrerenderError):
    """The request to the rendering service could not be completed."""

    def __init__(self, url: str, message: Optional[str] = None):
        self.url = url
        super().__init__(message or f"Failed to fetch prerendered page from {url}")


class HookFailure(PrerenderError):
    """A pre-fetch or post-fetch hook raised."""

    def __init__(self, stage: str, message: Optional[str] = None):
        self.stage = stage
        super().__init__(message or f"Prerender {stage} hook failed")
