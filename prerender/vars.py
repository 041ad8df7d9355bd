import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "prerender-bridge")

PRERENDER_URL = os.environ.get("PRERENDER_URL", "http://service.prerender.io")
PRERENDER_TOKEN = os.environ.get("PRERENDER_TOKEN", "")
PRERENDER_TIMEOUT = float(os.environ.get("PRERENDER_TIMEOUT", "30"))
PRERENDER_VERIFY_SSL = os.getenv("PRERENDER_VERIFY_SSL", "true").lower() == "true"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")


def _parse_list(raw: str | None) -> list[str] | None:
    """Split a comma separated env value; None when the variable is unset."""
    if raw is None:
        return None
    return [entry.strip() for entry in raw.split(",") if entry.strip()]


PRERENDER_CRAWLER_USER_AGENTS = _parse_list(
    os.environ.get("PRERENDER_CRAWLER_USER_AGENTS")
)
PRERENDER_IGNORED_EXTENSIONS = _parse_list(
    os.environ.get("PRERENDER_IGNORED_EXTENSIONS")
)
PRERENDER_WHITELIST_URLS = _parse_list(os.environ.get("PRERENDER_WHITELIST_URLS")) or []
PRERENDER_BLACKLIST_URLS = _parse_list(os.environ.get("PRERENDER_BLACKLIST_URLS")) or []
