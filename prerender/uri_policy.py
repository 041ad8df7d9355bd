from typing import Optional

from prerender.options import PrerenderOptions


def has_ignored_extension(uri: str, options: PrerenderOptions) -> bool:
    """True when any ignored extension appears anywhere in the URI, query string included."""
    return any(extension in uri for extension in options.ignored_extensions)


def is_whitelisted(uri: str, options: PrerenderOptions) -> bool:
    """
    True when the URI matches at least one whitelist pattern.

    An empty whitelist means "no restriction"; callers check
    ``options.whitelist_patterns`` before asking.
    """
    return any(pattern.search(uri) for pattern in options.whitelist_patterns)


def is_blacklisted(
    uri: str, referer: Optional[str], options: PrerenderOptions
) -> bool:
    """True when any blacklist pattern matches the URI or the referer."""
    for pattern in options.blacklist_patterns:
        if pattern.search(uri):
            return True
        if referer and pattern.search(referer):
            return True
    return False
