import logging

from prerender.crawler import is_crawler
from prerender.options import PrerenderOptions
from prerender.request import IncomingRequest, get_header, is_http_request
from prerender.uri_policy import has_ignored_extension, is_blacklisted, is_whitelisted

logger = logging.getLogger("uvicorn.error")


def should_forward(request: IncomingRequest, options: PrerenderOptions) -> bool:
    """
    Decide whether the request must be answered by the rendering service.

    Checks run in a fixed order and the first failing one wins: HTTP shape,
    crawler, ignored extension, whitelist, then blacklist as the final
    override.
    """
    if not is_http_request(request):
        logger.debug("[Prerender] Not an HTTP request, passing through")
        return False

    if not is_crawler(request, options):
        return False

    uri = request.uri

    if has_ignored_extension(uri, options):
        logger.debug(f"[Prerender] Ignored extension in {uri}")
        return False

    if options.whitelist_patterns and not is_whitelisted(uri, options):
        logger.debug(f"[Prerender] {uri} is not whitelisted")
        return False

    if options.blacklist_patterns:
        referer = get_header(request, "referer")
        if is_blacklisted(uri, referer, options):
            logger.debug(f"[Prerender] {uri} (referer={referer}) is blacklisted")
            return False

    return True
