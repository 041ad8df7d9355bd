"""
Crawler detection.

Two signals identify a crawler, checked in order:
    1. the ``_escaped_fragment_`` query parameter, sent by search engines
       that follow the AJAX crawling scheme (Google, Bing, Yahoo among
       others), whatever its value;
    2. a configured substring in the User-Agent header.
"""

from prerender.options import PrerenderOptions
from prerender.request import IncomingRequest, get_header

ESCAPED_FRAGMENT = "_escaped_fragment_"


def is_crawler(request: IncomingRequest, options: PrerenderOptions) -> bool:
    query_params = request.query_params
    if query_params is not None and ESCAPED_FRAGMENT in query_params:
        return True

    user_agent = (get_header(request, "user-agent") or "").lower()
    if not user_agent:
        return False

    for crawler_user_agent in options.crawler_user_agents:
        if crawler_user_agent.lower() in user_agent:
            return True

    return False
