from typing import Mapping, Optional
from urllib.parse import urlsplit

from starlette.datastructures import Headers, QueryParams


class FakeIncomingRequest:
    """IncomingRequest built from a URI and a header dict, for unit tests."""

    def __init__(
        self,
        uri: str = "http://example.com/",
        user_agent: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        method: str = "GET",
    ):
        raw_headers = dict(headers or {})
        if user_agent is not None:
            raw_headers["User-Agent"] = user_agent
        self.method = method
        self.uri = uri
        self.headers = Headers(headers=raw_headers)
        self.query_params = QueryParams(urlsplit(uri).query)


GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
BROWSER = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
