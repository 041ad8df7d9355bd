import re
from typing import Mapping, Optional, Protocol, runtime_checkable

from starlette.requests import Request

# RFC 9110 method token, extension methods included
METHOD_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


@runtime_checkable
class IncomingRequest(Protocol):
    """Read-only view of an inbound request, as seen by the classifier."""

    @property
    def method(self) -> str: ...

    @property
    def uri(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def query_params(self) -> Mapping[str, str]: ...


class StarletteIncomingRequest:
    """Adapts a Starlette request to IncomingRequest."""

    __slots__ = ("_request",)

    def __init__(self, request: Request):
        self._request = request

    @property
    def method(self) -> str:
        return self._request.method

    @property
    def uri(self) -> str:
        # rebuilt from raw_path; scope["path"] is already percent-decoded
        scope = self._request.scope
        scheme = scope.get("scheme", "http")
        host = self._request.headers.get("host")
        if not host:
            server = scope.get("server")
            host = f"{server[0]}:{server[1]}" if server else ""

        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.split(b"?", 1)[0].decode("latin-1")
        else:
            path = scope.get("path", "")
        root_path = scope.get("root_path", "")
        if root_path and not path.startswith(root_path):
            path = root_path + path

        uri = f"{scheme}://{host}{path}" if host else path
        query_string = scope.get("query_string", b"")
        if query_string:
            uri = f"{uri}?{query_string.decode('latin-1')}"
        return uri

    @property
    def headers(self) -> Mapping[str, str]:
        # starlette Headers are immutable and case-insensitive
        return self._request.headers

    @property
    def query_params(self) -> Mapping[str, str]:
        # keep_blank_values, so "?_escaped_fragment_=" is still a key
        return self._request.query_params

    def __repr__(self) -> str:
        return f"StarletteIncomingRequest({self.method} {self.uri})"


def get_header(request: IncomingRequest, name: str) -> Optional[str]:
    headers = request.headers
    if headers is None:
        return None
    value = headers.get(name)
    if value is None and not hasattr(headers, "getlist"):
        # plain dicts are case-sensitive; fall back to a scan
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


def is_http_request(request: object) -> bool:
    """Whether the request carries a usable HTTP method and URI."""
    method = getattr(request, "method", None)
    uri = getattr(request, "uri", None)
    if not isinstance(method, str) or not METHOD_TOKEN.fullmatch(method):
        return False
    return isinstance(uri, str) and bool(uri)
