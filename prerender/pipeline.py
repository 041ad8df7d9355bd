import inspect
import logging
from typing import Callable, Optional

import httpx

from prerender.classifier import should_forward
from prerender.errors import HookFailure, TransportFailure
from prerender.events import (
    ExtensionEvent,
    ForwardOutcome,
    Forwarded,
    HookResult,
    PassThrough,
    PrerenderHooks,
    ShortCircuited,
)
from prerender.options import PrerenderOptions
from prerender.request import IncomingRequest, get_header
from prerender.utils import mask_token
from prerender.utils.exception_logging import log_exception_with_details

logger = logging.getLogger("uvicorn.error")

TOKEN_HEADER = "X-Prerender-Token"

ClientFactory = Callable[[PrerenderOptions], httpx.AsyncClient]


def default_client_factory(options: PrerenderOptions) -> httpx.AsyncClient:
    """Build the outbound client from the opaque transport options."""
    return httpx.AsyncClient(**options.http_client_options)


def build_prerender_url(options: PrerenderOptions, uri: str) -> str:
    """
    Join the rendering service base URL and the original request URI.

    The URI is kept as-is (casing, encoding, query string); only a single
    leading slash is folded into the separator so "/products?id=5" and
    "http://site/products" both end up one slash after the base.
    """
    if uri.startswith("/"):
        uri = uri[1:]
    return f"{options.prerender_url}/{uri}"


def build_prerender_headers(
    options: PrerenderOptions, request: IncomingRequest
) -> dict[str, str]:
    headers = {
        "User-Agent": get_header(request, "user-agent") or "",
        "Accept-Encoding": "gzip",
    }
    if options.prerender_token:
        headers[TOKEN_HEADER] = options.prerender_token
    return headers


class PrerenderPipeline:
    """
    Classifies requests and fetches prerendered pages for crawlers.

    The HTTP client is created once, on first use, by ``client_factory`` or
    ``default_client_factory``. An injected ``client`` is owned by the
    caller and is not closed by ``aclose``.
    """

    def __init__(
        self,
        options: PrerenderOptions,
        hooks: Optional[PrerenderHooks] = None,
        client: Optional[httpx.AsyncClient] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.options = options
        self.hooks = hooks or PrerenderHooks()
        self._owns_client = client is None
        self._client = client
        self._client_factory = client_factory or default_client_factory

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = self._client_factory(self.options)
        return self._client

    def should_forward(self, request: IncomingRequest) -> bool:
        return should_forward(request, self.options)

    async def handle(self, request: IncomingRequest) -> ForwardOutcome:
        if not self.should_forward(request):
            return PassThrough()
        return await self.forward(request)

    async def forward(self, request: IncomingRequest) -> ForwardOutcome:
        pre_event = ExtensionEvent(request)
        cached = await self._run_hook("pre_fetch", self.hooks.on_pre_fetch, pre_event)
        if cached is not None:
            logger.info(f"[Prerender] Pre-fetch hook answered {request.uri}")
            return ShortCircuited(cached)

        outbound_request, response = await self._fetch(
            build_prerender_url(self.options, request.uri),
            build_prerender_headers(self.options, request),
        )

        post_event = ExtensionEvent(
            request, outbound_request=outbound_request, response=response
        )
        replaced = await self._run_hook(
            "post_fetch", self.hooks.on_post_fetch, post_event
        )
        return Forwarded(replaced if replaced is not None else response)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    async def _fetch(
        self, url: str, headers: dict[str, str]
    ) -> tuple[httpx.Request, httpx.Response]:
        logger.info(f"[Prerender] GET {url}")
        try:
            outbound_request = self.client.build_request("GET", url, headers=headers)
        except httpx.InvalidURL as exc:
            raise TransportFailure(url, f"Invalid prerender URL {url}: {exc}") from exc
        logger.debug(
            mask_token(
                f"[Prerender] Outbound headers: {dict(outbound_request.headers)}",
                self.options.prerender_token,
            )
        )
        try:
            response = await self.client.send(outbound_request)
        except httpx.TimeoutException as exc:
            logger.error(f"[Prerender] Timeout fetching {url}: {exc}")
            raise TransportFailure(url, f"Timeout fetching {url}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log_exception_with_details(logger, f"[Prerender] GET {url}", exc)
            raise TransportFailure(url, f"Failed to fetch {url}: {exc}") from exc
        logger.debug(
            f"[Prerender] {url} answered {response.status_code} "
            f"({len(response.content)} bytes)"
        )
        return outbound_request, response

    async def _run_hook(
        self,
        stage: str,
        hook: Callable[[ExtensionEvent], HookResult],
        event: ExtensionEvent,
    ) -> Optional[httpx.Response]:
        try:
            result = hook(event)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            log_exception_with_details(logger, f"[Prerender] {stage} hook", exc)
            raise HookFailure(stage, f"Prerender {stage} hook failed: {exc}") from exc

        if result is not None:
            event.set_response(result)
        return event.response if event.has_new_response else None
