import logging
from typing import Optional

import httpx
from opentelemetry import trace
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from prerender.errors import HookFailure, TransportFailure
from prerender.events import PassThrough, PrerenderHooks
from prerender.options import PrerenderOptions
from prerender.pipeline import ClientFactory, PrerenderPipeline
from prerender.request import StarletteIncomingRequest
from prerender.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from prerender.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# httpx hands us the decoded body, so the encoding and length no longer apply
BODY_HEADERS = {"content-encoding", "content-length"}


def to_starlette_response(response: httpx.Response) -> Response:
    """Turn the rendering service response into the response sent to the crawler."""
    result = Response(content=response.content, status_code=response.status_code)
    for name, value in response.headers.multi_items():
        name_lower = name.lower()
        if name_lower in HOP_BY_HOP_HEADERS or name_lower in BODY_HEADERS:
            continue
        result.headers.append(name, value)
    return result


class PrerenderMiddleware:
    """
    ASGI middleware serving prerendered pages to crawlers.

    Requests the classifier rejects go straight to the wrapped application.
    When fetching the prerendered page fails (transport error or a hook
    raising) the application handles the request as if the middleware was
    not there.
    """

    def __init__(
        self,
        app: ASGIApp,
        options: Optional[PrerenderOptions] = None,
        hooks: Optional[PrerenderHooks] = None,
        client: Optional[httpx.AsyncClient] = None,
        client_factory: Optional[ClientFactory] = None,
        pipeline: Optional[PrerenderPipeline] = None,
    ) -> None:
        self.app = app
        if pipeline is None:
            pipeline = PrerenderPipeline(
                options or PrerenderOptions.from_env(),
                hooks=hooks,
                client=client,
                client_factory=client_factory,
            )
        self.pipeline = pipeline

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = StarletteIncomingRequest(Request(scope, receive))
        if not self.pipeline.should_forward(request):
            await self.app(scope, receive, send)
            return

        outcome = PassThrough()
        with traced_request(
            tracer,
            "prerender",
            request.uri,
            f"[Prerender] Crawler request for {request.uri}",
        ) as span:
            try:
                outcome = await self.pipeline.forward(request)
            except (TransportFailure, HookFailure) as exc:
                span.set_attribute("prerender.outcome", "fallback")
                span.set_attribute("prerender.error", format_exception_message(exc))
                log_exception_with_details(
                    logger,
                    f"[Prerender] Falling back to the application for {request.uri}",
                    exc,
                    level=logging.WARNING,
                )
            else:
                span.set_attribute("prerender.outcome", outcome.tag)
                span.set_attribute("prerender.status_code", outcome.response.status_code)

        if isinstance(outcome, PassThrough):
            await self.app(scope, receive, send)
            return

        response = to_starlette_response(outcome.response)
        await response(scope, receive, send)
