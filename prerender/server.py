import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import CollectorRegistry, Info
from prometheus_fastapi_instrumentator import Instrumentator

from prerender.events import PrerenderHooks
from prerender.middleware import PrerenderMiddleware
from prerender.options import PrerenderOptions
from prerender.pipeline import PrerenderPipeline
from prerender.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out ASGI body spans.
    Prerendered pages are sent in one chunk, so those spans carry no information.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


_tracing_configured = False


def configure_tracing(app: FastAPI) -> None:
    global _tracing_configured
    if not _tracing_configured:
        trace.set_tracer_provider(
            TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
        )
        if OTLP_ENDPOINT:
            otlp_exporter = OTLPSpanExporter(
                endpoint=OTLP_ENDPOINT,
                headers=OTLP_HEADERS or None,
            )
            trace.get_tracer_provider().add_span_processor(
                BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
            )
        _tracing_configured = True

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls="healthz,metrics",
        server_request_hook=None,
        client_request_hook=None,
    )


def create_app(
    options: Optional[PrerenderOptions] = None,
    hooks: Optional[PrerenderHooks] = None,
    pipeline: Optional[PrerenderPipeline] = None,
) -> FastAPI:
    """
    Build the FastAPI application with the prerender middleware installed.

    The pipeline is built here once. Its HTTP client is created on the first
    crawler request and closed on shutdown.
    """
    if pipeline is None:
        pipeline = PrerenderPipeline(options or PrerenderOptions.from_env(), hooks=hooks)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info(
            f"[Prerender] Forwarding crawler requests to {pipeline.options.prerender_url}"
        )
        yield
        await pipeline.aclose()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(PrerenderMiddleware, pipeline=pipeline)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "prerender_url": pipeline.options.prerender_url}

    # one registry per app, so several apps can live in one process
    registry = CollectorRegistry()
    Instrumentator(registry=registry).instrument(app).expose(app)
    app_info = Info("fastapi_app_info", "Application Info", registry=registry)
    app_info.info({"app_name": SERVICE_NAME})

    configure_tracing(app)
    return app


app = create_app()
