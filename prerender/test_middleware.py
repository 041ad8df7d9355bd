import gzip

import httpx
import pytest
from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.testclient import TestClient

from prerender.events import CallbackHooks
from prerender.middleware import PrerenderMiddleware, to_starlette_response
from prerender.options import PrerenderOptions
from prerender.pipeline import PrerenderPipeline
from prerender.utils_tests.fake_request import BROWSER, GOOGLEBOT

RENDERED = "<html><body>prerendered</body></html>"
APP_PAGE = "<html><body>client side app</body></html>"


def rendering_service(request: httpx.Request) -> httpx.Response:
    # answer gzipped, like prerender.io does
    return httpx.Response(
        200,
        content=gzip.compress(RENDERED.encode()),
        headers={
            "content-type": "text/html; charset=utf-8",
            "content-encoding": "gzip",
            "x-rendered-url": str(request.url),
        },
    )


def failing_service(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


class RecordingService:
    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return rendering_service(request)


def build_client(service=rendering_service, hooks=None, **option_overrides):
    options = PrerenderOptions(prerender_url="https://render.example", **option_overrides)
    pipeline = PrerenderPipeline(
        options,
        hooks=hooks,
        client=httpx.AsyncClient(transport=httpx.MockTransport(service)),
    )

    app = FastAPI()
    app.add_middleware(PrerenderMiddleware, pipeline=pipeline)

    @app.get("/{path:path}", response_class=HTMLResponse)
    async def page(path: str):
        return APP_PAGE

    return TestClient(app)


def test_browser_gets_the_application():
    client = build_client()

    response = client.get("/products", headers={"User-Agent": BROWSER})

    assert response.status_code == 200
    assert response.text == APP_PAGE


def test_crawler_gets_the_prerendered_page():
    client = build_client()

    response = client.get("/products?id=5", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.text == RENDERED
    assert response.headers["content-type"] == "text/html; charset=utf-8"
    assert "content-encoding" not in response.headers
    assert (
        response.headers["x-rendered-url"]
        == "https://render.example/http://testserver/products?id=5"
    )


def test_escaped_fragment_gets_the_prerendered_page():
    client = build_client()

    response = client.get("/?_escaped_fragment_=", headers={"User-Agent": BROWSER})

    assert response.text == RENDERED


def test_crawler_asking_for_assets_gets_the_application():
    client = build_client()

    response = client.get("/static/app.js", headers={"User-Agent": GOOGLEBOT})

    assert response.text == APP_PAGE


def test_blacklisted_page_gets_the_application():
    client = build_client(blacklist_urls=["/account"])

    response = client.get("/account/settings", headers={"User-Agent": GOOGLEBOT})

    assert response.text == APP_PAGE


def test_percent_encoding_is_kept_in_the_forwarded_uri():
    service = RecordingService()
    client = build_client(service=service)

    response = client.get("/docs/a%3Fb", headers={"User-Agent": GOOGLEBOT})

    assert response.text == RENDERED
    assert len(service.requests) == 1
    sent = service.requests[0].url
    assert sent.raw_path.endswith(b"/docs/a%3Fb")
    assert sent.query == b""


def test_blacklist_matches_the_encoded_path():
    service = RecordingService()
    client = build_client(service=service, blacklist_urls=["a%2Fb"])

    response = client.get("/docs/a%2Fb", headers={"User-Agent": GOOGLEBOT})

    assert response.text == APP_PAGE
    assert service.requests == []


def test_transport_failure_falls_back_to_the_application():
    client = build_client(service=failing_service)

    response = client.get("/products", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 200
    assert response.text == APP_PAGE


def test_hook_failure_falls_back_to_the_application():
    def broken(event):
        raise RuntimeError("cache unavailable")

    client = build_client(hooks=CallbackHooks(pre=broken))

    response = client.get("/products", headers={"User-Agent": GOOGLEBOT})

    assert response.text == APP_PAGE


def test_short_circuited_response_is_served():
    cached = httpx.Response(
        203, content=b"from cache", headers={"content-type": "text/html"}
    )
    client = build_client(
        service=failing_service, hooks=CallbackHooks(pre=lambda event: cached)
    )

    response = client.get("/products", headers={"User-Agent": GOOGLEBOT})

    assert response.status_code == 203
    assert response.text == "from cache"


class TestToStarletteResponse:
    def test_hop_by_hop_and_body_headers_are_dropped(self):
        upstream = httpx.Response(
            200,
            content=b"<html></html>",
            headers=[
                ("content-type", "text/html"),
                ("connection", "keep-alive"),
                ("transfer-encoding", "chunked"),
                ("content-length", "999"),
                ("set-cookie", "a=1"),
                ("set-cookie", "b=2"),
            ],
        )

        response = to_starlette_response(upstream)

        assert response.status_code == 200
        assert response.body == b"<html></html>"
        assert "connection" not in response.headers
        assert "transfer-encoding" not in response.headers
        assert response.headers["content-length"] == str(len(b"<html></html>"))
        assert response.headers.getlist("set-cookie") == ["a=1", "b=2"]

    @pytest.mark.parametrize("status_code", [301, 404, 503])
    def test_status_code_is_kept(self, status_code):
        response = to_starlette_response(httpx.Response(status_code, content=b""))

        assert response.status_code == status_code
