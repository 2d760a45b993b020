"""Tests for request id propagation and heavy-endpoint concurrency control."""

import logging

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route

from services.concurrency import ConcurrencyLimitMiddleware, _is_heavy, rate_limited_llm_call
from services.middleware import RequestIdFilter, RequestIdMiddleware, request_id_var


async def _echo_request_id(request):
    return JSONResponse({"requestId": request_id_var.get()})


def _app():
    app = Starlette(routes=[Route("/echo", _echo_request_id)])
    app.add_middleware(RequestIdMiddleware)
    return app


@pytest.mark.asyncio
async def test_request_id_generated_and_echoed():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/echo")
    rid = resp.headers["x-request-id"]
    assert len(rid) == 8
    assert resp.json()["requestId"] == rid


@pytest.mark.asyncio
async def test_client_request_id_is_reused():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/echo", headers={"X-Request-ID": "turn-42"})
    assert resp.headers["x-request-id"] == "turn-42"
    assert resp.json()["requestId"] == "turn-42"
    assert request_id_var.get() == "-"


def test_log_filter_adds_request_id():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("abc123")
    try:
        assert RequestIdFilter().filter(record) is True
    finally:
        request_id_var.reset(token)
    assert record.request_id == "abc123"


@pytest.mark.parametrize(
    ("method", "path", "heavy"),
    [
        ("POST", "/api/sessions", True),
        ("POST", "/api/sessions/s1/turns", True),
        ("POST", "/api/sessions/s1/slides/next", True),
        ("POST", "/api/sessions/s1/topics/t1/exam/grade", True),
        ("GET", "/api/sessions/s1/topics", False),
        ("PUT", "/api/sessions/s1/snapshot", False),
        ("GET", "/api/health", False),
    ],
)
def test_heavy_endpoint_detection(method, path, heavy):
    assert _is_heavy(method, path) is heavy


@pytest.mark.asyncio
async def test_rate_limited_llm_call_passes_through():
    async def call(a, b=0):
        return a + b

    assert await rate_limited_llm_call(call, 2, b=3) == 5


@pytest.mark.asyncio
async def test_light_requests_bypass_concurrency_limit():
    app = Starlette(routes=[Route("/api/health", lambda r: JSONResponse({"ok": True}))])
    app.add_middleware(ConcurrencyLimitMiddleware)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/health")
    assert resp.status_code == 200
