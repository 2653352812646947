"""Tests for request-id tracing middleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from kivaw_feed.api.middleware import LoggingMiddleware


def _client() -> TestClient:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return TestClient(app)


def test_request_id_header_generated():
    resp = _client().get("/ping")

    assert resp.status_code == 200
    assert len(resp.headers["X-Request-ID"]) == 8


def test_incoming_request_id_reused():
    resp = _client().get("/ping", headers={"X-Request-ID": "trace-123"})

    assert resp.headers["X-Request-ID"] == "trace-123"


def test_oversized_request_id_replaced():
    resp = _client().get("/ping", headers={"X-Request-ID": "x" * 200})

    assert resp.headers["X-Request-ID"] != "x" * 200
