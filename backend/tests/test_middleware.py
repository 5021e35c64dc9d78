"""
Chirpline Backend: Middleware Tests
=====================================

What:  Request ID propagation, rate limiting, and the order create_app()
       stacks them in.
How:   Small throwaway FastAPI apps so each middleware is tested on its own;
       the full app for the chain.
"""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.main import create_app
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var


def build_app(middleware) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"request_id": request_id_var.get("")}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(middleware)
    return app


def client_for(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self):
        async with client_for(build_app(RequestIDMiddleware)) as client:
            response = await client.get("/ping")

        rid = response.headers[REQUEST_ID_HEADER]
        assert len(rid) == 8
        assert response.json()["request_id"] == rid

    @pytest.mark.asyncio
    async def test_client_value_echoed(self):
        async with client_for(build_app(RequestIDMiddleware)) as client:
            response = await client.get("/ping", headers={REQUEST_ID_HEADER: "trace-123"})

        assert response.headers[REQUEST_ID_HEADER] == "trace-123"
        assert response.json()["request_id"] == "trace-123"


@pytest.fixture
def limited():
    with patch("app.middleware.rate_limit.settings") as mock_settings:
        mock_settings.rate_limit_enabled = True
        mock_settings.rate_limit_requests = 2
        mock_settings.rate_limit_window = 60
        yield mock_settings


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_rejects_over_limit(self, limited):
        async with client_for(build_app(RateLimitMiddleware)) as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            response = await client.get("/ping")

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["error"] == "rate_limit_exceeded"

    @pytest.mark.asyncio
    async def test_health_not_limited(self, limited):
        async with client_for(build_app(RateLimitMiddleware)) as client:
            statuses = [(await client.get("/health")).status_code for _ in range(5)]

        assert statuses == [200] * 5

    @pytest.mark.asyncio
    async def test_disabled(self, limited):
        limited.rate_limit_enabled = False
        async with client_for(build_app(RateLimitMiddleware)) as client:
            statuses = [(await client.get("/ping")).status_code for _ in range(5)]

        assert statuses == [200] * 5


class TestMiddlewareChain:

    @pytest.mark.asyncio
    async def test_rate_limited_response_carries_request_id(self, limited, test_client):
        limited.rate_limit_requests = 1
        headers = {REQUEST_ID_HEADER: "trace-429"}

        assert (await test_client.get("/tweets", headers=headers)).status_code == 200
        response = await test_client.get("/tweets", headers=headers)

        assert response.status_code == 429
        assert response.json()["request_id"] == "trace-429"
        assert response.headers[REQUEST_ID_HEADER] == "trace-429"

    @pytest.mark.asyncio
    async def test_unhandled_error_carries_request_id(self):
        app = create_app()

        @app.get("/explode")
        async def explode():
            raise RuntimeError("boom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/explode", headers={REQUEST_ID_HEADER: "trace-500"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["request_id"] == "trace-500"
