"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Project root on sys.path so tests can import the flat modules
- Environment defaults applied before the app loads config at import time
- A mock Workers AI upstream and an ASGI test client
"""

import os
import sys
from pathlib import Path

import httpx
import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault("CLOUDFLARE_ACCOUNT_ID", "test-account")
os.environ.setdefault("CLOUDFLARE_API_TOKEN", "test-token")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_PATH", "/tmp/sealion_gateway_test.log")
os.environ.setdefault("LOG_COLOR", "false")


class FakeUpstream:
    """Records requests and answers them with a canned httpx.Response."""

    def __init__(self) -> None:
        self.requests = []
        self.status_code = 200
        self.json_body = {"result": {"response": "Hello from Sea Lion"}, "success": True, "errors": []}
        self.stream_body = b""
        self.raise_exc = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_exc is not None:
            raise self.raise_exc
        if b'"stream": true' in request.content or b'"stream":true' in request.content:
            return httpx.Response(
                self.status_code,
                content=self.stream_body,
                headers={"content-type": "text/event-stream"},
            )
        return httpx.Response(self.status_code, json=self.json_body)


@pytest.fixture
def fake_upstream(monkeypatch):
    """Route the service's upstream HTTP calls into a FakeUpstream."""
    import sealion_gateway_service as service

    fake = FakeUpstream()

    def _client(*, stream: bool) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))

    monkeypatch.setattr(service, "_create_http_client", _client)
    return fake


@pytest.fixture
async def client():
    import sealion_gateway_service as service

    transport = httpx.ASGITransport(app=service.app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
