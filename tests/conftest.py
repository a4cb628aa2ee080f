"""Pytest bootstrap configuration.

Provides a fake SnappPay provider built on httpx.MockTransport so gateway
tests exercise the real request/response code without network access.
"""
import json
from typing import Any, Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from application.dtos.payments import GatewayConfig


BASE_URL = "https://snapppay.test"
OAUTH_PATH = "/api/online/v1/oauth/token"


class FakeSnappPay:
    """Route table keyed by (method, path); records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.on("POST", OAUTH_PATH, json={"access_token": "oauth-token", "token_type": "Bearer", "expires_in": 3600})

    def on(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        json: Any = None,
        content: Optional[bytes] = None,
    ) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status, content=content)
            return httpx.Response(status, json=json)
        self.routes[(method, path)] = _respond

    def raise_on(self, method: str, path: str, exc: Exception) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc
        self.routes[(method, path)] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"successful": False, "errorData": {"message": "not found"}})
        return route(request)

    def http_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def last(self, path: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path == path][-1]

    @staticmethod
    def json_body(request: httpx.Request) -> dict:
        return json.loads(request.content)

    @staticmethod
    def form_body(request: httpx.Request) -> dict:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def provider() -> FakeSnappPay:
    return FakeSnappPay()


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig(
        base_url=BASE_URL,
        client_id="merchant-client",
        client_secret="merchant-secret",
        username="merchant",
        password="p@ss",
        callback_url="https://shop.test/payments/callback",
        currency="T",
    )


@pytest.fixture
def make_client(provider, config):
    from infrastructure.external.payments.snapppay_client import SnappPayClient

    created = []

    def _make(**overrides):
        cfg = config.model_copy(update=overrides) if overrides else config
        client = SnappPayClient(cfg, http_client=provider.http_client())
        created.append(client)
        return client

    yield _make
    for client in created:
        client.client.close()
