"""Shared fakes for PayPal tests: a scripted PayPal API and a controllable clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import pytest

from app.domain.payments.paypal_client import ClientConfig, PayPalClient

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
TOKEN_PATH = "/v1/oauth2/token"


class FrozenClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakePayPal:
    """
    httpx.MockTransport handler that answers like the PayPal REST API.

    Token responses are consumed in order (the last one repeats); other
    endpoints are scripted with `route()`.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_replies: list[tuple[int, Any]] = []
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.issue_tokens("A21AAFakeToken", expires_in=3600)

    def issue_tokens(self, *tokens: str, expires_in: int = 3600) -> None:
        self.token_replies = [
            (200, {"access_token": token, "token_type": "Bearer", "expires_in": expires_in, "scope": "openid"})
            for token in tokens
        ]

    def fail_tokens(self, status: int, body: str) -> None:
        self.token_replies = [(status, body)]

    def route(self, method: str, path: str, status: int, body: Any = None) -> None:
        self.routes[(method, path)] = (status, body)

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == TOKEN_PATH]

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != TOKEN_PATH]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            issued = len(self.token_requests) - 1
            status, body = self.token_replies[min(issued, len(self.token_replies) - 1)]
        else:
            status, body = self.routes[(request.method, request.url.path)]
        return _response(status, body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _response(status: int, body: Any) -> httpx.Response:
    if body is None:
        return httpx.Response(status)
    if isinstance(body, (str, bytes)):
        return httpx.Response(status, content=body)
    return httpx.Response(status, json=body)


@pytest.fixture
def fake_paypal() -> FakePayPal:
    return FakePayPal()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(client_id="client-id", client_secret="client-secret", environment="sandbox")


@pytest.fixture
def paypal_client(fake_paypal: FakePayPal, clock: FrozenClock, client_config: ClientConfig) -> PayPalClient:
    return PayPalClient(client_config, transport=fake_paypal.transport(), clock=clock)


def _order_body(order_id: str, status: str, captures: Optional[list[dict]] = None, value: str = "500.00") -> dict:
    unit: dict[str, Any] = {"reference_id": "apt-42", "amount": {"currency_code": "MXN", "value": value}}
    if captures is not None:
        unit["payments"] = {"captures": captures}
    return {
        "id": order_id,
        "status": status,
        "links": [
            {"href": f"https://api-m.sandbox.paypal.com/v2/checkout/orders/{order_id}", "rel": "self", "method": "GET"},
            {"href": f"https://www.sandbox.paypal.com/checkoutnow?token={order_id}", "rel": "approve", "method": "GET"},
        ],
        "purchase_units": [unit],
    }


@pytest.fixture
def order_body():
    return _order_body
