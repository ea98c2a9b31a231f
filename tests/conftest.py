"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from app.core.limiter import limiter
from app.lib.brokers.base import BrokerAdapter
from app.lib.brokers.registry import BrokerConfig, BrokerEndpoints, FieldMapping
from app.schemas.token_schemas import Token


NOW = datetime(2025, 9, 3, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeAdapter(BrokerAdapter):
    """In-memory adapter that records every call."""

    def __init__(self, name: str = "fakebroker", trades: Optional[List[Dict[str, Any]]] = None,
                 refresh_delay: float = 0.0, clock: Optional[Callable[[], datetime]] = None):
        self._name = name
        self.trades = trades if trades is not None else []
        self.refresh_delay = refresh_delay
        self.clock = clock or FakeClock()
        self.refresh_calls: List[Optional[Token]] = []
        self.fetch_calls: List[Token] = []

    @property
    def name(self) -> str:
        return self._name

    async def fetch_trades(self, token: Token) -> List[Dict[str, Any]]:
        self.fetch_calls.append(token)
        return self.trades

    async def refresh_token(self, old_token: Optional[Token]) -> Token:
        self.refresh_calls.append(old_token)
        if self.refresh_delay:
            await asyncio.sleep(self.refresh_delay)
        n = len(self.refresh_calls)
        return Token(
            access_token=f"access-{n}",
            refresh_token=f"refresh-{n}",
            expires_at=self.clock() + timedelta(minutes=20),
        )


class RecordingHandler:
    """httpx.MockTransport handler that replays queued responses per path and records requests."""

    def __init__(self):
        self.routes: Dict[str, List[Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, path: str, *responses: Any) -> None:
        self.routes.setdefault(path, []).extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"message": f"no route for {request.url.path}"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def transport(handler: RecordingHandler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


@pytest.fixture
def kite_config() -> BrokerConfig:
    """Zerodha-shaped broker: nested response, side inferred from quantity sign."""
    return BrokerConfig(
        name="kite",
        base_url="https://kite.broker.test",
        endpoints=BrokerEndpoints(trades="/portfolio/positions", refresh="/session/refresh_token"),
        headers={"X-Kite-Version": "3"},
        response_path="data.positions.NRML",
        mapping=FieldMapping(
            symbol="tradingsymbol",
            quantity="quantity",
            price="average_price",
            timestamp="",
            side="",
        ),
        refresh_payload_template={
            "refresh_token": "${TOKEN:refresh}",
            "client_id": "${ENV:KITE_API_KEY}",
        },
    )


@pytest.fixture
def mt_config() -> BrokerConfig:
    """MetaTrader-shaped broker: flat array response with explicit side field."""
    return BrokerConfig(
        name="mt",
        base_url="https://mt.broker.test",
        endpoints=BrokerEndpoints(trades="/v1/trades", refresh="/v1/auth/refresh"),
        headers={"X-API-Version": "1.0"},
        response_path="",
        mapping=FieldMapping(
            symbol="symbol",
            quantity="volume",
            price="price",
            timestamp="time",
            side="type",
        ),
        refresh_payload_template={"refresh_token": "${TOKEN:refresh}", "grant_type": "refresh_token"},
    )


@pytest.fixture
def valid_token(clock: FakeClock) -> Token:
    return Token(access_token="acc-1", refresh_token="ref-1", expires_at=clock() + timedelta(hours=1))
