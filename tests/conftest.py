"""
Pytest configuration and shared fixtures for Karakeep Adapter tests.

This module provides a fake monotonic clock, recorded sleeps, httpx mock
transports and pre-built request facades shared across test modules.
"""

import json
from typing import Any, Callable, List, Optional

import httpx
import pytest

from karakeep_adapter.core.api_request import KarakeepApiRequest
from karakeep_adapter.core.context import HttpxContext, KarakeepContext
from karakeep_adapter.core.data_models import (
    KarakeepCredentials,
    KarakeepResponse,
    RateLimitConfig,
    RetryConfig,
)

INSTANCE_URL = "https://x.example"
API_KEY = "abc1234567"


# ============================================================================
# Test Doubles
# ============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StaticContext(KarakeepContext):
    """Context with fixed credentials, for use with a scripted transport."""

    def __init__(self, credentials: Optional[Any] = None):
        self.credentials = credentials

    async def get_credentials(self):
        return self.credentials

    async def perform_request(self, method, url, headers, body=None, timeout=30.0, raw=False):
        raise AssertionError("raw calls go through the scripted transport")


class ScriptedTransport:
    """
    Transport double returning or raising scripted outcomes in order.

    Each call records its request descriptor. The last outcome repeats once
    the script is exhausted.
    """

    def __init__(self, outcomes: List[Any], clock: Optional[FakeClock] = None):
        self.outcomes = list(outcomes)
        self.calls: List[Any] = []
        self.call_times: List[float] = []
        self.clock = clock

    async def execute(self, options, credentials):
        self.calls.append(options)
        if self.clock is not None:
            self.call_times.append(self.clock())
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, KarakeepResponse):
            return outcome
        if options.raw_response:
            return KarakeepResponse(data=outcome)
        return KarakeepResponse.from_payload(outcome)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def json_response(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"content-type": "application/json"},
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def credentials() -> KarakeepCredentials:
    """Valid credentials for a fictional instance."""
    return KarakeepCredentials(instance_url=INSTANCE_URL, api_key=API_KEY)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_jitter() -> Callable[[], float]:
    return lambda: 0.0


@pytest.fixture
def fast_retry() -> RetryConfig:
    return RetryConfig(max_retries=3, base_delay=0.01, max_delay=0.1)


@pytest.fixture
def make_mock_context(credentials):
    """
    Build an HttpxContext whose client is backed by an httpx.MockTransport.

    The handler receives each ``httpx.Request``; sent requests are recorded
    on ``context.sent``.
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response], creds=credentials):
        sent: List[httpx.Request] = []

        def _recording_handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_recording_handler))
        context = HttpxContext(creds, client=client)
        context.sent = sent
        return context

    return _make


@pytest.fixture
def make_api(credentials, fake_clock, no_jitter):
    """
    Build a facade over a ScriptedTransport with a fake clock and no jitter.

    Returns (api, transport).
    """

    def _make(
        outcomes: List[Any],
        creds: Any = credentials,
        retry_config: Optional[RetryConfig] = None,
        rate_limit_config: Optional[RateLimitConfig] = None,
    ):
        context = StaticContext(creds)
        transport = ScriptedTransport(outcomes, clock=fake_clock)
        api = KarakeepApiRequest(
            context,
            retry_config=retry_config,
            rate_limit_config=rate_limit_config,
            transport=transport,
            sleep=fake_clock.sleep,
            jitter=no_jitter,
        )
        api.queue.clock = fake_clock
        return api, transport

    return _make


@pytest.fixture
def make_transport(fake_clock):
    """Build a ScriptedTransport sharing the fake clock."""

    def _make(outcomes: List[Any]) -> ScriptedTransport:
        return ScriptedTransport(outcomes, clock=fake_clock)

    return _make


@pytest.fixture
def json_reply():
    """Factory for JSON ``httpx.Response`` objects."""
    return json_response
