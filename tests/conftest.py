"""Pytest configuration and fixtures for fetch_trials tests."""
from typing import Callable, Optional, Union

import httpx
import pytest


Outcome = Union[int, httpx.Response, BaseException]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _to_response(outcome: Outcome, request: httpx.Request) -> httpx.Response:
    if isinstance(outcome, httpx.Response):
        return outcome
    return httpx.Response(status_code=outcome, content=b"It worked!", request=request)


class ScriptedAsyncTransport(httpx.AsyncBaseTransport):
    """
    Mock async transport that plays back a script of outcomes.

    Each outcome is a status code, a response, or an exception to raise.
    The last outcome repeats once the script runs out.
    """

    def __init__(
        self,
        outcomes: list,
        clock: Optional[FakeClock] = None,
        duration: float = 0.0,
    ) -> None:
        self.outcomes = list(outcomes)
        self.clock = clock
        self.duration = duration
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self.closed = False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Record the request and play the next outcome."""
        self.requests.append(request)
        self.bodies.append(await request.aread())
        if self.clock is not None:
            self.clock.advance(self.duration)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return _to_response(outcome, request)

    async def aclose(self) -> None:
        """Close the transport."""
        self.closed = True


class ScriptedSyncTransport(httpx.BaseTransport):
    """Mock sync transport that plays back a script of outcomes."""

    def __init__(
        self,
        outcomes: list,
        clock: Optional[FakeClock] = None,
        duration: float = 0.0,
    ) -> None:
        self.outcomes = list(outcomes)
        self.clock = clock
        self.duration = duration
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self.closed = False

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Record the request and play the next outcome."""
        self.requests.append(request)
        self.bodies.append(request.read())
        if self.clock is not None:
            self.clock.advance(self.duration)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return _to_response(outcome, request)

    def close(self) -> None:
        """Close the transport."""
        self.closed = True


def always(value: bool) -> Callable[[Exception], bool]:
    """Build a retry predicate with a fixed answer."""
    return lambda error: value


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def network_error() -> httpx.ReadError:
    """A connection reset while reading the response."""
    return httpx.ReadError("Some connection error")


@pytest.fixture
def get_request() -> httpx.Request:
    """A plain GET request."""
    return httpx.Request("GET", "http://example.com/test")
