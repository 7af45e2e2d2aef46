"""
Retry transport wrappers for httpx
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

import httpx

from .classifier import request_of
from .config import (
    adjust_timeout,
    async_sleep,
    get_request_options,
    merge_config,
    strip_default_agents,
    sync_sleep,
)
from .types import RetryCallback, RetryConfig, RetryState


logger = logging.getLogger(__name__)

LOG_PREFIX = "[fetch_trials]"


@dataclass
class _RetryPlan:
    """A scheduled re-dispatch"""

    request: httpx.Request
    delay: float
    state: RetryState


class _RetryPolicy:
    """Retry decisions shared by the async and sync transports."""

    def __init__(
        self,
        inner: Union[httpx.AsyncBaseTransport, httpx.BaseTransport],
        config: Optional[RetryConfig],
        max_retries: Optional[int],
        default_agents: Iterable[Any],
        on_retry: Optional[RetryCallback],
        clock: Callable[[], float],
    ) -> None:
        self._inner = inner
        self._on_retry = on_retry
        self._clock = clock
        self._default_agents = (inner, *default_agents)

        # Build retry config
        if config is not None:
            self._config = config
        elif max_retries is not None:
            self._config = RetryConfig(max_retries=max_retries)
        else:
            self._config = merge_config(None)

    @property
    def config(self) -> RetryConfig:
        """Get the default configuration applied to every request."""
        return self._config

    def _before_dispatch(self, state: Optional[RetryState]) -> float:
        """Pre-dispatch hook: stamp the dispatch time."""
        now = self._clock()
        if state is not None:
            state.last_dispatched_at = now
        return now

    def _status_failure(self, request: httpx.Request, response: httpx.Response) -> Optional[httpx.HTTPStatusError]:
        """Describe a response that fails validate_status as an httpx error."""
        config = get_request_options(request, self._config)
        if config.validate_status(response.status_code):
            return None
        return httpx.HTTPStatusError(
            f"Unexpected status {response.status_code} for url '{request.url}'",
            request=request,
            response=response,
        )

    def _plan_retry(
        self,
        request: httpx.Request,
        error: Exception,
        state: Optional[RetryState],
        started_at: float,
        dispatched_at: float,
    ) -> Optional[_RetryPlan]:
        """
        Post-failure hook: decide whether and how to re-issue the request.

        Returns:
            The plan for the next dispatch, or None when the failure is terminal
        """
        if isinstance(error, httpx.RequestError) and request_of(error) is None:
            # Same binding httpx.Client applies to transport errors
            error.request = request

        failed = request_of(error)
        if failed is None:
            logger.debug(
                f"{LOG_PREFIX} {request.method} {request.url}: "
                f"{type(error).__name__} carries no request, not retrying"
            )
            return None

        config = get_request_options(failed, self._config)
        if state is None:
            state = RetryState(first_attempt_started_at=started_at, last_dispatched_at=dispatched_at)

        if not config.retry_predicate(error):
            logger.debug(
                f"{LOG_PREFIX} request={state.request_id} {failed.method} {failed.url}: "
                f"{type(error).__name__} is not retryable"
            )
            return None

        if state.attempt_count >= config.max_retries:
            logger.debug(
                f"{LOG_PREFIX} request={state.request_id} {failed.method} {failed.url}: "
                f"retries exhausted after {state.attempt_count}"
            )
            return None

        state.attempt_count += 1
        delay = config.delay_fn(state.attempt_count, error)

        extensions = strip_default_agents(failed.extensions, self._default_agents)

        timeout = extensions.get("timeout")
        if (
            not config.reset_timeout_on_retry
            and timeout is not None
            and state.last_dispatched_at is not None
        ):
            elapsed = self._clock() - state.last_dispatched_at
            extensions["timeout"] = adjust_timeout(timeout, elapsed, delay)

        # Re-send the bytes already serialized for the first attempt. They are
        # buffered now, so the length is known.
        headers = failed.headers.copy()
        headers.pop("transfer-encoding", None)
        retry_request = httpx.Request(
            failed.method,
            failed.url,
            headers=headers,
            content=failed.content,
            extensions=extensions,
        )

        logger.debug(
            f"{LOG_PREFIX} request={state.request_id} {failed.method} {failed.url}: "
            f"retry {state.attempt_count}/{config.max_retries} in {delay:.3f}s "
            f"after {type(error).__name__}, timeout={extensions.get('timeout')}"
        )

        return _RetryPlan(request=retry_request, delay=delay, state=state)

    def _notify_retry(self, error: Exception, plan: _RetryPlan) -> None:
        if self._on_retry:
            self._on_retry(error, plan.state.attempt_count, plan.delay)


class RetryTransport(_RetryPolicy, httpx.AsyncBaseTransport):
    """
    Retry transport wrapper for httpx.

    Wraps another transport and re-issues failed requests according to a
    RetryConfig. Per-request overrides are read from the request's
    ``fetch_trials`` extension. Retry state is kept per call and never
    shared between requests.

    Example:
        base = httpx.AsyncHTTPTransport()
        transport = RetryTransport(base, RetryConfig(delay_fn=exponential_delay))
        client = httpx.AsyncClient(transport=transport)
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport,
        config: Optional[RetryConfig] = None,
        *,
        max_retries: Optional[int] = None,
        default_agents: Iterable[Any] = (),
        on_retry: Optional[RetryCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Create a new RetryTransport.

        Args:
            inner: The wrapped transport to delegate requests to
            config: Retry config (alternative to max_retries)
            max_retries: Maximum retries (simple config)
            default_agents: Transports whose handles must not be reused on retry
            on_retry: Callback before each retry wait, with (error, retry number, delay)
            clock: Monotonic clock used for the timeout budget
        """
        super().__init__(inner, config, max_retries, default_agents, on_retry, clock)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle an async HTTP request with retry logic"""
        await request.aread()

        state: Optional[RetryState] = None
        started_at: Optional[float] = None

        while True:
            dispatched_at = self._before_dispatch(state)
            if started_at is None:
                started_at = dispatched_at

            try:
                response = await self._inner.handle_async_request(request)
            except Exception as error:
                failure: Exception = error
                plan = self._plan_retry(request, error, state, started_at, dispatched_at)
                if plan is None:
                    raise error
            else:
                status_error = self._status_failure(request, response)
                if status_error is None:
                    return response
                failure = status_error
                plan = self._plan_retry(request, status_error, state, started_at, dispatched_at)
                if plan is None:
                    return response
                await response.aclose()

            self._notify_retry(failure, plan)
            await async_sleep(plan.delay)
            request, state = plan.request, plan.state

    async def aclose(self) -> None:
        """Close the transport"""
        await self._inner.aclose()


class SyncRetryTransport(_RetryPolicy, httpx.BaseTransport):
    """
    Blocking counterpart of RetryTransport for httpx.Client.

    Makes the same retry decisions and blocks the calling thread for the
    delay between attempts.
    """

    def __init__(
        self,
        inner: httpx.BaseTransport,
        config: Optional[RetryConfig] = None,
        *,
        max_retries: Optional[int] = None,
        default_agents: Iterable[Any] = (),
        on_retry: Optional[RetryCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(inner, config, max_retries, default_agents, on_retry, clock)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Handle a sync HTTP request with retry logic"""
        request.read()

        state: Optional[RetryState] = None
        started_at: Optional[float] = None

        while True:
            dispatched_at = self._before_dispatch(state)
            if started_at is None:
                started_at = dispatched_at

            try:
                response = self._inner.handle_request(request)
            except Exception as error:
                failure: Exception = error
                plan = self._plan_retry(request, error, state, started_at, dispatched_at)
                if plan is None:
                    raise error
            else:
                status_error = self._status_failure(request, response)
                if status_error is None:
                    return response
                failure = status_error
                plan = self._plan_retry(request, status_error, state, started_at, dispatched_at)
                if plan is None:
                    return response
                response.close()

            self._notify_retry(failure, plan)
            sync_sleep(plan.delay)
            request, state = plan.request, plan.state

    def close(self) -> None:
        """Close the transport"""
        self._inner.close()
