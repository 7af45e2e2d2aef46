"""
Factory functions for creating retry-enabled transports and clients
"""
import logging
from typing import Any, Callable, Optional, Union

import httpx

from .transport import RetryTransport, SyncRetryTransport
from .types import RetryCallback, RetryConfig


logger = logging.getLogger(__name__)

LOG_PREFIX = "[fetch_trials]"


def attach_retry_policy(
    client: Union[httpx.AsyncClient, httpx.Client],
    config: Optional[RetryConfig] = None,
    *,
    on_retry: Optional[RetryCallback] = None,
) -> None:
    """
    Install a retry policy on an existing httpx client, in place.

    The client's default transport and every mounted transport are wrapped
    in a retry transport. Those original transports are the client's
    default agents: a request whose ``agent`` extension points at one of
    them is re-dispatched without it.

    This mutates the client, so every user of the client sees retries.
    Prefer building a RetryTransport and passing it to a new client when
    the client is shared.

    Args:
        client: The client to modify
        config: Retry configuration. Default: DEFAULT_RETRY_CONFIG
        on_retry: Callback before each retry wait

    Raises:
        TypeError: If client is not an httpx client
    """
    if isinstance(client, httpx.AsyncClient):
        wrapper_type: Any = RetryTransport
    elif isinstance(client, httpx.Client):
        wrapper_type = SyncRetryTransport
    else:
        raise TypeError(f"Expected an httpx client, got {type(client).__name__}")

    default_agents = (client._transport, *(t for t in client._mounts.values() if t is not None))

    def wrap(transport):
        if isinstance(transport, (RetryTransport, SyncRetryTransport)):
            logger.warning(f"{LOG_PREFIX} attach_retry_policy: transport already retries, leaving it as is")
            return transport
        return wrapper_type(transport, config, default_agents=default_agents, on_retry=on_retry)

    client._transport = wrap(client._transport)
    client._mounts = {
        pattern: (wrap(transport) if transport is not None else None)
        for pattern, transport in client._mounts.items()
    }


def compose_transport(
    base: httpx.AsyncBaseTransport,
    *wrappers: Callable[[httpx.AsyncBaseTransport], httpx.AsyncBaseTransport],
) -> httpx.AsyncBaseTransport:
    """
    Stack async transport wrappers on top of a base transport.

    Args:
        base: Transport that performs the actual I/O
        *wrappers: Factories taking the transport built so far; the first
            one sits directly on base, the last one is outermost

    Returns:
        The outermost wrapper, or base when no wrappers are given

    Example:
        transport = compose_transport(
            httpx.AsyncHTTPTransport(),
            lambda inner: RetryTransport(inner, RetryConfig(max_retries=5)),
        )
    """
    transport = base
    for wrapper in wrappers:
        transport = wrapper(transport)
    return transport


def compose_sync_transport(
    base: httpx.BaseTransport,
    *wrappers: Callable[[httpx.BaseTransport], httpx.BaseTransport],
) -> httpx.BaseTransport:
    """Apply each wrapper to a blocking transport, innermost first."""
    transport = base
    for wrapper in wrappers:
        transport = wrapper(transport)
    return transport


def create_retry_client(
    config: Optional[RetryConfig] = None,
    *,
    base_url: Optional[str] = None,
    proxy: Optional[str] = None,
    timeout: float = 5.0,
    on_retry: Optional[RetryCallback] = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """
    Create a retry-enabled async HTTP client.

    Args:
        config: Retry configuration
        base_url: Base URL for requests
        proxy: Proxy URL to use
        timeout: Request timeout in seconds, shared by all retries. Default: 5.0
        on_retry: Callback before each retry wait
        **client_kwargs: Additional arguments for httpx.AsyncClient

    Returns:
        Retry-enabled async HTTP client

    Example:
        client = create_retry_client(
            RetryConfig(max_retries=3, delay_fn=exponential_delay),
            base_url="https://api.example.com",
        )
        response = await client.get("/data")
    """
    base_transport = httpx.AsyncHTTPTransport(proxy=proxy)
    transport = RetryTransport(
        base_transport,
        config,
        default_agents=(base_transport,),
        on_retry=on_retry,
    )

    return httpx.AsyncClient(
        transport=transport,
        base_url=base_url or "",
        timeout=timeout,
        **client_kwargs,
    )


def create_retry_sync_client(
    config: Optional[RetryConfig] = None,
    *,
    base_url: Optional[str] = None,
    proxy: Optional[str] = None,
    timeout: float = 5.0,
    on_retry: Optional[RetryCallback] = None,
    **client_kwargs: Any,
) -> httpx.Client:
    """
    Create a retry-enabled sync HTTP client.

    Args:
        config: Retry configuration
        base_url: Base URL for requests
        proxy: Proxy URL to use
        timeout: Request timeout in seconds, shared by all retries. Default: 5.0
        on_retry: Callback before each retry wait
        **client_kwargs: Additional arguments for httpx.Client

    Returns:
        Retry-enabled sync HTTP client
    """
    base_transport = httpx.HTTPTransport(proxy=proxy)
    transport = SyncRetryTransport(
        base_transport,
        config,
        default_agents=(base_transport,),
        on_retry=on_retry,
    )

    return httpx.Client(
        transport=transport,
        base_url=base_url or "",
        timeout=timeout,
        **client_kwargs,
    )
