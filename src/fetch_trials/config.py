"""
Configuration utilities for fetch_trials
"""
import asyncio
import dataclasses
import math
import time
from typing import Any, Iterable, Mapping, Optional, Union

import httpx

from .constants import AGENT_EXTENSION, MIN_TIMEOUT_SECONDS, NAMESPACE
from .types import RetryConfig


# Default retry configuration
DEFAULT_RETRY_CONFIG = RetryConfig()

_CONFIG_FIELDS = frozenset(f.name for f in dataclasses.fields(RetryConfig))

# Namespace keys read by the classifier rather than merged into RetryConfig
_NAMESPACE_ONLY_KEYS = frozenset(["retry"])

ConfigOverride = Union[RetryConfig, Mapping[str, Any], None]


def merge_config(
    defaults: Optional[RetryConfig] = None,
    override: ConfigOverride = None,
) -> RetryConfig:
    """
    Merge a per-request override onto the defaults, key by key.

    Args:
        defaults: Base configuration. Default: DEFAULT_RETRY_CONFIG
        override: A RetryConfig (wins entirely), a mapping of RetryConfig
            field names, or None

    Returns:
        The effective configuration

    Raises:
        ValueError: If the override has unknown keys or an unsupported type
    """
    base = defaults if defaults is not None else DEFAULT_RETRY_CONFIG
    if override is None:
        return base
    if isinstance(override, RetryConfig):
        return override
    if not isinstance(override, Mapping):
        raise ValueError(
            f"Retry override must be a RetryConfig or a mapping, got {type(override).__name__}"
        )

    values = {k: v for k, v in override.items() if k not in _NAMESPACE_ONLY_KEYS}
    unknown = set(values) - _CONFIG_FIELDS
    if unknown:
        raise ValueError(f"Unknown retry option(s): {', '.join(sorted(unknown))}")
    if not values:
        return base

    return dataclasses.replace(base, **values)


def get_request_options(request: httpx.Request, defaults: Optional[RetryConfig] = None) -> RetryConfig:
    """Get the effective config for a request from its ``fetch_trials`` extension."""
    return merge_config(defaults, request.extensions.get(NAMESPACE))


def number_exists(value: Any) -> bool:
    """Check the value is a number that is not NaN and not zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and value != 0


def adjust_timeout(
    timeout: Mapping[str, Optional[float]],
    elapsed: float,
    delay: float,
) -> dict[str, Optional[float]]:
    """
    Shrink a timeout budget by the time already spent.

    Each positive entry becomes max(t - elapsed - delay, 0.001). None and
    zero entries mean "no timeout" and are left as they are.

    Args:
        timeout: httpx timeout extension (connect/read/write/pool seconds)
        elapsed: Seconds spent on the failed attempt
        delay: Seconds about to be spent waiting before the retry

    Returns:
        A new timeout mapping
    """
    adjusted = dict(timeout)
    for key, value in timeout.items():
        if number_exists(value) and value > 0:
            adjusted[key] = max(value - elapsed - delay, MIN_TIMEOUT_SECONDS)
    return adjusted


def strip_default_agents(
    extensions: Mapping[str, Any],
    default_agents: Iterable[Any],
) -> dict[str, Any]:
    """
    Copy request extensions, dropping an agent the transport injected itself.

    The ``agent`` entry is omitted only when it matches one of the
    transport's default agents, so a deliberately customised agent is kept.
    """
    copied = dict(extensions)
    agent = copied.get(AGENT_EXTENSION)
    if agent is None:
        return copied

    for default in default_agents:
        if default is not None and (agent is default or agent == default):
            del copied[AGENT_EXTENSION]
            break

    return copied


async def async_sleep(seconds: float) -> None:
    """
    Sleep for a specified duration (async).

    Args:
        seconds: Duration in seconds
    """
    if seconds > 0:
        await asyncio.sleep(seconds)


def sync_sleep(seconds: float) -> None:
    """
    Sleep for a specified duration (sync).

    Args:
        seconds: Duration in seconds
    """
    if seconds > 0:
        time.sleep(seconds)
