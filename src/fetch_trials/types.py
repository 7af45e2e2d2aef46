"""
Type definitions for fetch_trials
"""
import os
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from .classifier import is_network_or_idempotent_request_error
from .delay import no_delay


RetryPredicate = Callable[[Exception], bool]
DelayFn = Callable[[int, Exception], float]
StatusValidator = Callable[[int], bool]
RetryCallback = Callable[[Exception, int, float], None]


_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def default_validate_status(status: int) -> bool:
    """Accept 2xx and 3xx responses; redirects are followed above the transport."""
    return 200 <= status < 400


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration"""

    max_retries: int = 3
    """Maximum number of retries after the first attempt. Default: 3"""

    retry_predicate: RetryPredicate = is_network_or_idempotent_request_error
    """Decides if a failure may be retried. Default: network or idempotent request error"""

    delay_fn: DelayFn = no_delay
    """Maps (retry number, error) to a delay in seconds. Default: no delay"""

    reset_timeout_on_retry: bool = False
    """Give every retry the full original timeout. Default: False"""

    validate_status: StatusValidator = default_validate_status
    """Decides which response statuses count as success. Default: 2xx and 3xx"""

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ValueError(f"max_retries must be an integer, got {self.max_retries!r}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_env(cls, prefix: str = "FETCH_TRIALS_") -> "RetryConfig":
        """
        Build a config from environment variables.

        Reads ``<prefix>MAX_RETRIES`` and ``<prefix>RESET_TIMEOUT_ON_RETRY``;
        unset variables keep their defaults.
        """
        return cls(
            max_retries=_env_int(f"{prefix}MAX_RETRIES", 3),
            reset_timeout_on_retry=_env_bool(f"{prefix}RESET_TIMEOUT_ON_RETRY", False),
        )


@dataclass
class RetryState:
    """Retry bookkeeping for one logical request and all of its retries"""

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    """Identity of the logical request, generated once per call"""

    attempt_count: int = 0
    """Retries issued so far (the first attempt is not counted)"""

    first_attempt_started_at: Optional[float] = None
    """Monotonic time of the first dispatch"""

    last_dispatched_at: Optional[float] = None
    """Monotonic time of the most recent dispatch"""
