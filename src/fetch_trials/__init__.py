"""
Retry policy layer for httpx: failure classification, delay strategies and
retry transports that re-issue failed requests within a timeout budget.
"""
from .constants import (
    NAMESPACE,
    AGENT_EXTENSION,
    SAFE_HTTP_METHODS,
    IDEMPOTENT_HTTP_METHODS,
    TIMEOUT_ABORT_CODE,
)
from .types import (
    RetryConfig,
    RetryState,
    RetryPredicate,
    DelayFn,
    RetryCallback,
    default_validate_status,
)
from .classifier import (
    error_code,
    request_of,
    response_of,
    is_retry_allowed,
    is_network_error,
    is_retryable_error,
    is_idempotent_request_error,
    is_network_or_idempotent_request_error,
)
from .delay import (
    no_delay,
    exponential_delay,
    create_exponential_delay,
)
from .config import (
    DEFAULT_RETRY_CONFIG,
    merge_config,
    get_request_options,
    adjust_timeout,
    strip_default_agents,
)
from .transport import RetryTransport, SyncRetryTransport
from .factory import (
    attach_retry_policy,
    compose_transport,
    compose_sync_transport,
    create_retry_client,
    create_retry_sync_client,
)


__all__ = [
    # Constants
    "NAMESPACE",
    "AGENT_EXTENSION",
    "SAFE_HTTP_METHODS",
    "IDEMPOTENT_HTTP_METHODS",
    "TIMEOUT_ABORT_CODE",
    # Types
    "RetryConfig",
    "RetryState",
    "RetryPredicate",
    "DelayFn",
    "RetryCallback",
    "default_validate_status",
    # Classifier
    "error_code",
    "request_of",
    "response_of",
    "is_retry_allowed",
    "is_network_error",
    "is_retryable_error",
    "is_idempotent_request_error",
    "is_network_or_idempotent_request_error",
    # Delay
    "no_delay",
    "exponential_delay",
    "create_exponential_delay",
    # Config
    "DEFAULT_RETRY_CONFIG",
    "merge_config",
    "get_request_options",
    "adjust_timeout",
    "strip_default_agents",
    # Transport
    "RetryTransport",
    "SyncRetryTransport",
    # Factory
    "attach_retry_policy",
    "compose_transport",
    "compose_sync_transport",
    "create_retry_client",
    "create_retry_sync_client",
]


__version__ = "1.0.0"
