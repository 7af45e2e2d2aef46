"""
Shared constants for fetch_trials
"""

# Key under request.extensions holding per-request retry overrides
NAMESPACE = "fetch_trials"

# Request extension that may carry a transport-injected connection handle
AGENT_EXTENSION = "agent"

SAFE_HTTP_METHODS = ("GET", "HEAD", "OPTIONS")
IDEMPOTENT_HTTP_METHODS = SAFE_HTTP_METHODS + ("PUT", "DELETE")

# Code reported for client-side timeouts; such failures are never retried
TIMEOUT_ABORT_CODE = "ECONNABORTED"

# Smallest timeout handed to a retry. Zero or less would disable the timeout.
MIN_TIMEOUT_SECONDS = 0.001
