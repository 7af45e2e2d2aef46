"""
Failure classification for fetch_trials.

Decides whether a failed request may be re-issued, based on the kind of
failure (network level vs HTTP status) and on the idempotency of the
request method. Every function here is a pure function of the error.
"""
import errno
import socket
import ssl
from typing import Mapping, Optional

import httpx

from .constants import IDEMPOTENT_HTTP_METHODS, NAMESPACE, TIMEOUT_ABORT_CODE


# Codes for which a retry cannot help: unresolvable hosts, unreachable
# networks and TLS verification failures.
DENIED_CODES = frozenset([
    "ENOTFOUND",
    "ENETUNREACH",
    "UNABLE_TO_GET_ISSUER_CERT",
    "UNABLE_TO_GET_CRL",
    "UNABLE_TO_DECRYPT_CERT_SIGNATURE",
    "UNABLE_TO_DECRYPT_CRL_SIGNATURE",
    "UNABLE_TO_DECODE_ISSUER_PUBLIC_KEY",
    "CERT_SIGNATURE_FAILURE",
    "CRL_SIGNATURE_FAILURE",
    "CERT_NOT_YET_VALID",
    "CERT_HAS_EXPIRED",
    "CRL_NOT_YET_VALID",
    "CRL_HAS_EXPIRED",
    "ERROR_IN_CERT_NOT_BEFORE_FIELD",
    "ERROR_IN_CERT_NOT_AFTER_FIELD",
    "ERROR_IN_CRL_LAST_UPDATE_FIELD",
    "ERROR_IN_CRL_NEXT_UPDATE_FIELD",
    "OUT_OF_MEM",
    "DEPTH_ZERO_SELF_SIGNED_CERT",
    "SELF_SIGNED_CERT_IN_CHAIN",
    "UNABLE_TO_GET_ISSUER_CERT_LOCALLY",
    "UNABLE_TO_VERIFY_LEAF_SIGNATURE",
    "CERT_CHAIN_TOO_LONG",
    "CERT_REVOKED",
    "INVALID_CA",
    "PATH_LENGTH_EXCEEDED",
    "INVALID_PURPOSE",
    "CERT_UNTRUSTED",
    "CERT_REJECTED",
    "HOSTNAME_MISMATCH",
])

# OpenSSL X509_V_ERR_* verify codes
CERT_VERIFY_CODES = {
    2: "UNABLE_TO_GET_ISSUER_CERT",
    3: "UNABLE_TO_GET_CRL",
    4: "UNABLE_TO_DECRYPT_CERT_SIGNATURE",
    5: "UNABLE_TO_DECRYPT_CRL_SIGNATURE",
    6: "UNABLE_TO_DECODE_ISSUER_PUBLIC_KEY",
    7: "CERT_SIGNATURE_FAILURE",
    8: "CRL_SIGNATURE_FAILURE",
    9: "CERT_NOT_YET_VALID",
    10: "CERT_HAS_EXPIRED",
    11: "CRL_NOT_YET_VALID",
    12: "CRL_HAS_EXPIRED",
    13: "ERROR_IN_CERT_NOT_BEFORE_FIELD",
    14: "ERROR_IN_CERT_NOT_AFTER_FIELD",
    15: "ERROR_IN_CRL_LAST_UPDATE_FIELD",
    16: "ERROR_IN_CRL_NEXT_UPDATE_FIELD",
    17: "OUT_OF_MEM",
    18: "DEPTH_ZERO_SELF_SIGNED_CERT",
    19: "SELF_SIGNED_CERT_IN_CHAIN",
    20: "UNABLE_TO_GET_ISSUER_CERT_LOCALLY",
    21: "UNABLE_TO_VERIFY_LEAF_SIGNATURE",
    22: "CERT_CHAIN_TOO_LONG",
    23: "CERT_REVOKED",
    24: "INVALID_CA",
    25: "PATH_LENGTH_EXCEEDED",
    26: "INVALID_PURPOSE",
    27: "CERT_UNTRUSTED",
    28: "CERT_REJECTED",
    62: "HOSTNAME_MISMATCH",
}


def _os_error_code(error: OSError) -> Optional[str]:
    if isinstance(error, ssl.SSLCertVerificationError):
        return CERT_VERIFY_CODES.get(getattr(error, "verify_code", None), "CERT_UNTRUSTED")
    if isinstance(error, ssl.SSLError):
        return "EPROTO"
    if isinstance(error, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(error, TimeoutError) and error.errno is None:
        return TIMEOUT_ABORT_CODE
    if error.errno is not None:
        return errno.errorcode.get(error.errno)
    return None


def _cause_code(error: BaseException) -> Optional[str]:
    """Find the code of the first OSError in the exception chain."""
    seen = set()
    cause = error.__cause__ or error.__context__
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        if isinstance(cause, OSError):
            return _os_error_code(cause)
        cause = cause.__cause__ or cause.__context__
    return None


def error_code(error: BaseException) -> Optional[str]:
    """
    Get the errno-style code of a failure.

    An explicit string ``code`` attribute on the error wins. Otherwise the
    code is derived from the httpx exception class, refined by the OSError
    that caused it where one is chained.

    Args:
        error: The error to inspect

    Returns:
        The code (e.g. ``"ECONNRESET"``), or None for code-less errors
        such as cancellations
    """
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code

    if isinstance(error, httpx.TimeoutException):
        return TIMEOUT_ABORT_CODE
    if isinstance(error, httpx.ConnectError):
        return _cause_code(error) or "ECONNREFUSED"
    if isinstance(error, (httpx.ReadError, httpx.WriteError, httpx.CloseError)):
        return _cause_code(error) or "ECONNRESET"
    if isinstance(error, httpx.RemoteProtocolError):
        return "EPROTO"
    if isinstance(error, httpx.ProxyError):
        return "EPROXY"
    if isinstance(error, OSError):
        return _os_error_code(error)
    return None


def request_of(error: BaseException) -> Optional[httpx.Request]:
    """Get the request that produced an error, or None if it carries none."""
    if not isinstance(error, httpx.HTTPError):
        return None
    try:
        return error.request
    except RuntimeError:
        # httpx raises when .request was never bound
        return None


def response_of(error: BaseException) -> Optional[httpx.Response]:
    """Get the response attached to an error, if any."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response
    return None


def is_retry_allowed(error: BaseException) -> bool:
    """
    Generic safety check run before retrying a network error.

    Blocks codes for which a retry cannot succeed, and requests whose
    ``extensions["fetch_trials"]["retry"]`` is explicitly False.
    """
    if error_code(error) in DENIED_CODES:
        return False

    request = request_of(error)
    if request is not None:
        options = request.extensions.get(NAMESPACE)
        if isinstance(options, Mapping) and options.get("retry") is False:
            return False

    return True


def is_network_error(error: BaseException) -> bool:
    """
    Check if the error is a retryable network-level failure.

    Args:
        error: The error to check

    Returns:
        True when no response was received, the error has a code (a
        cancelled request has none), the code is not a client-side
        timeout and the generic safety check allows it
    """
    code = error_code(error)
    return (
        response_of(error) is None
        and bool(code)
        and code != TIMEOUT_ABORT_CODE
        and is_retry_allowed(error)
    )


def is_retryable_error(error: BaseException) -> bool:
    """Check the error is not a timeout and has no response or a 5xx response."""
    if error_code(error) == TIMEOUT_ABORT_CODE:
        return False
    response = response_of(error)
    return response is None or 500 <= response.status_code <= 599


def is_idempotent_request_error(error: BaseException) -> bool:
    """
    Check if the error is retryable for an idempotent request.

    Args:
        error: The error to check

    Returns:
        Whether the failure is retryable and the method is one of
        GET, HEAD, OPTIONS, PUT, DELETE
    """
    request = request_of(error)
    if request is None:
        # Cannot determine if the request can be retried
        return False

    return is_retryable_error(error) and request.method.upper() in IDEMPOTENT_HTTP_METHODS


def is_network_or_idempotent_request_error(error: BaseException) -> bool:
    """Default retry predicate: a network error or an idempotent request error."""
    return is_network_error(error) or is_idempotent_request_error(error)
