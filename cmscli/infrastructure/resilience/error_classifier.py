"""Maps transport and HTTP outcomes onto the error taxonomy.

The status table is deliberately irregular (408/425/429 are retryable
network errors, other 4xx are not) and must be kept exactly as is.
"""

import asyncio
import errno
import json
import logging
import socket
from typing import Any, Dict, Optional

import httpx

from cmscli.domain.models.errors import CliError, ErrorKind, ExitCode

logger = logging.getLogger(__name__)

RETRYABLE_NETWORK_STATUSES = frozenset({408, 425, 429})

NETWORK_ERRNOS = frozenset({
    errno.ECONNRESET,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
})

# Exception types that always mean "the request never got a proper answer".
NETWORK_EXCEPTIONS = (
    httpx.TransportError,
    asyncio.TimeoutError,
    ConnectionError,
    socket.gaierror,
)


def from_http_status(status: int, message: str, details: Any = None) -> CliError:
    """Classifies a non-2xx HTTP status."""
    if status == 401:
        return CliError(ErrorKind.AUTH_FAILED, message, ExitCode.AUTH, details, retryable=False)
    if status == 403:
        return CliError(ErrorKind.FORBIDDEN, message, ExitCode.PERMISSION, details, retryable=False)
    if status == 404:
        return CliError(ErrorKind.NOT_FOUND, message, ExitCode.INVALID_INPUT, details, retryable=False)
    if status == 409:
        return CliError(ErrorKind.CONFLICT, message, ExitCode.CONFLICT, details, retryable=False)
    if status in RETRYABLE_NETWORK_STATUSES:
        return CliError(ErrorKind.NETWORK_ERROR, message, ExitCode.NETWORK, details, retryable=True)
    if status >= 500:
        return CliError(ErrorKind.API_ERROR, message, ExitCode.NETWORK, details, retryable=True)
    return CliError(ErrorKind.API_ERROR, message, ExitCode.UNKNOWN, details, retryable=False)


def is_network_error(error: BaseException) -> bool:
    if isinstance(error, NETWORK_EXCEPTIONS):
        return True
    if isinstance(error, OSError) and error.errno in NETWORK_ERRNOS:
        return True
    return False


def classify_exception(error: BaseException) -> CliError:
    """Normalizes any exception into a ``CliError``."""
    if isinstance(error, CliError):
        return error

    if is_network_error(error):
        logger.debug(f"Classified {type(error).__name__} as network error: {error}")
        return CliError(
            ErrorKind.NETWORK_ERROR,
            "Network request failed",
            ExitCode.NETWORK,
            details=_error_details(error),
            retryable=True,
        )

    status = _status_code_of(error)
    if status is not None:
        return from_http_status(status, f"API request failed with status {status}", _error_details(error))

    return CliError(
        ErrorKind.UNKNOWN_ERROR,
        str(error) or "Unexpected error",
        ExitCode.UNKNOWN,
        details=_error_details(error),
        retryable=False,
    )


def timeout_error(timeout_ms: int) -> CliError:
    return CliError(
        ErrorKind.NETWORK_ERROR,
        f"Request timed out after {timeout_ms}ms",
        ExitCode.NETWORK,
        retryable=True,
    )


def parse_body(text: str) -> Any:
    """Parses a response body as JSON, keeping non-JSON text under ``raw``."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


def with_metadata(body: Any, metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Merges metadata into an object body, or wraps any other body."""
    if isinstance(body, dict):
        return {**body, **metadata}
    if body is None:
        return dict(metadata)
    return {"body": body, **metadata}


def _status_code_of(error: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _error_details(error: BaseException) -> Dict[str, Any]:
    return {"name": type(error).__name__, "message": str(error)}
