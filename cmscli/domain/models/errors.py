"""Error taxonomy shared by every layer.

Each ``ErrorKind`` maps to exactly one process exit code (``ApiError`` is the
exception: server-side failures exit with the network code, everything else
with the generic code). ``CliError`` is the only exception type that crosses
layer boundaries.
"""

from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class ExitCode(IntEnum):
    """Process exit statuses used by the CLI."""
    SUCCESS = 0
    UNKNOWN = 1
    INVALID_INPUT = 2
    AUTH = 3
    PERMISSION = 4
    NETWORK = 5
    CONFLICT = 6


class ErrorKind(str, Enum):
    """Closed set of error kinds exposed in machine-readable output."""
    INVALID_INPUT = "INVALID_INPUT"
    AUTH_FAILED = "AUTH_FAILED"
    FORBIDDEN = "FORBIDDEN"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    API_ERROR = "API_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Default exit code per kind. API_ERROR is decided by the classifier.
DEFAULT_EXIT_CODES: Dict[ErrorKind, ExitCode] = {
    ErrorKind.INVALID_INPUT: ExitCode.INVALID_INPUT,
    ErrorKind.AUTH_FAILED: ExitCode.AUTH,
    ErrorKind.FORBIDDEN: ExitCode.PERMISSION,
    ErrorKind.NETWORK_ERROR: ExitCode.NETWORK,
    ErrorKind.CONFLICT: ExitCode.CONFLICT,
    ErrorKind.NOT_FOUND: ExitCode.INVALID_INPUT,
    ErrorKind.API_ERROR: ExitCode.UNKNOWN,
    ErrorKind.UNKNOWN_ERROR: ExitCode.UNKNOWN,
}


class CliError(Exception):
    """A classified failure carrying an exit code and a retryable flag."""

    def __init__(
        self,
        code: ErrorKind,
        message: str,
        exit_code: Optional[ExitCode] = None,
        details: Any = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = ErrorKind(code)
        self.message = message
        self.exit_code = ExitCode(exit_code) if exit_code is not None else DEFAULT_EXIT_CODES[self.code]
        self.details = details
        self.retryable = bool(retryable)

    def with_details(self, details: Any) -> "CliError":
        """Returns a copy of this error with ``details`` replaced."""
        return CliError(
            code=self.code,
            message=self.message,
            exit_code=self.exit_code,
            details=details,
            retryable=self.retryable,
        )

    def to_json(self, include_details: bool = False) -> Dict[str, Any]:
        """Serializes the error for the machine-readable error envelope."""
        payload: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if include_details and self.details is not None:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"CliError(code={self.code.value}, exit_code={int(self.exit_code)}, message={self.message!r})"


def invalid_input(message: str, details: Any = None) -> CliError:
    """Shorthand for the most common user-facing error."""
    return CliError(ErrorKind.INVALID_INPUT, message, details=details)


class PayloadValidationError(CliError):
    """INVALID_INPUT raised by the payload precheck.

    Rendered with details even outside verbose mode: they are needed to fix
    the input.
    """

    def __init__(self, message: str, details: Dict[str, Any]):
        super().__init__(ErrorKind.INVALID_INPUT, message, details=details)
