"""Domain models related to a single logical API request.

Includes the immutable request descriptor, the retry policy derived from it,
the raw transport response and the explicit execution result returned by the
request executor.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping, Optional, Tuple, Union

from .common import HttpMethod
from .errors import CliError

RetryReason = Literal["safe_method", "idempotency_key", "unsafe_method"]

IDEMPOTENCY_HEADERS = ("idempotency-key", "x-idempotency-key")


@dataclass(frozen=True)
class FormFile:
    """One file part of a multipart/form-data body."""
    field_name: str
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def __repr__(self) -> str:
        return f"FormFile(field_name={self.field_name!r}, filename={self.filename!r}, size={len(self.content)})"


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to perform one logical request. Immutable once built."""
    method: HttpMethod
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    files: Tuple[FormFile, ...] = ()  # multipart parts; ``body`` is ignored when set
    timeout_ms: int = 10_000
    retry: int = 2  # retry budget, i.e. max attempts - 1
    retry_max_delay_ms: int = 3_000
    verbose: bool = False

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "files", tuple(self.files))

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True)
class RetryPolicy:
    """Whether a request may be retried, and why."""
    allowed: bool
    reason: RetryReason

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "reason": self.reason}


@dataclass
class RawResponse:
    """One physical HTTP response as seen by the executor."""
    status: int
    headers: Mapping[str, str]
    text: str = ""

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class ApiResponse:
    """Successful response: parsed body plus the request id, threaded explicitly."""
    data: Any
    request_id: Optional[str] = None
    status: int = 200


@dataclass
class ExecutionResult:
    """Result of ``RequestExecutor.execute``: a response or a final error, never both."""
    response: Optional[ApiResponse] = None
    error: Optional[CliError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ApiResponse:
        """Returns the response or raises the classified error."""
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


AttemptOutcome = Union[ApiResponse, CliError]
