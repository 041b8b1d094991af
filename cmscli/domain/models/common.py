"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like endpoints, content ids and
request ids, ensuring consistency and type safety.
"""

from typing import Any, Dict, Literal, NewType, Optional, TypedDict

# === Core Value Objects ===

Endpoint = NewType("Endpoint", str)        # API endpoint name, e.g. 'notes'
ContentId = NewType("ContentId", str)      # Identifier of a single content item
RequestId = NewType("RequestId", str)      # Value of the x-request-id response header
FilePath = NewType("FilePath", str)        # Path to an input/output file

HttpMethod = Literal["GET", "POST", "PATCH", "PUT", "DELETE"]
ContentStatus = Literal["PUBLISH", "DRAFT"]
OutputMode = Literal["inspect", "plain", "table"]

Payload = Dict[str, Any]
Queries = Dict[str, Any]

# Read-only fields the API sets itself
SYSTEM_FIELDS = ("id", "createdAt", "updatedAt", "publishedAt", "revisedAt")

# === Response Metadata ===

class ErrorMetadata(TypedDict, total=False):
    """Metadata merged into the details of every HTTP-classified error."""
    status: int
    requestId: Optional[str]
    retryAfterMs: Optional[int]

class RetryDiagnostics(TypedDict):
    """Retry bookkeeping attached to a final request failure."""
    attempts: int
    retriesUsed: int
    maxAttempts: int
    policy: Dict[str, Any]
