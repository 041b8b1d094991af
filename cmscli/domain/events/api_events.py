"""Domain Events related to API calls and bulk runs.

Examples include events for when a retry is scheduled or skipped, and for
every finished step of a bulk run. ``describe()`` renders the one-line form
written to the diagnostics sink.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""

    def describe(self) -> str:
        raise NotImplementedError


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a failed attempt will be retried."""
    error_code: str
    attempt_number: int
    max_attempts: int
    delay_ms: int
    timestamp: float = field(default_factory=time.time)

    def describe(self) -> str:
        return (
            f"[retry] {self.error_code} on attempt {self.attempt_number}/{self.max_attempts}, "
            f"retrying attempt {self.attempt_number + 1} in {self.delay_ms}ms"
        )


@dataclass
class RetrySkipped(DomainEvent):
    """Event triggered when a retryable failure is not retried because the write is not retry-safe."""
    method: str
    safe_url: str
    timestamp: float = field(default_factory=time.time)

    def describe(self) -> str:
        return (
            f"[retry] skipped for {self.method} {self.safe_url} because request is not retry-safe "
            "(set an idempotency key to enable)"
        )


@dataclass
class OperationCompleted(DomainEvent):
    """Event triggered when one bulk step has finished (or was skipped)."""
    index: int
    total: int
    outcome: str  # Succeeded / Failed / Skipped / Created / Updated
    action: str
    endpoint: str
    content_id: Optional[str] = None
    message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def describe(self) -> str:
        line = f"[{self.index}/{self.total}] {self.outcome}: {self.action} {self.endpoint}"
        if self.content_id:
            line += f" {self.content_id}"
        if self.message:
            line += f" ({self.message})"
        return line
