"""Domain models for bulk operations and their results.

Operations are parsed once from an input file and are immutable afterwards.
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .common import ContentStatus

NonEmptyStr = Annotated[str, Field(min_length=1)]

OperationStatus = Literal["succeeded", "failed", "skipped"]


class _OperationBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: NonEmptyStr


class CreateOperation(_OperationBase):
    action: Literal["create"]
    payload: Dict[str, Any]

    @property
    def known_id(self) -> Optional[str]:
        return None


class UpdateOperation(_OperationBase):
    action: Literal["update"]
    id: NonEmptyStr
    payload: Dict[str, Any]

    @property
    def known_id(self) -> Optional[str]:
        return self.id


class DeleteOperation(_OperationBase):
    action: Literal["delete"]
    id: NonEmptyStr

    @property
    def known_id(self) -> Optional[str]:
        return self.id


class StatusOperation(_OperationBase):
    action: Literal["status"]
    id: NonEmptyStr
    status: ContentStatus

    @property
    def known_id(self) -> Optional[str]:
        return self.id


Operation = Annotated[
    Union[CreateOperation, UpdateOperation, DeleteOperation, StatusOperation],
    Field(discriminator="action"),
]


class OperationFile(BaseModel):
    """Top-level shape of a bulk operation file."""
    model_config = ConfigDict(extra="forbid")

    operations: Annotated[List[Operation], Field(min_length=1)]


@dataclass
class BulkRunOptions:
    """Execution options for one orchestrator run."""
    interval_ms: int = 0
    stop_on_error: bool = True
    validate_payload: bool = False
    strict_warnings: bool = False


@dataclass
class BulkResultItem:
    """Outcome of a single operation; ``index`` is 1-based and stable across runs."""
    index: int
    action: str
    endpoint: str
    status: OperationStatus
    id: Optional[str] = None
    data: Any = None
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            "index": self.index,
            "action": self.action,
            "endpoint": self.endpoint,
            "id": self.id,
            "status": self.status,
        }
        if self.data is not None:
            item["data"] = self.data
        if self.error is not None:
            item["error"] = self.error
        return item


@dataclass
class BulkRunResult:
    """Aggregate result of a bulk run. ``succeeded + failed + skipped == total``."""
    total: int
    stop_on_error: bool
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[BulkResultItem] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "stopOnError": self.stop_on_error,
            "results": [item.to_dict() for item in self.results],
        }
