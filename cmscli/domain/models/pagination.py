"""Domain models for paginated list responses and fetch-all state."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictInt

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_ITEMS = 100_000
DEFAULT_MAX_PAGES = 10_000


class ListPage(BaseModel):
    """Typed decode of one list page. Other keys are tolerated and ignored."""
    model_config = ConfigDict(extra="ignore")

    contents: List[Any]
    totalCount: StrictInt


@dataclass
class PageState:
    """Mutable accumulator of one fetch-all call. Never persisted."""
    offset: int
    page_size: int
    start_offset: int
    total_count: Optional[int] = None
    merged: List[Any] = field(default_factory=list)
    iteration: int = 0


@dataclass
class FetchAllResult:
    """Merged list in the same shape as a single page, plus the last request id."""
    data: Dict[str, Any]
    request_id: Optional[str] = None
