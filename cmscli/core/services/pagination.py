"""Core service that merges every page of a list endpoint into one result.

The fetcher trusts nothing about the server: each page is decoded by a
typed model, ``totalCount`` must not change between pages, and both the
merged item count and the number of requests are capped. Any violation
aborts the whole call; partial data is never returned.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from cmscli.domain.models.common import Queries
from cmscli.domain.models.errors import CliError, ErrorKind, ExitCode
from cmscli.domain.models.pagination import (
    DEFAULT_MAX_ITEMS,
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    FetchAllResult,
    ListPage,
    PageState,
)
from cmscli.domain.models.request import ApiResponse
from cmscli.infrastructure.resilience.error_classifier import with_metadata

logger = logging.getLogger(__name__)

PageFetcher = Callable[[str, Queries], Awaitable[ApiResponse]]


class PaginatedFetcher:
    """Sequential offset/limit pager with consistency and safety checks."""

    def __init__(self, max_items: int = DEFAULT_MAX_ITEMS, max_pages: int = DEFAULT_MAX_PAGES):
        """Initializes the fetcher.

        Args:
            max_items: Ceiling on merged items. Crossing it is a hard failure.
            max_pages: Ceiling on page requests per call.
        """
        self.max_items = max_items
        self.max_pages = max_pages

    async def fetch_all(
        self,
        endpoint: str,
        queries: Optional[Queries],
        page_fetcher: PageFetcher,
    ) -> FetchAllResult:
        """Fetches pages until the collection is exhausted.

        Args:
            endpoint: The list endpoint.
            queries: Caller queries; ``offset`` and ``limit`` set the start and page size.
            page_fetcher: Coroutine returning one page, usually ``ContentApi.list_content``.

        Returns:
            FetchAllResult with ``{contents, totalCount, offset, limit}`` and the last request id.

        Raises:
            CliError: API_ERROR on a malformed or inconsistent page, or when a safety bound is hit.
                A failed page request is re-raised with ``iteration`` and ``offset`` added to its details.
        """
        base_queries: Dict[str, Any] = dict(queries or {})
        page_size = int(base_queries.get("limit") or DEFAULT_PAGE_SIZE)
        start_offset = int(base_queries.get("offset") or 0)
        state = PageState(offset=start_offset, page_size=page_size, start_offset=start_offset)
        request_id: Optional[str] = None

        logger.info(f"Fetching all items of '{endpoint}' (page size {page_size}, offset {start_offset})")
        while True:
            if state.iteration >= self.max_pages:
                raise self._failure(
                    f"safety cap of {self.max_pages} page requests reached before the list was exhausted",
                    state,
                )

            try:
                response = await page_fetcher(endpoint, {**base_queries, "limit": page_size, "offset": state.offset})
            except CliError as e:
                logger.warning(f"Fetch-all of '{endpoint}' failed on page {state.iteration + 1} at offset {state.offset}")
                raise e.with_details(
                    with_metadata(e.details, {"iteration": state.iteration + 1, "offset": state.offset})
                ) from e
            state.iteration += 1
            request_id = response.request_id
            page = self._decode(response.data, state)

            if state.total_count is None:
                state.total_count = page.totalCount
            elif page.totalCount != state.total_count:
                raise self._failure(
                    f"inconsistent totalCount between pages (first {state.total_count}, now {page.totalCount})",
                    state,
                    {"expectedTotalCount": state.total_count, "actualTotalCount": page.totalCount},
                )

            if len(state.merged) + len(page.contents) > self.max_items:
                raise self._failure(
                    f"exceeded safety limit of {self.max_items} items while merging pages",
                    state,
                    {"maxItems": self.max_items},
                )
            state.merged.extend(page.contents)
            logger.debug(
                f"Page {state.iteration} of '{endpoint}': {len(page.contents)} items "
                f"(merged {len(state.merged)}/{state.total_count})"
            )

            if len(state.merged) >= state.total_count or not page.contents:
                break
            state.offset += len(page.contents)

        logger.info(f"Fetched {len(state.merged)} items of '{endpoint}' in {state.iteration} request(s)")
        return FetchAllResult(
            data={
                "contents": state.merged,
                "totalCount": state.total_count,
                "offset": start_offset,
                "limit": page_size,
            },
            request_id=request_id,
        )

    def _decode(self, data: Any, state: PageState) -> ListPage:
        try:
            return ListPage.model_validate(data)
        except ValidationError as e:
            raise self._failure(
                "--all requires a list response containing contents/totalCount",
                state,
            ) from e

    @staticmethod
    def _failure(message: str, state: PageState, extra: Optional[Dict[str, Any]] = None) -> CliError:
        details = {"iteration": state.iteration, "offset": state.offset, **(extra or {})}
        logger.warning(f"Fetch-all aborted: {message}")
        return CliError(ErrorKind.API_ERROR, message, ExitCode.UNKNOWN, details=details, retryable=False)
