from typing import Any, Dict, List

import pytest

from cmscli.core.services.pagination import PaginatedFetcher
from cmscli.domain.models.errors import CliError, ErrorKind
from cmscli.domain.models.request import ApiResponse


class PagedCollection:
    """In-memory list endpoint honoring offset/limit."""

    def __init__(self, items: List[Any], total_counts: List[int] = None):
        self.items = items
        self.total_counts = total_counts
        self.queries: List[Dict[str, Any]] = []

    async def __call__(self, endpoint: str, queries: Dict[str, Any]) -> ApiResponse:
        self.queries.append(dict(queries))
        offset, limit = queries["offset"], queries["limit"]
        total = len(self.items)
        if self.total_counts:
            total = self.total_counts[min(len(self.queries) - 1, len(self.total_counts) - 1)]
        page = {"contents": self.items[offset:offset + limit], "totalCount": total, "offset": offset, "limit": limit}
        return ApiResponse(data=page, request_id=f"req-{len(self.queries)}")


@pytest.mark.asyncio
async def test_merges_all_pages_in_order():
    items = [{"id": str(i)} for i in range(7)]
    pages = PagedCollection(items)

    result = await PaginatedFetcher().fetch_all("notes", {"limit": 3, "orders": "-createdAt"}, pages)

    assert result.data == {"contents": items, "totalCount": 7, "offset": 0, "limit": 3}
    assert result.request_id == "req-3"
    assert [q["offset"] for q in pages.queries] == [0, 3, 6]
    assert all(q["orders"] == "-createdAt" for q in pages.queries)


@pytest.mark.asyncio
async def test_default_page_size_is_100():
    pages = PagedCollection([{"id": str(i)} for i in range(150)])

    result = await PaginatedFetcher().fetch_all("notes", None, pages)

    assert len(result.data["contents"]) == 150
    assert [q["limit"] for q in pages.queries] == [100, 100]


@pytest.mark.asyncio
async def test_offset_advances_by_items_returned():
    class ShortPages(PagedCollection):
        async def __call__(self, endpoint, queries):
            return await super().__call__(endpoint, {**queries, "limit": 2})

    pages = ShortPages([{"id": str(i)} for i in range(5)])

    result = await PaginatedFetcher().fetch_all("notes", {"limit": 10}, pages)

    assert len(result.data["contents"]) == 5
    assert [q["offset"] for q in pages.queries] == [0, 2, 4]


@pytest.mark.asyncio
async def test_stops_on_empty_page():
    pages = PagedCollection([], total_counts=[5])

    result = await PaginatedFetcher().fetch_all("notes", {"offset": 0}, pages)

    assert result.data["contents"] == []
    assert len(pages.queries) == 1


@pytest.mark.asyncio
async def test_inconsistent_total_count_fails_without_data():
    pages = PagedCollection([{"id": str(i)} for i in range(6)], total_counts=[6, 7])

    with pytest.raises(CliError) as excinfo:
        await PaginatedFetcher().fetch_all("notes", {"limit": 3}, pages)

    error = excinfo.value
    assert error.code == ErrorKind.API_ERROR
    assert error.message.startswith("inconsistent totalCount between pages")
    assert error.details["iteration"] == 2
    assert error.details["offset"] == 3


@pytest.mark.asyncio
async def test_failed_page_request_reports_its_position():
    pages = PagedCollection([{"id": str(i)} for i in range(6)])

    async def flaky(endpoint, queries):
        if queries["offset"] >= 3:
            raise CliError(
                ErrorKind.NETWORK_ERROR,
                "Network request failed",
                details={"retry": {"attempts": 3}},
                retryable=True,
            )
        return await pages(endpoint, queries)

    with pytest.raises(CliError) as excinfo:
        await PaginatedFetcher().fetch_all("notes", {"limit": 3}, flaky)

    error = excinfo.value
    assert error.code == ErrorKind.NETWORK_ERROR
    assert error.exit_code == 5
    assert error.retryable is True
    assert error.details == {"retry": {"attempts": 3}, "iteration": 2, "offset": 3}


@pytest.mark.asyncio
async def test_failed_first_request_without_details():
    async def unreachable(endpoint, queries):
        raise CliError(ErrorKind.AUTH_FAILED, "Authentication failed")

    with pytest.raises(CliError) as excinfo:
        await PaginatedFetcher().fetch_all("notes", {"offset": 40}, unreachable)

    assert excinfo.value.code == ErrorKind.AUTH_FAILED
    assert excinfo.value.details == {"iteration": 1, "offset": 40}


@pytest.mark.asyncio
async def test_safety_ceiling_is_enforced_and_configurable():
    items = [{"id": str(i)} for i in range(25)]

    with pytest.raises(CliError) as excinfo:
        await PaginatedFetcher(max_items=20).fetch_all("notes", {"limit": 10}, PagedCollection(items))
    assert excinfo.value.message.startswith("exceeded safety limit")
    assert excinfo.value.details["maxItems"] == 20

    result = await PaginatedFetcher(max_items=25).fetch_all("notes", {"limit": 10}, PagedCollection(items))
    assert len(result.data["contents"]) == 25


@pytest.mark.asyncio
async def test_page_cap():
    pages = PagedCollection([{"id": str(i)} for i in range(10)])

    with pytest.raises(CliError) as excinfo:
        await PaginatedFetcher(max_pages=2).fetch_all("notes", {"limit": 1}, pages)

    assert excinfo.value.message.startswith("safety cap")
    assert len(pages.queries) == 2


@pytest.mark.parametrize(
    "data",
    [
        {"contents": "nope", "totalCount": 1},
        {"contents": []},
        {"contents": [], "totalCount": "3"},
        [1, 2, 3],
        None,
    ],
)
@pytest.mark.asyncio
async def test_malformed_page_fails_closed(data):
    async def fetcher(endpoint, queries):
        return ApiResponse(data=data)

    with pytest.raises(CliError) as excinfo:
        await PaginatedFetcher().fetch_all("notes", {}, fetcher)

    assert excinfo.value.message.startswith("--all requires a list response containing contents/totalCount")


@pytest.mark.asyncio
async def test_repeated_fetches_are_identical():
    items = [{"id": str(i), "n": i} for i in range(12)]
    fetcher = PaginatedFetcher()

    first = await fetcher.fetch_all("notes", {"limit": 5}, PagedCollection(items))
    second = await fetcher.fetch_all("notes", {"limit": 5}, PagedCollection(items))

    assert first.data == second.data
    assert [item["id"] for item in first.data["contents"]] == [str(i) for i in range(12)]
