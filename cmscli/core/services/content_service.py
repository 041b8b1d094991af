"""Core service for single-item content operations and list queries."""

import logging
from typing import Any, Dict, List, Optional

from cmscli.core.services.pagination import PaginatedFetcher
from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.interfaces.management_api import ManagementApi
from cmscli.domain.models.common import SYSTEM_FIELDS, ContentStatus, Payload, Queries
from cmscli.domain.models.errors import invalid_input
from cmscli.domain.models.request import ApiResponse

logger = logging.getLogger(__name__)


def diff_fields(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    """Field-level diff of two content items, ignoring the fields the API manages.

    Added and changed entries follow the key order of ``after``, removed
    entries the key order of ``before``.
    """
    ignored = set(SYSTEM_FIELDS)
    added = [
        {"field": key, "value": value}
        for key, value in after.items()
        if key not in ignored and key not in before
    ]
    removed = [
        {"field": key, "value": value}
        for key, value in before.items()
        if key not in ignored and key not in after
    ]
    changed = [
        {"field": key, "before": before[key], "after": value}
        for key, value in after.items()
        if key not in ignored and key in before and before[key] != value
    ]
    return {"added": added, "removed": removed, "changed": changed}


class ContentService:
    """Orchestrates list/get/create/update/delete/status calls."""

    def __init__(
        self,
        content_api: ContentApi,
        fetcher: PaginatedFetcher,
        management_api: Optional[ManagementApi] = None,
    ):
        """Initializes the ContentService with its dependencies."""
        self.content_api = content_api
        self.fetcher = fetcher
        self.management_api = management_api

    def _management(self) -> ManagementApi:
        if self.management_api is None:
            raise invalid_input("Management API is not configured")
        return self.management_api

    async def list_content(self, endpoint: str, queries: Optional[Queries] = None, fetch_all: bool = False) -> ApiResponse:
        if not fetch_all:
            return await self.content_api.list_content(endpoint, queries)
        merged = await self.fetcher.fetch_all(endpoint, queries, self.content_api.list_content)
        return ApiResponse(data=merged.data, request_id=merged.request_id)

    async def get_content(self, endpoint: str, content_id: str, queries: Optional[Queries] = None) -> ApiResponse:
        return await self.content_api.get_content(endpoint, content_id, queries)

    async def create_content(
        self,
        endpoint: str,
        payload: Payload,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> ApiResponse:
        if dry_run:
            logger.info(f"Dry run: would create content in '{endpoint}'")
            return ApiResponse(data={"dryRun": True, "operation": "content.create", "endpoint": endpoint, "payload": payload})
        return await self.content_api.create_content(endpoint, payload, idempotency_key)

    async def update_content(
        self,
        endpoint: str,
        content_id: str,
        payload: Payload,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> ApiResponse:
        if dry_run:
            logger.info(f"Dry run: would update '{endpoint}/{content_id}'")
            return ApiResponse(
                data={"dryRun": True, "operation": "content.update", "endpoint": endpoint, "id": content_id, "payload": payload}
            )
        return await self.content_api.update_content(endpoint, content_id, payload, idempotency_key)

    async def delete_content(
        self,
        endpoint: str,
        content_id: str,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> ApiResponse:
        if dry_run:
            logger.info(f"Dry run: would delete '{endpoint}/{content_id}'")
            return ApiResponse(data={"dryRun": True, "operation": "content.delete", "endpoint": endpoint, "id": content_id})
        return await self.content_api.delete_content(endpoint, content_id, idempotency_key)

    async def set_status(
        self,
        endpoint: str,
        content_id: str,
        status: ContentStatus,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> ApiResponse:
        if dry_run:
            logger.info(f"Dry run: would set '{endpoint}/{content_id}' to {status}")
            return ApiResponse(
                data={"dryRun": True, "operation": "content.status", "endpoint": endpoint, "id": content_id, "status": status}
            )
        return await self.content_api.patch_content_status(endpoint, content_id, status, idempotency_key)

    async def diff_content(self, endpoint: str, content_id: str, draft_key: str) -> ApiResponse:
        """Compares the published item with one of its drafts."""
        if not draft_key:
            raise invalid_input("draftKey is required")
        published = await self.content_api.get_content(endpoint, content_id)
        draft = await self.content_api.get_content(endpoint, content_id, {"draftKey": draft_key})
        before = published.data if isinstance(published.data, dict) else {}
        after = draft.data if isinstance(draft.data, dict) else {}
        diff = diff_fields(before, after)
        has_diff = any(diff.values())
        logger.info(f"Diff of '{endpoint}/{content_id}' against its draft: {'changed' if has_diff else 'unchanged'}")
        return ApiResponse(
            data={
                "operation": "content.diff",
                "endpoint": endpoint,
                "id": content_id,
                "draftKey": draft_key,
                "hasDiff": has_diff,
                **diff,
            },
            request_id=draft.request_id or published.request_id,
        )

    # --- Management API ---

    async def list_meta(self, endpoint: str, queries: Optional[Queries] = None) -> ApiResponse:
        return await self._management().list_content_meta(endpoint, queries)

    async def get_meta(self, endpoint: str, content_id: str) -> ApiResponse:
        return await self._management().get_content_meta(endpoint, content_id)

    async def set_created_by(
        self,
        endpoint: str,
        content_id: str,
        member_id: str,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> ApiResponse:
        if not member_id:
            raise invalid_input("memberId is required")
        if dry_run:
            logger.info(f"Dry run: would set creator of '{endpoint}/{content_id}' to {member_id}")
            return ApiResponse(
                data={
                    "dryRun": True,
                    "operation": "content.created-by",
                    "endpoint": endpoint,
                    "id": content_id,
                    "memberId": member_id,
                }
            )
        return await self._management().patch_content_created_by(endpoint, content_id, member_id, idempotency_key)
