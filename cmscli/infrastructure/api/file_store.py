"""File-backed implementation of the ContentApi interface.

Lets every command run offline against a JSON document of the shape
``{"nextId": 1, "endpoints": {endpoint: {id: fields}}, "schemas": {endpoint: schema},
"drafts": {endpoint: {id: {draftKey: fields}}}}``. Reads with a ``draftKey`` query
return the stored draft instead of the published item.
Errors use the same classification as the HTTP client (missing items are 404s).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.models.common import ContentStatus, Payload, Queries
from cmscli.domain.models.request import ApiResponse
from cmscli.infrastructure.resilience.error_classifier import from_http_status

logger = logging.getLogger(__name__)

STORE_REQUEST_ID = "mock-file-request"
DEFAULT_LIST_LIMIT = 10


class FileContentStore(ContentApi):
    """Content store persisted to a single JSON file."""

    def __init__(self, path: str):
        self.path = Path(path)
        logger.info(f"FileContentStore initialized: {self.path}")

    async def _load(self) -> Dict[str, Any]:
        try:
            async with aiofiles.open(self.path, mode="r", encoding="utf-8") as f:
                parsed = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.debug(f"Starting from an empty store ({e})")
            parsed = {}
        if not isinstance(parsed, dict):
            parsed = {}
        return {
            "nextId": parsed.get("nextId") if isinstance(parsed.get("nextId"), int) else 1,
            "endpoints": parsed.get("endpoints") if isinstance(parsed.get("endpoints"), dict) else {},
            "schemas": parsed.get("schemas") if isinstance(parsed.get("schemas"), dict) else {},
            "drafts": parsed.get("drafts") if isinstance(parsed.get("drafts"), dict) else {},
        }

    async def _save(self, store: Dict[str, Any]) -> None:
        async with aiofiles.open(self.path, mode="w", encoding="utf-8") as f:
            await f.write(json.dumps(store, indent=2, ensure_ascii=False))

    @staticmethod
    def _not_found(endpoint: str, content_id: str):
        return from_http_status(404, "content not found", {"endpoint": endpoint, "contentId": content_id})

    async def list_content(self, endpoint: str, queries: Optional[Queries] = None) -> ApiResponse:
        store = await self._load()
        queries = queries or {}
        offset = int(queries.get("offset") or 0)
        limit = int(queries.get("limit") or DEFAULT_LIST_LIMIT)
        items = [{"id": item_id, **fields} for item_id, fields in store["endpoints"].get(endpoint, {}).items()]
        return ApiResponse(
            data={
                "contents": items[offset:offset + limit],
                "totalCount": len(items),
                "offset": offset,
                "limit": limit,
            },
            request_id=STORE_REQUEST_ID,
        )

    async def get_content(self, endpoint: str, content_id: str, queries: Optional[Queries] = None) -> ApiResponse:
        store = await self._load()
        draft_key = (queries or {}).get("draftKey")
        if draft_key:
            hit = store["drafts"].get(endpoint, {}).get(content_id, {}).get(draft_key)
        else:
            hit = store["endpoints"].get(endpoint, {}).get(content_id)
        if hit is None:
            raise self._not_found(endpoint, content_id)
        return ApiResponse(data={"id": content_id, **hit}, request_id=STORE_REQUEST_ID)

    async def create_content(
        self, endpoint: str, payload: Payload, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        store = await self._load()
        content_id = f"mock-created-{store['nextId']}"
        store["nextId"] += 1
        store["endpoints"].setdefault(endpoint, {})[content_id] = dict(payload)
        await self._save(store)
        return ApiResponse(data={"id": content_id, **payload}, request_id=STORE_REQUEST_ID)

    async def update_content(
        self, endpoint: str, content_id: str, payload: Payload, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        store = await self._load()
        items = store["endpoints"].get(endpoint, {})
        if content_id not in items:
            raise self._not_found(endpoint, content_id)
        items[content_id] = {**items[content_id], **payload}
        store["endpoints"][endpoint] = items
        await self._save(store)
        return ApiResponse(data={"id": content_id}, request_id=STORE_REQUEST_ID)

    async def delete_content(
        self, endpoint: str, content_id: str, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        store = await self._load()
        items = store["endpoints"].get(endpoint, {})
        if content_id not in items:
            raise self._not_found(endpoint, content_id)
        del items[content_id]
        store["endpoints"][endpoint] = items
        await self._save(store)
        return ApiResponse(data={"id": content_id, "deleted": True}, request_id=STORE_REQUEST_ID)

    async def patch_content_status(
        self, endpoint: str, content_id: str, status: ContentStatus, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        store = await self._load()
        items = store["endpoints"].get(endpoint, {})
        if content_id not in items:
            raise self._not_found(endpoint, content_id)
        items[content_id] = {**items[content_id], "_status": status}
        await self._save(store)
        return ApiResponse(data={"id": content_id, "status": [status]}, request_id=STORE_REQUEST_ID)

    async def get_api_info(self, endpoint: str) -> ApiResponse:
        store = await self._load()
        schema = store["schemas"].get(endpoint)
        if schema is None:
            raise from_http_status(404, "api schema not found", {"endpoint": endpoint})
        return ApiResponse(data=schema, request_id=STORE_REQUEST_ID)
