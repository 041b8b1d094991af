"""Core service for media list, upload and delete.

Uploads are multipart POSTs: the request executor attempts them exactly once
unless the caller supplies an idempotency key.
"""

import logging
from pathlib import PurePath
from typing import Optional
from urllib.parse import urlsplit

from cmscli.domain.interfaces.file_system import FileSystem
from cmscli.domain.interfaces.management_api import ManagementApi
from cmscli.domain.models.common import FilePath, Queries
from cmscli.domain.models.errors import invalid_input
from cmscli.domain.models.request import ApiResponse, FormFile

logger = logging.getLogger(__name__)

MEDIA_FORM_FIELD = "file"
MEDIA_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
}


def guess_media_content_type(path: str) -> str:
    return MEDIA_CONTENT_TYPES.get(PurePath(path).suffix.lower(), "application/octet-stream")


def parse_media_url(value: str) -> str:
    """Accepts absolute http(s) URLs only."""
    try:
        parts = urlsplit(value)
    except ValueError:
        parts = None
    if parts is None or parts.scheme not in ("http", "https") or not parts.netloc:
        raise invalid_input(f"Invalid url: {value}. Expected a valid http(s) URL.")
    return value


class MediaService:
    """Media operations on the management API."""

    def __init__(self, management_api: ManagementApi, file_system: FileSystem):
        self.management_api = management_api
        self.file_system = file_system

    async def list_media(self, queries: Optional[Queries] = None) -> ApiResponse:
        return await self.management_api.list_media(queries)

    async def upload(self, path: str, dry_run: bool = False, idempotency_key: Optional[str] = None) -> ApiResponse:
        """Uploads a local file, or describes the upload when ``dry_run`` is set."""
        size = await self.file_system.file_size(FilePath(path))
        if dry_run:
            logger.info(f"Dry run: would upload '{path}' ({size} bytes)")
            return ApiResponse(data={"dryRun": True, "operation": "media.upload", "path": path, "size": size})

        upload = FormFile(
            field_name=MEDIA_FORM_FIELD,
            filename=PurePath(path).name,
            content=await self.file_system.read_bytes(FilePath(path)),
            content_type=guess_media_content_type(path),
        )
        return await self.management_api.upload_media(upload, idempotency_key)

    async def delete(self, url: str, dry_run: bool = False, idempotency_key: Optional[str] = None) -> ApiResponse:
        media_url = parse_media_url(url)
        if dry_run:
            logger.info(f"Dry run: would delete media {media_url}")
            return ApiResponse(data={"dryRun": True, "operation": "media.delete", "url": media_url})
        return await self.management_api.delete_media(media_url, idempotency_key)
