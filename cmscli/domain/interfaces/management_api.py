"""Interface for the management API operations that have no offline counterpart.

Content metadata, authorship changes and media live on the management host
only, so unlike ``ContentApi`` this port is implemented by the HTTP client
alone.
"""

import abc
from typing import Optional

from ..models.common import Queries
from ..models.request import ApiResponse, FormFile


class ManagementApi(abc.ABC):
    """Abstract Base Class for management API access."""

    @abc.abstractmethod
    async def list_content_meta(self, endpoint: str, queries: Optional[Queries] = None) -> ApiResponse:
        """Lists content metadata (status, authors, timestamps) of an endpoint."""
        pass

    @abc.abstractmethod
    async def get_content_meta(self, endpoint: str, content_id: str) -> ApiResponse:
        pass

    @abc.abstractmethod
    async def patch_content_created_by(
        self, endpoint: str, content_id: str, member_id: str, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        """Reassigns the creator of a content item to another member."""
        pass

    @abc.abstractmethod
    async def list_media(self, queries: Optional[Queries] = None) -> ApiResponse:
        """Lists media files. Pagination is token based (``token`` query)."""
        pass

    @abc.abstractmethod
    async def upload_media(self, upload: FormFile, idempotency_key: Optional[str] = None) -> ApiResponse:
        """Uploads one file as multipart/form-data.

        Without an idempotency key the upload is attempted exactly once.
        """
        pass

    @abc.abstractmethod
    async def delete_media(self, url: str, idempotency_key: Optional[str] = None) -> ApiResponse:
        pass
