"""Interface for the remote content API.

Defines the operations the core services need. The HTTP client and the
file-backed store both implement it with identical contracts, which is what
lets the fetcher and the orchestrator run without a network.
"""

import abc
from typing import Optional

from ..models.common import ContentStatus, Payload, Queries
from ..models.request import ApiResponse


class ContentApi(abc.ABC):
    """Abstract Base Class for content API access."""

    @abc.abstractmethod
    async def list_content(self, endpoint: str, queries: Optional[Queries] = None) -> ApiResponse:
        """Fetches one page of an endpoint's list.

        Returns:
            An ApiResponse whose data is ``{contents, totalCount, offset, limit}``.
        """
        pass

    @abc.abstractmethod
    async def get_content(self, endpoint: str, content_id: str, queries: Optional[Queries] = None) -> ApiResponse:
        pass

    @abc.abstractmethod
    async def create_content(
        self, endpoint: str, payload: Payload, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        """Creates a content item. The response data carries the new ``id``."""
        pass

    @abc.abstractmethod
    async def update_content(
        self, endpoint: str, content_id: str, payload: Payload, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        pass

    @abc.abstractmethod
    async def delete_content(
        self, endpoint: str, content_id: str, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        pass

    @abc.abstractmethod
    async def patch_content_status(
        self, endpoint: str, content_id: str, status: ContentStatus, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        """Switches the publish status of one content item."""
        pass

    @abc.abstractmethod
    async def get_api_info(self, endpoint: str) -> ApiResponse:
        """Fetches the API schema of an endpoint (used for payload validation)."""
        pass
