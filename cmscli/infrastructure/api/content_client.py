"""Concrete implementation of the ContentApi and ManagementApi interfaces over HTTP.

Builds content and management API URLs for a service domain and routes every
call through the retry-aware request executor.
"""

import logging
from typing import Any, List, Optional, Tuple
from urllib.parse import quote, urlencode

from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.interfaces.management_api import ManagementApi
from cmscli.domain.interfaces.transport import Transport
from cmscli.domain.models.common import ContentStatus, HttpMethod, Payload, Queries
from cmscli.domain.models.errors import CliError, ErrorKind, ExitCode
from cmscli.domain.models.request import ApiResponse, FormFile, RequestDescriptor
from cmscli.infrastructure.resilience.api_retry import RequestExecutor

logger = logging.getLogger(__name__)

CONTENT_DOMAIN = "microcms.io"
MANAGEMENT_DOMAIN = "microcms-management.io"


class ContentApiClient(ContentApi, ManagementApi):
    """HTTP client for the content and management APIs."""

    def __init__(
        self,
        service_domain: Optional[str],
        api_key: Optional[str],
        executor: RequestExecutor,
        transport: Optional[Transport],
        timeout_ms: int = 10_000,
        retry: int = 2,
        retry_max_delay_ms: int = 3_000,
        verbose: bool = False,
        content_base_url: Optional[str] = None,
        management_base_url: Optional[str] = None,
    ):
        """Initializes the client.

        Args:
            service_domain: Tenant sub-domain, e.g. ``example`` for example.microcms.io.
            api_key: API key sent as X-MICROCMS-API-KEY by the transport.
            executor: Retry-aware request executor.
            transport: Physical transport used as the executor's sender.
            content_base_url: Already-validated origin overriding the content API host.
            management_base_url: Already-validated origin overriding the management API host.
        """
        self.service_domain = service_domain
        self.api_key = api_key
        self.executor = executor
        self.transport = transport
        self.timeout_ms = timeout_ms
        self.retry = retry
        self.retry_max_delay_ms = retry_max_delay_ms
        self.verbose = verbose
        self.content_base_url = content_base_url
        self.management_base_url = management_base_url

    # --- ContentApi ---

    async def list_content(self, endpoint: str, queries: Optional[Queries] = None) -> ApiResponse:
        return await self._request("GET", self._content_url([endpoint], queries))

    async def get_content(self, endpoint: str, content_id: str, queries: Optional[Queries] = None) -> ApiResponse:
        return await self._request("GET", self._content_url([endpoint, content_id], queries))

    async def create_content(
        self, endpoint: str, payload: Payload, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        return await self._request("POST", self._content_url([endpoint]), payload, idempotency_key)

    async def update_content(
        self, endpoint: str, content_id: str, payload: Payload, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        return await self._request("PATCH", self._content_url([endpoint, content_id]), payload, idempotency_key)

    async def delete_content(
        self, endpoint: str, content_id: str, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        result = await self._request("DELETE", self._content_url([endpoint, content_id]), None, idempotency_key)
        if not isinstance(result.data, dict) or not result.data:
            result.data = {"id": content_id, "deleted": True}
        return result

    async def patch_content_status(
        self, endpoint: str, content_id: str, status: ContentStatus, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        url = self._management_url(["contents", endpoint, content_id, "status"])
        return await self._request("PATCH", url, {"status": [status]}, idempotency_key)

    async def get_api_info(self, endpoint: str) -> ApiResponse:
        return await self._request("GET", self._management_url(["apis", endpoint]))

    # --- ManagementApi ---

    async def list_content_meta(self, endpoint: str, queries: Optional[Queries] = None) -> ApiResponse:
        return await self._request("GET", self._management_url(["contents", endpoint], queries))

    async def get_content_meta(self, endpoint: str, content_id: str) -> ApiResponse:
        return await self._request("GET", self._management_url(["contents", endpoint, content_id]))

    async def patch_content_created_by(
        self, endpoint: str, content_id: str, member_id: str, idempotency_key: Optional[str] = None
    ) -> ApiResponse:
        url = self._management_url(["contents", endpoint, content_id, "createdBy"])
        return await self._request("PATCH", url, {"createdBy": member_id}, idempotency_key)

    async def list_media(self, queries: Optional[Queries] = None) -> ApiResponse:
        return await self._request("GET", self._management_url(["media"], queries, version="v2"))

    async def upload_media(self, upload: FormFile, idempotency_key: Optional[str] = None) -> ApiResponse:
        logger.info(f"Uploading media '{upload.filename}' ({len(upload.content)} bytes, {upload.content_type})")
        return await self._request("POST", self._management_url(["media"]), None, idempotency_key, files=(upload,))

    async def delete_media(self, url: str, idempotency_key: Optional[str] = None) -> ApiResponse:
        result = await self._request(
            "DELETE", self._management_url(["media"], {"url": url}, version="v2"), None, idempotency_key
        )
        if not isinstance(result.data, dict) or not result.data:
            result.data = {"url": url, "deleted": True}
        return result

    # --- Internals ---

    async def _request(
        self,
        method: HttpMethod,
        url: str,
        body: Any = None,
        idempotency_key: Optional[str] = None,
        files: Tuple[FormFile, ...] = (),
    ) -> ApiResponse:
        self._assert_auth()
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        descriptor = RequestDescriptor(
            method=method,
            url=url,
            headers=headers,
            body=body,
            files=files,
            timeout_ms=self.timeout_ms,
            retry=self.retry,
            retry_max_delay_ms=self.retry_max_delay_ms,
            verbose=self.verbose,
        )
        result = await self.executor.execute(descriptor, self.transport.send)
        return result.unwrap()

    def _assert_auth(self) -> None:
        if not self.service_domain:
            raise CliError(
                ErrorKind.INVALID_INPUT,
                "Service domain is required. Pass --service-domain or set CMSCLI_SERVICE_DOMAIN.",
                ExitCode.INVALID_INPUT,
            )
        if not self.api_key:
            raise CliError(
                ErrorKind.AUTH_FAILED,
                "API key is required. Pass --api-key or set CMSCLI_API_KEY.",
                ExitCode.AUTH,
            )
        if self.transport is None:
            raise CliError(ErrorKind.UNKNOWN_ERROR, "No transport configured", ExitCode.UNKNOWN)

    def _content_url(self, parts: List[str], queries: Optional[Queries] = None) -> str:
        origin = self.content_base_url or tenant_origin(self.service_domain or "", CONTENT_DOMAIN)
        return build_api_url(origin, "v1", parts, queries)

    def _management_url(self, parts: List[str], queries: Optional[Queries] = None, version: str = "v1") -> str:
        origin = self.management_base_url or tenant_origin(self.service_domain or "", MANAGEMENT_DOMAIN)
        return build_api_url(origin, version, parts, queries)


def tenant_origin(service_domain: str, base_domain: str) -> str:
    return f"https://{service_domain}.{base_domain}"


def build_api_url(origin: str, version: str, parts: List[str], queries: Optional[Queries] = None) -> str:
    """Builds ``{origin}/api/{version}/{parts...}?{queries}`` with encoded segments."""
    path = "/".join(quote(str(part), safe="") for part in parts)
    url = f"{origin.rstrip('/')}/api/{version}/{path}"
    if not queries:
        return url

    pairs = [(key, _query_value(value)) for key, value in queries.items() if value is not None]
    if not pairs:
        return url
    return f"{url}?{urlencode(pairs)}"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
