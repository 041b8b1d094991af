"""Concrete implementation of the Transport interface using httpx.

One ``httpx.AsyncClient`` is shared by all attempts of an invocation.
Timeouts are enforced by the request executor, so the client itself is
configured without one.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from cmscli.domain.interfaces.transport import Transport
from cmscli.domain.models.request import RawResponse, RequestDescriptor

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-MICROCMS-API-KEY"
USER_AGENT = "cmscli"


class HttpxTransport(Transport):
    """Sends JSON or multipart requests with the API key header attached."""

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=None, headers={"User-Agent": USER_AGENT})
        logger.debug("HttpxTransport initialized.")

    def _build_headers(self, descriptor: RequestDescriptor) -> Dict[str, str]:
        # httpx sets the multipart Content-Type with its boundary
        headers = {} if descriptor.files else {"Content-Type": "application/json"}
        headers[API_KEY_HEADER] = self.api_key
        headers.update(descriptor.headers)
        return headers

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        if descriptor.files:
            files = [(part.field_name, (part.filename, part.content, part.content_type)) for part in descriptor.files]
            logger.debug(f"Sending multipart {descriptor.method} with {len(files)} file part(s)")
            response = await self._client.request(
                descriptor.method,
                descriptor.url,
                headers=self._build_headers(descriptor),
                files=files,
            )
            return to_raw_response(response)

        content: Optional[bytes] = None
        if descriptor.body is not None:
            content = json.dumps(descriptor.body, ensure_ascii=False).encode("utf-8")

        response = await self._client.request(
            descriptor.method,
            descriptor.url,
            headers=self._build_headers(descriptor),
            content=content,
        )
        return to_raw_response(response)

    async def aclose(self) -> None:
        await self._client.aclose()


def to_raw_response(response: Any) -> RawResponse:
    """Reads an httpx response into the transport-neutral shape."""
    return RawResponse(
        status=response.status_code,
        headers={key.lower(): value for key, value in response.headers.items()},
        text=response.text,
    )
