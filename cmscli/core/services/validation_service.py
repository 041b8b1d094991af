"""Core service behind the standalone ``validate`` command."""

import logging

from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.models.common import Payload
from cmscli.domain.models.errors import PayloadValidationError
from cmscli.domain.models.request import ApiResponse
from cmscli.infrastructure.validation.payload_validator import validate_payload

logger = logging.getLogger(__name__)


class ValidationService:
    """Checks one payload against the live schema of an endpoint."""

    def __init__(self, content_api: ContentApi, validator=validate_payload):
        self.content_api = content_api
        self.validator = validator

    async def validate(self, endpoint: str, payload: Payload, strict_warnings: bool = False) -> ApiResponse:
        """Validates the payload, raising PayloadValidationError when it must be rejected."""
        api_info = await self.content_api.get_api_info(endpoint)
        result = self.validator(payload, api_info.data)
        logger.info(f"Validation of payload for '{endpoint}': valid={result.valid}, warnings={len(result.warnings)}")

        if result.fails(strict_warnings):
            raise PayloadValidationError(
                "Payload validation failed",
                {**result.to_dict(), "strictWarnings": strict_warnings},
            )
        return ApiResponse(data={"endpoint": endpoint, **result.to_dict()}, request_id=api_info.request_id)
