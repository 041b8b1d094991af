"""Core service for importing exported contents into an endpoint.

Import is a thin layer over the bulk orchestrator: every item becomes a
create operation, or with upsert an update when the item's id already
exists remotely.
"""

import logging
from typing import Any, Dict, List, Optional

from cmscli.core.services.bulk_service import BulkOrchestrator
from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.models.common import SYSTEM_FIELDS
from cmscli.domain.models.errors import CliError, ErrorKind, PayloadValidationError, invalid_input
from cmscli.domain.models.operations import BulkRunOptions, CreateOperation, Operation, UpdateOperation
from cmscli.infrastructure.validation.payload_validator import validate_payload

logger = logging.getLogger(__name__)


def extract_import_items(document: Any) -> List[Dict[str, Any]]:
    """Accepts a bare array or an export document ``{"contents": [...]}``."""
    if isinstance(document, dict) and isinstance(document.get("contents"), list):
        items = document["contents"]
    elif isinstance(document, list):
        items = document
    else:
        raise invalid_input("Import file must be a JSON array or an object with a contents array")

    if not items:
        raise invalid_input("Import file contains no contents")
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise invalid_input(f"Import item #{position + 1} must be a JSON object", {"index": position + 1})
    return items


def strip_system_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in item.items() if key not in SYSTEM_FIELDS}


class ImportService:
    """Imports a list of content items through the orchestrator."""

    def __init__(self, content_api: ContentApi, orchestrator: BulkOrchestrator, validator=validate_payload):
        self.content_api = content_api
        self.orchestrator = orchestrator
        self.validator = validator

    async def import_contents(
        self,
        endpoint: str,
        document: Any,
        options: BulkRunOptions,
        upsert: bool = False,
        dry_run: bool = False,
    ) -> Dict[str, Any]:
        items = extract_import_items(document)
        logger.info(f"Importing {len(items)} item(s) into '{endpoint}' (upsert={upsert}, dry_run={dry_run})")

        if dry_run:
            await self._check_items(endpoint, items, options.strict_warnings)
            return {
                "operation": "content.import",
                "endpoint": endpoint,
                "dryRun": True,
                "total": len(items),
                "upsert": upsert,
            }

        operations: List[Operation] = []
        for item in items:
            payload = strip_system_fields(item)
            content_id = item.get("id") if isinstance(item.get("id"), str) and item.get("id") else None
            if upsert and content_id and await self._exists(endpoint, content_id):
                operations.append(UpdateOperation(action="update", endpoint=endpoint, id=content_id, payload=payload))
            else:
                operations.append(CreateOperation(action="create", endpoint=endpoint, payload=payload))

        result = await self.orchestrator.run(
            operations,
            options,
            success_label=lambda op: "Updated" if op.action == "update" else "Created",
        )
        succeeded = [item for item in result.results if item.status == "succeeded"]
        return {
            "operation": "content.import",
            "endpoint": endpoint,
            "total": result.total,
            "created": sum(1 for item in succeeded if item.action == "create"),
            "updated": sum(1 for item in succeeded if item.action == "update"),
            "failed": result.failed,
            "skipped": result.skipped,
            "upsert": upsert,
            "stopOnError": result.stop_on_error,
            "results": [item.to_dict() for item in result.results],
        }

    async def _exists(self, endpoint: str, content_id: str) -> bool:
        try:
            await self.content_api.get_content(endpoint, content_id)
        except CliError as e:
            if e.code == ErrorKind.NOT_FOUND:
                return False
            raise
        return True

    async def _check_items(self, endpoint: str, items: List[Dict[str, Any]], strict_warnings: bool) -> None:
        schema = await self._schema_or_none(endpoint)
        for position, item in enumerate(items):
            outcome = self.validator(strip_system_fields(item), schema)
            if not outcome.fails(strict_warnings):
                continue
            details: Dict[str, Any] = {"index": position + 1, "endpoint": endpoint, "errors": outcome.errors}
            if strict_warnings:
                details["warnings"] = outcome.warnings
            raise PayloadValidationError(f"Import dry-run validation failed at item #{position + 1}", details)

    async def _schema_or_none(self, endpoint: str) -> Optional[Any]:
        try:
            return (await self.content_api.get_api_info(endpoint)).data
        except CliError as e:
            if e.code == ErrorKind.NOT_FOUND:
                logger.info(f"No schema for '{endpoint}', checking payload shape only")
                return None
            raise
