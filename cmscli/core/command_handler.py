"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), reads input files,
delegates the work to the application services and renders the outcome.
Each handler returns the process exit code; classified failures propagate
as ``CliError`` to the entry point.
"""

import logging
from typing import Optional

from cmscli.core.services.bulk_service import BulkOrchestrator
from cmscli.core.services.content_service import ContentService
from cmscli.core.services.export_service import ExportService
from cmscli.core.services.import_service import ImportService
from cmscli.core.services.media_service import MediaService
from cmscli.core.services.validation_service import ValidationService
from cmscli.domain.interfaces.file_system import FileSystem
from cmscli.domain.models.common import ContentStatus, FilePath, Queries
from cmscli.domain.models.errors import ExitCode, invalid_input
from cmscli.domain.models.operations import BulkRunOptions
from cmscli.infrastructure.cli.display import ConsoleDisplay
from cmscli.infrastructure.filesystem.local_fs import assert_object_payload
from cmscli.infrastructure.validation.bulk_operations import parse_bulk_operations

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        content_service: ContentService,
        bulk_orchestrator: BulkOrchestrator,
        import_service: ImportService,
        export_service: ExportService,
        validation_service: ValidationService,
        file_system: FileSystem,
        ui: ConsoleDisplay,
        media_service: Optional[MediaService] = None,
    ):
        """Initializes the CommandHandler with required services."""
        self.content_service = content_service
        self.bulk_orchestrator = bulk_orchestrator
        self.import_service = import_service
        self.export_service = export_service
        self.validation_service = validation_service
        self.file_system = file_system
        self.ui = ui
        self.media_service = media_service

    async def handle_list(self, endpoint: str, queries: Queries, fetch_all: bool = False) -> int:
        logger.info(f"Handling 'content list' for '{endpoint}' (all={fetch_all})")
        result = await self.content_service.list_content(endpoint, queries, fetch_all)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_get(self, endpoint: str, content_id: str, draft_key: Optional[str] = None) -> int:
        logger.info(f"Handling 'content get' for '{endpoint}/{content_id}'")
        queries = {"draftKey": draft_key} if draft_key else None
        result = await self.content_service.get_content(endpoint, content_id, queries)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_create(
        self, endpoint: str, file: str, dry_run: bool = False, idempotency_key: Optional[str] = None
    ) -> int:
        payload = assert_object_payload(await self.file_system.read_json(FilePath(file)))
        result = await self.content_service.create_content(endpoint, payload, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_update(
        self,
        endpoint: str,
        content_id: str,
        file: str,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> int:
        payload = assert_object_payload(await self.file_system.read_json(FilePath(file)))
        result = await self.content_service.update_content(endpoint, content_id, payload, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_delete(
        self, endpoint: str, content_id: str, dry_run: bool = False, idempotency_key: Optional[str] = None
    ) -> int:
        result = await self.content_service.delete_content(endpoint, content_id, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_status(
        self,
        endpoint: str,
        content_id: str,
        status: ContentStatus,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> int:
        result = await self.content_service.set_status(endpoint, content_id, status, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_bulk(self, file: str, options: BulkRunOptions, dry_run: bool = False) -> int:
        """Runs a bulk operation file. Exits 1 when any operation failed."""
        operations = parse_bulk_operations(await self.file_system.read_json(FilePath(file)))
        validate = options.validate_payload or options.strict_warnings

        if dry_run:
            if validate:
                await self.bulk_orchestrator.prevalidate(operations, options.strict_warnings)
            self.ui.print_success(
                {"operation": "content.bulk", "dryRun": True, "total": len(operations), "validatePayload": validate}
            )
            return ExitCode.SUCCESS

        result = await self.bulk_orchestrator.run(operations, options)
        self.ui.print_success({"operation": "content.bulk", **result.to_dict()})
        return ExitCode.UNKNOWN if result.has_failures else ExitCode.SUCCESS

    async def handle_import(
        self,
        endpoint: str,
        file: str,
        options: BulkRunOptions,
        upsert: bool = False,
        dry_run: bool = False,
    ) -> int:
        document = await self.file_system.read_json(FilePath(file))
        summary = await self.import_service.import_contents(endpoint, document, options, upsert, dry_run)
        self.ui.print_success(summary)
        return ExitCode.UNKNOWN if summary.get("failed") else ExitCode.SUCCESS

    async def handle_export(self, endpoint: str, out: str, fmt: str = "json") -> int:
        summary = await self.export_service.export(endpoint, FilePath(out), fmt)
        self.ui.print_success(summary)
        return ExitCode.SUCCESS

    async def handle_validate(self, endpoint: str, file: str, strict_warnings: bool = False) -> int:
        payload = assert_object_payload(await self.file_system.read_json(FilePath(file)))
        result = await self.validation_service.validate(endpoint, payload, strict_warnings)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_diff(self, endpoint: str, content_id: str, draft_key: str) -> int:
        logger.info(f"Handling 'content diff' for '{endpoint}/{content_id}'")
        result = await self.content_service.diff_content(endpoint, content_id, draft_key)
        self.ui.print_diff(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_meta_list(self, endpoint: str, queries: Queries) -> int:
        result = await self.content_service.list_meta(endpoint, queries)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_meta_get(self, endpoint: str, content_id: str) -> int:
        result = await self.content_service.get_meta(endpoint, content_id)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_created_by(
        self,
        endpoint: str,
        content_id: str,
        member_id: str,
        dry_run: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> int:
        result = await self.content_service.set_created_by(endpoint, content_id, member_id, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    # --- Media ---

    def _media(self) -> MediaService:
        if self.media_service is None:
            raise invalid_input("Media commands are not available")
        return self.media_service

    async def handle_media_list(self, queries: Queries) -> int:
        result = await self._media().list_media(queries)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_media_upload(self, path: str, dry_run: bool = False, idempotency_key: Optional[str] = None) -> int:
        logger.info(f"Handling 'media upload' for '{path}'")
        result = await self._media().upload(path, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS

    async def handle_media_delete(self, url: str, dry_run: bool = False, idempotency_key: Optional[str] = None) -> int:
        result = await self._media().delete(url, dry_run, idempotency_key)
        self.ui.print_success(result.data, result.request_id)
        return ExitCode.SUCCESS
