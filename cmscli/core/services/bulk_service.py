"""Core service that runs a list of write operations in file order.

Operations execute strictly one at a time. On failure the run either stops
(remaining operations are reported as skipped) or continues with the next
one. An optional precheck validates every create/update payload against its
endpoint's schema before anything is written.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from cmscli.domain.events.api_events import OperationCompleted
from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.interfaces.diagnostics import DiagnosticsSink, NullDiagnostics
from cmscli.domain.models.errors import CliError, PayloadValidationError, invalid_input
from cmscli.domain.models.operations import (
    BulkResultItem,
    BulkRunOptions,
    BulkRunResult,
    CreateOperation,
    DeleteOperation,
    Operation,
    StatusOperation,
    UpdateOperation,
)
from cmscli.domain.models.request import ApiResponse
from cmscli.domain.models.validation import ValidationResult
from cmscli.infrastructure.resilience.error_classifier import classify_exception
from cmscli.infrastructure.validation.payload_validator import validate_payload

logger = logging.getLogger(__name__)

PayloadValidator = Callable[[dict, object], ValidationResult]
SuccessLabel = Callable[[Operation], str]


def resolve_error_policy(stop_on_error: bool = False, continue_on_error: bool = False) -> bool:
    """Returns the effective stop-on-error flag. Both flags at once are rejected."""
    if stop_on_error and continue_on_error:
        raise invalid_input("--stop-on-error and --continue-on-error cannot be used together")
    return not continue_on_error


class BulkOrchestrator:
    """Executes operations sequentially against a ContentApi."""

    def __init__(
        self,
        content_api: ContentApi,
        diagnostics: Optional[DiagnosticsSink] = None,
        validator: PayloadValidator = validate_payload,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        include_error_details: bool = False,
    ):
        self.content_api = content_api
        self.diagnostics = diagnostics or NullDiagnostics()
        self.validator = validator
        self._sleep = sleep
        # response bodies and retry metadata are verbose-only output
        self.include_error_details = include_error_details

    async def run(
        self,
        operations: Sequence[Operation],
        options: BulkRunOptions,
        success_label: Optional[SuccessLabel] = None,
    ) -> BulkRunResult:
        """Runs every operation and returns the aggregate result.

        Args:
            operations: Parsed operations, executed in this order.
            options: Interval, error policy and precheck switches.
            success_label: Progress word for a succeeded operation ("Succeeded" by default).

        Returns:
            BulkRunResult. Failures are recorded, not raised.

        Raises:
            PayloadValidationError: When the precheck rejects a payload (nothing is written).
        """
        if options.validate_payload or options.strict_warnings:
            await self.prevalidate(operations, options.strict_warnings)

        total = len(operations)
        result = BulkRunResult(total=total, stop_on_error=options.stop_on_error)
        logger.info(f"Starting bulk run of {total} operation(s), stop_on_error={options.stop_on_error}")

        for position, operation in enumerate(operations):
            index = position + 1
            try:
                response = await self._dispatch(operation)
            except CliError as e:
                self._record_failure(result, index, operation, e)
            except Exception as e:
                logger.error(f"Unexpected error in bulk operation #{index}: {e}", exc_info=True)
                self._record_failure(result, index, operation, classify_exception(e))
            else:
                content_id = operation.known_id or _id_from(response)
                result.succeeded += 1
                result.results.append(
                    BulkResultItem(index, operation.action, operation.endpoint, "succeeded", content_id, response.data)
                )
                label = success_label(operation) if success_label else "Succeeded"
                self._report(index, total, label, operation, content_id)

            if result.failed and options.stop_on_error:
                self._skip_remaining(result, operations, position + 1)
                break

            if options.interval_ms > 0 and index < total:
                await self._sleep(options.interval_ms / 1000)

        logger.info(
            f"Bulk run finished: {result.succeeded} succeeded, {result.failed} failed, {result.skipped} skipped"
        )
        return result

    async def prevalidate(self, operations: Sequence[Operation], strict_warnings: bool = False) -> None:
        """Validates all create/update payloads, fetching each endpoint's schema once.

        Raises:
            PayloadValidationError: For the first operation whose payload fails.
        """
        by_endpoint: Dict[str, List[int]] = {}
        for position, operation in enumerate(operations):
            if isinstance(operation, (CreateOperation, UpdateOperation)):
                by_endpoint.setdefault(operation.endpoint, []).append(position)

        failures: Dict[int, ValidationResult] = {}
        for endpoint, positions in by_endpoint.items():
            schema = (await self.content_api.get_api_info(endpoint)).data
            logger.debug(f"Validating {len(positions)} payload(s) for '{endpoint}'")
            for position in positions:
                outcome = self.validator(operations[position].payload, schema)
                if outcome.fails(strict_warnings):
                    failures[position] = outcome

        if not failures:
            return

        position = min(failures)
        operation = operations[position]
        outcome = failures[position]
        details = {
            "index": position + 1,
            "endpoint": operation.endpoint,
            "action": operation.action,
            "errors": outcome.errors,
        }
        if strict_warnings:
            details["warnings"] = outcome.warnings
        raise PayloadValidationError(f"Payload validation failed at operation #{position + 1}", details)

    async def _dispatch(self, operation: Operation) -> ApiResponse:
        if isinstance(operation, CreateOperation):
            return await self.content_api.create_content(operation.endpoint, operation.payload)
        if isinstance(operation, UpdateOperation):
            return await self.content_api.update_content(operation.endpoint, operation.id, operation.payload)
        if isinstance(operation, DeleteOperation):
            return await self.content_api.delete_content(operation.endpoint, operation.id)
        if isinstance(operation, StatusOperation):
            return await self.content_api.patch_content_status(operation.endpoint, operation.id, operation.status)
        raise invalid_input(f"Unsupported bulk action: {getattr(operation, 'action', None)}")

    def _record_failure(self, result: BulkRunResult, index: int, operation: Operation, error: CliError) -> None:
        logger.warning(f"Bulk operation #{index} ({operation.action} {operation.endpoint}) failed: {error.message}")
        result.failed += 1
        result.results.append(
            BulkResultItem(
                index,
                operation.action,
                operation.endpoint,
                "failed",
                operation.known_id,
                error=error.to_json(
                    include_details=self.include_error_details or isinstance(error, PayloadValidationError)
                ),
            )
        )
        self._report(index, result.total, "Failed", operation, operation.known_id, error.message)

    def _skip_remaining(self, result: BulkRunResult, operations: Sequence[Operation], start: int) -> None:
        for position in range(start, len(operations)):
            operation = operations[position]
            result.skipped += 1
            result.results.append(
                BulkResultItem(position + 1, operation.action, operation.endpoint, "skipped", operation.known_id)
            )
            self._report(position + 1, result.total, "Skipped", operation, operation.known_id, "stop-on-error")

    def _report(
        self,
        index: int,
        total: int,
        outcome: str,
        operation: Operation,
        content_id: Optional[str],
        message: Optional[str] = None,
    ) -> None:
        event = OperationCompleted(index, total, outcome, operation.action, operation.endpoint, content_id, message)
        logger.debug(f"EVENT: {event}")
        self.diagnostics.emit(event.describe())


def _id_from(response: ApiResponse) -> Optional[str]:
    if isinstance(response.data, dict) and isinstance(response.data.get("id"), str):
        return response.data["id"]
    return None
