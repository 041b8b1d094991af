from unittest.mock import MagicMock

import pytest

from cmscli.core.services.bulk_service import BulkOrchestrator, resolve_error_policy
from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.interfaces.diagnostics import DiagnosticsSink
from cmscli.domain.models.errors import CliError, ErrorKind, ExitCode, PayloadValidationError
from cmscli.domain.models.operations import BulkRunOptions
from cmscli.domain.models.request import ApiResponse
from cmscli.infrastructure.api.file_store import FileContentStore
from cmscli.infrastructure.resilience.error_classifier import from_http_status
from cmscli.infrastructure.validation.bulk_operations import parse_bulk_operations

SCHEMA = {"apiFields": [{"fieldId": "title", "kind": "text", "required": True}]}


@pytest.fixture
def mock_api():
    """ContentApi whose methods are AsyncMocks."""
    api = MagicMock(spec=ContentApi)
    api.create_content.return_value = ApiResponse(data={"id": "new-1"}, request_id="r")
    api.update_content.return_value = ApiResponse(data={"id": "u"}, request_id="r")
    api.delete_content.return_value = ApiResponse(data={"id": "d", "deleted": True}, request_id="r")
    api.patch_content_status.return_value = ApiResponse(data={"id": "s"}, request_id="r")
    api.get_api_info.return_value = ApiResponse(data=SCHEMA)
    return api


@pytest.fixture
def diagnostics():
    return MagicMock(spec=DiagnosticsSink)


@pytest.fixture
def orchestrator(mock_api, diagnostics, recording_sleep):
    return BulkOrchestrator(mock_api, diagnostics=diagnostics, sleep=recording_sleep)


def operations(*items):
    return parse_bulk_operations({"operations": list(items)})


CREATE = {"action": "create", "endpoint": "notes", "payload": {"title": "a"}}
UPDATE = {"action": "update", "endpoint": "notes", "id": "n1", "payload": {"title": "b"}}
DELETE = {"action": "delete", "endpoint": "notes", "id": "n2"}
STATUS = {"action": "status", "endpoint": "notes", "id": "n3", "status": "PUBLISH"}


def test_error_policy():
    assert resolve_error_policy() is True
    assert resolve_error_policy(stop_on_error=True) is True
    assert resolve_error_policy(continue_on_error=True) is False
    with pytest.raises(CliError) as excinfo:
        resolve_error_policy(True, True)
    assert excinfo.value.message == "--stop-on-error and --continue-on-error cannot be used together"
    assert excinfo.value.exit_code == ExitCode.INVALID_INPUT


@pytest.mark.asyncio
async def test_runs_every_action_in_order(orchestrator, mock_api, diagnostics):
    result = await orchestrator.run(operations(CREATE, UPDATE, DELETE, STATUS), BulkRunOptions())

    assert (result.total, result.succeeded, result.failed, result.skipped) == (4, 4, 0, 0)
    assert [item.id for item in result.results] == ["new-1", "n1", "n2", "n3"]
    mock_api.create_content.assert_awaited_once_with("notes", {"title": "a"})
    mock_api.update_content.assert_awaited_once_with("notes", "n1", {"title": "b"})
    mock_api.delete_content.assert_awaited_once_with("notes", "n2")
    mock_api.patch_content_status.assert_awaited_once_with("notes", "n3", "PUBLISH")
    assert [c.args[0] for c in diagnostics.emit.call_args_list] == [
        "[1/4] Succeeded: create notes new-1",
        "[2/4] Succeeded: update notes n1",
        "[3/4] Succeeded: delete notes n2",
        "[4/4] Succeeded: status notes n3",
    ]


@pytest.mark.asyncio
async def test_stop_on_error_skips_the_rest(orchestrator, mock_api, diagnostics):
    mock_api.update_content.side_effect = from_http_status(404, "content not found", {"status": 404})

    result = await orchestrator.run(operations(CREATE, UPDATE, DELETE, STATUS), BulkRunOptions(stop_on_error=True))

    assert (result.succeeded, result.failed, result.skipped) == (1, 1, 2)
    assert [item.status for item in result.results] == ["succeeded", "failed", "skipped", "skipped"]
    assert result.results[1].error == {"code": "NOT_FOUND", "message": "content not found", "retryable": False}
    mock_api.delete_content.assert_not_awaited()
    lines = [c.args[0] for c in diagnostics.emit.call_args_list]
    assert lines[1] == "[2/4] Failed: update notes n1 (content not found)"
    assert lines[2] == "[3/4] Skipped: delete notes n2 (stop-on-error)"
    assert result.to_dict()["stopOnError"] is True


@pytest.mark.asyncio
async def test_failure_details_only_when_requested(mock_api, recording_sleep):
    mock_api.delete_content.side_effect = from_http_status(404, "content not found", {"status": 404, "requestId": "r-9"})
    verbose = BulkOrchestrator(mock_api, sleep=recording_sleep, include_error_details=True)

    result = await verbose.run(operations(DELETE), BulkRunOptions())

    assert result.results[0].error["details"] == {"status": 404, "requestId": "r-9"}


@pytest.mark.asyncio
async def test_payload_validation_failures_keep_details(orchestrator, mock_api):
    mock_api.create_content.side_effect = PayloadValidationError("Payload rejected", {"errors": ["bad"]})

    result = await orchestrator.run(operations(CREATE), BulkRunOptions())

    assert result.results[0].error["details"] == {"errors": ["bad"]}


@pytest.mark.asyncio
async def test_continue_on_error_attempts_everything(orchestrator, mock_api):
    mock_api.update_content.side_effect = from_http_status(409, "conflict")

    result = await orchestrator.run(operations(CREATE, UPDATE, DELETE, STATUS), BulkRunOptions(stop_on_error=False))

    assert (result.succeeded, result.failed, result.skipped) == (3, 1, 0)
    assert result.has_failures
    assert result.succeeded + result.failed + result.skipped == result.total
    mock_api.patch_content_status.assert_awaited_once()


@pytest.mark.asyncio
async def test_unexpected_exceptions_are_classified(orchestrator, mock_api):
    mock_api.delete_content.side_effect = ValueError("kaboom")

    result = await orchestrator.run(operations(DELETE), BulkRunOptions())

    assert result.failed == 1
    assert result.results[0].error["code"] == ErrorKind.UNKNOWN_ERROR.value


@pytest.mark.asyncio
async def test_interval_between_operations_only(orchestrator, recording_sleep):
    await orchestrator.run(operations(CREATE, DELETE, STATUS), BulkRunOptions(interval_ms=250))

    assert recording_sleep.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_prevalidation_fetches_each_schema_once(orchestrator, mock_api):
    other = {"action": "create", "endpoint": "tags", "payload": {"title": "t"}}

    result = await orchestrator.run(
        operations(CREATE, UPDATE, DELETE, other), BulkRunOptions(validate_payload=True)
    )

    assert result.succeeded == 4
    assert [c.args[0] for c in mock_api.get_api_info.await_args_list] == ["notes", "tags"]


@pytest.mark.asyncio
async def test_prevalidation_failure_writes_nothing(orchestrator, mock_api):
    bad = {"action": "create", "endpoint": "notes", "payload": {"body": "no title"}}

    with pytest.raises(PayloadValidationError) as excinfo:
        await orchestrator.run(operations(CREATE, DELETE, bad), BulkRunOptions(validate_payload=True))

    assert excinfo.value.message == "Payload validation failed at operation #3"
    assert excinfo.value.details == {
        "index": 3,
        "endpoint": "notes",
        "action": "create",
        "errors": ["Required field is missing: title"],
    }
    mock_api.create_content.assert_not_awaited()
    mock_api.delete_content.assert_not_awaited()


@pytest.mark.asyncio
async def test_strict_warnings_reject_unknown_fields(orchestrator, mock_api):
    extra = {"action": "update", "endpoint": "notes", "id": "n1", "payload": {"title": "x", "color": "red"}}

    with pytest.raises(PayloadValidationError) as excinfo:
        await orchestrator.run(operations(extra), BulkRunOptions(strict_warnings=True))

    assert excinfo.value.details["warnings"] == ["Unknown field in payload: color"]
    mock_api.update_content.assert_not_awaited()


@pytest.mark.asyncio
async def test_works_against_file_store(mock_store, recording_sleep):
    store = FileContentStore(str(mock_store(endpoints={"notes": {"n1": {"title": "old"}}})))
    orchestrator = BulkOrchestrator(store, sleep=recording_sleep)

    result = await orchestrator.run(
        operations(CREATE, UPDATE, DELETE), BulkRunOptions(stop_on_error=False)
    )

    assert [item.status for item in result.results] == ["succeeded", "succeeded", "failed"]
    assert result.results[0].id == "mock-created-1"
    assert result.results[2].error["code"] == "NOT_FOUND"
