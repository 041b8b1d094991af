import pytest
from unittest.mock import MagicMock

from cmscli.core.command_handler import CommandHandler
from cmscli.core.services.bulk_service import BulkOrchestrator
from cmscli.core.services.content_service import ContentService
from cmscli.core.services.export_service import ExportService
from cmscli.core.services.import_service import ImportService
from cmscli.core.services.media_service import MediaService
from cmscli.core.services.validation_service import ValidationService
from cmscli.domain.interfaces.file_system import FileSystem
from cmscli.domain.models.errors import CliError, ErrorKind, ExitCode
from cmscli.domain.models.operations import BulkResultItem, BulkRunOptions, BulkRunResult
from cmscli.domain.models.request import ApiResponse
from cmscli.infrastructure.cli.display import ConsoleDisplay

BULK_FILE = {"operations": [{"action": "delete", "endpoint": "notes", "id": "n1"}]}


@pytest.fixture
def mock_content_service():
    return MagicMock(spec=ContentService)

@pytest.fixture
def mock_orchestrator():
    return MagicMock(spec=BulkOrchestrator)

@pytest.fixture
def mock_import_service():
    return MagicMock(spec=ImportService)

@pytest.fixture
def mock_export_service():
    return MagicMock(spec=ExportService)

@pytest.fixture
def mock_validation_service():
    return MagicMock(spec=ValidationService)

@pytest.fixture
def mock_fs():
    return MagicMock(spec=FileSystem)

@pytest.fixture
def mock_ui():
    return MagicMock(spec=ConsoleDisplay)

@pytest.fixture
def mock_media_service():
    return MagicMock(spec=MediaService)

@pytest.fixture
def command_handler(
    mock_content_service,
    mock_orchestrator,
    mock_import_service,
    mock_export_service,
    mock_validation_service,
    mock_fs,
    mock_ui,
    mock_media_service,
):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(
        content_service=mock_content_service,
        bulk_orchestrator=mock_orchestrator,
        import_service=mock_import_service,
        export_service=mock_export_service,
        validation_service=mock_validation_service,
        file_system=mock_fs,
        ui=mock_ui,
        media_service=mock_media_service,
    )


@pytest.mark.asyncio
async def test_handle_list(command_handler, mock_content_service, mock_ui):
    """Test that handle_list forwards queries and renders the page with its request id."""
    mock_content_service.list_content.return_value = ApiResponse(data={"contents": []}, request_id="r1")

    code = await command_handler.handle_list("notes", {"limit": 5}, fetch_all=True)

    assert code == ExitCode.SUCCESS
    mock_content_service.list_content.assert_awaited_once_with("notes", {"limit": 5}, True)
    mock_ui.print_success.assert_called_once_with({"contents": []}, "r1")


@pytest.mark.asyncio
async def test_handle_get_with_draft_key(command_handler, mock_content_service):
    mock_content_service.get_content.return_value = ApiResponse(data={"id": "a"})

    await command_handler.handle_get("notes", "a", draft_key="dk")

    mock_content_service.get_content.assert_awaited_once_with("notes", "a", {"draftKey": "dk"})


@pytest.mark.asyncio
async def test_handle_create_reads_payload_file(command_handler, mock_content_service, mock_fs):
    mock_fs.read_json.return_value = {"title": "x"}
    mock_content_service.create_content.return_value = ApiResponse(data={"id": "n"})

    await command_handler.handle_create("notes", "payload.json", dry_run=False, idempotency_key="k")

    mock_fs.read_json.assert_awaited_once_with("payload.json")
    mock_content_service.create_content.assert_awaited_once_with("notes", {"title": "x"}, False, "k")


@pytest.mark.asyncio
async def test_handle_create_rejects_non_object_payload(command_handler, mock_content_service, mock_fs):
    mock_fs.read_json.return_value = ["not", "an", "object"]

    with pytest.raises(CliError) as excinfo:
        await command_handler.handle_create("notes", "payload.json")

    assert excinfo.value.code == ErrorKind.INVALID_INPUT
    mock_content_service.create_content.assert_not_called()


@pytest.mark.asyncio
async def test_handle_bulk_success(command_handler, mock_orchestrator, mock_fs, mock_ui):
    mock_fs.read_json.return_value = BULK_FILE
    result = BulkRunResult(total=1, stop_on_error=True, succeeded=1)
    result.results.append(BulkResultItem(1, "delete", "notes", "succeeded", "n1"))
    mock_orchestrator.run.return_value = result

    code = await command_handler.handle_bulk("ops.json", BulkRunOptions())

    assert code == ExitCode.SUCCESS
    rendered = mock_ui.print_success.call_args.args[0]
    assert rendered["operation"] == "content.bulk"
    assert rendered["succeeded"] == 1
    assert rendered["results"][0]["id"] == "n1"


@pytest.mark.asyncio
async def test_handle_bulk_with_failures_exits_1(command_handler, mock_orchestrator, mock_fs):
    mock_fs.read_json.return_value = BULK_FILE
    mock_orchestrator.run.return_value = BulkRunResult(total=1, stop_on_error=False, failed=1)

    code = await command_handler.handle_bulk("ops.json", BulkRunOptions(stop_on_error=False))

    assert code == ExitCode.UNKNOWN == 1


@pytest.mark.asyncio
async def test_handle_bulk_dry_run(command_handler, mock_orchestrator, mock_fs, mock_ui):
    mock_fs.read_json.return_value = BULK_FILE

    code = await command_handler.handle_bulk("ops.json", BulkRunOptions(validate_payload=True), dry_run=True)

    assert code == ExitCode.SUCCESS
    mock_orchestrator.prevalidate.assert_awaited_once()
    mock_orchestrator.run.assert_not_called()
    mock_ui.print_success.assert_called_once_with(
        {"operation": "content.bulk", "dryRun": True, "total": 1, "validatePayload": True}
    )


@pytest.mark.asyncio
async def test_handle_bulk_rejects_malformed_file(command_handler, mock_orchestrator, mock_fs):
    mock_fs.read_json.return_value = {"operations": [{"action": "nope"}]}

    with pytest.raises(CliError):
        await command_handler.handle_bulk("ops.json", BulkRunOptions())
    mock_orchestrator.run.assert_not_called()


@pytest.mark.asyncio
async def test_handle_import_exit_code(command_handler, mock_import_service, mock_fs):
    mock_fs.read_json.return_value = [{"title": "x"}]
    mock_import_service.import_contents.return_value = {"operation": "content.import", "failed": 2}

    code = await command_handler.handle_import("notes", "in.json", BulkRunOptions(), upsert=True)

    assert code == ExitCode.UNKNOWN
    mock_import_service.import_contents.assert_awaited_once_with(
        "notes", [{"title": "x"}], BulkRunOptions(), True, False
    )


@pytest.mark.asyncio
async def test_handle_export_and_validate(command_handler, mock_export_service, mock_validation_service, mock_fs, mock_ui):
    mock_export_service.export.return_value = {"operation": "content.export", "count": 3}
    mock_fs.read_json.return_value = {"title": "x"}
    mock_validation_service.validate.return_value = ApiResponse(data={"valid": True}, request_id="r")

    assert await command_handler.handle_export("notes", "out.csv", "csv") == ExitCode.SUCCESS
    assert await command_handler.handle_validate("notes", "p.json", strict_warnings=True) == ExitCode.SUCCESS

    mock_export_service.export.assert_awaited_once_with("notes", "out.csv", "csv")
    mock_validation_service.validate.assert_awaited_once_with("notes", {"title": "x"}, True)
    assert mock_ui.print_success.call_count == 2


@pytest.mark.asyncio
async def test_handle_diff_renders_with_print_diff(command_handler, mock_content_service, mock_ui):
    diff = {"operation": "content.diff", "hasDiff": False, "added": [], "removed": [], "changed": []}
    mock_content_service.diff_content.return_value = ApiResponse(data=diff, request_id="r2")

    code = await command_handler.handle_diff("notes", "a", "dk")

    assert code == ExitCode.SUCCESS
    mock_content_service.diff_content.assert_awaited_once_with("notes", "a", "dk")
    mock_ui.print_diff.assert_called_once_with(diff, "r2")


@pytest.mark.asyncio
async def test_handle_meta_and_created_by(command_handler, mock_content_service, mock_ui):
    mock_content_service.list_meta.return_value = ApiResponse(data={"contents": []})
    mock_content_service.set_created_by.return_value = ApiResponse(data={"id": "a"})

    await command_handler.handle_meta_list("notes", {"limit": 1})
    await command_handler.handle_created_by("notes", "a", "m-1", dry_run=False, idempotency_key="k")

    mock_content_service.list_meta.assert_awaited_once_with("notes", {"limit": 1})
    mock_content_service.set_created_by.assert_awaited_once_with("notes", "a", "m-1", False, "k")


@pytest.mark.asyncio
async def test_handle_media_upload_and_delete(command_handler, mock_media_service, mock_ui):
    mock_media_service.upload.return_value = ApiResponse(data={"url": "https://images.example/a.png"}, request_id="r3")
    mock_media_service.delete.return_value = ApiResponse(data={"deleted": True})

    await command_handler.handle_media_upload("a.png", dry_run=False, idempotency_key="up-1")
    await command_handler.handle_media_delete("https://images.example/a.png", dry_run=True)

    mock_media_service.upload.assert_awaited_once_with("a.png", False, "up-1")
    mock_media_service.delete.assert_awaited_once_with("https://images.example/a.png", True, None)
    mock_ui.print_success.assert_any_call({"url": "https://images.example/a.png"}, "r3")


@pytest.mark.asyncio
async def test_media_commands_without_media_service(
    mock_content_service, mock_orchestrator, mock_import_service, mock_export_service, mock_validation_service, mock_fs, mock_ui
):
    handler = CommandHandler(
        mock_content_service,
        mock_orchestrator,
        mock_import_service,
        mock_export_service,
        mock_validation_service,
        mock_fs,
        mock_ui,
    )

    with pytest.raises(CliError) as excinfo:
        await handler.handle_media_list({})

    assert excinfo.value.code == ErrorKind.INVALID_INPUT
