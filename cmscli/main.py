"""Main entry point for the cmscli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
Environment and configuration files are only read here; every service
receives its settings through its constructor.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import typer
from typing_extensions import Annotated

from cmscli import __version__
from cmscli.core.command_handler import CommandHandler
from cmscli.core.services.bulk_service import BulkOrchestrator, resolve_error_policy
from cmscli.core.services.content_service import ContentService
from cmscli.core.services.export_service import ExportService
from cmscli.core.services.import_service import ImportService
from cmscli.core.services.media_service import MediaService
from cmscli.core.services.pagination import PaginatedFetcher
from cmscli.core.services.validation_service import ValidationService
from cmscli.domain.interfaces.diagnostics import NullDiagnostics
from cmscli.domain.models.errors import CliError, invalid_input
from cmscli.domain.models.operations import BulkRunOptions
from cmscli.infrastructure.api.content_client import ContentApiClient
from cmscli.infrastructure.api.file_store import FileContentStore
from cmscli.infrastructure.cli.display import ConsoleDisplay
from cmscli.infrastructure.config.runtime import build_runtime_context, parse_int_option
from cmscli.infrastructure.config.settings import get_config, load_configuration
from cmscli.infrastructure.filesystem.local_fs import LocalFileSystem
from cmscli.infrastructure.http.httpx_transport import HttpxTransport
from cmscli.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_log_level, setup_logging
from cmscli.infrastructure.resilience.api_retry import RequestExecutor
from cmscli.infrastructure.resilience.error_classifier import classify_exception

logger = logging.getLogger(__name__)

CONTENT_STATUSES = ("PUBLISH", "DRAFT")
INTERVAL_RANGE = (0, 600_000)


# --- Dependency Injection Container (Manual) ---

def create_dependencies(options: Dict[str, Any]) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one invocation.

    This acts as the Composition Root.
    """
    # 1. Configuration and logging
    load_configuration()
    setup_logging(
        log_level=resolve_log_level(get_config("logging.level"), bool(options.get("verbose"))),
        log_format=get_config("logging.format", DEFAULT_LOG_FORMAT),
        log_file=get_config("logging.file"),
    )
    context = build_runtime_context(**options)
    logger.info("Configuration and logging initialized.")

    # 2. Infrastructure adapters
    dependencies: Dict[str, Any] = {"context": context}
    ui = ConsoleDisplay(
        json_output=context.json_output,
        verbose=context.verbose,
        output_mode=context.output_mode,
        select_fields=context.select_fields,
    )
    dependencies["ui"] = ui
    # Machine-readable output must stay free of progress lines
    diagnostics = NullDiagnostics() if context.json_output else ui
    dependencies["file_system"] = LocalFileSystem()

    dependencies["transport"] = HttpxTransport(api_key=context.api_key or "")
    # Media, metadata and authorship calls have no offline counterpart
    dependencies["management_api"] = ContentApiClient(
        service_domain=context.service_domain,
        api_key=context.api_key,
        executor=RequestExecutor(diagnostics=diagnostics),
        transport=dependencies["transport"],
        timeout_ms=context.timeout_ms,
        retry=context.retry,
        retry_max_delay_ms=context.retry_max_delay_ms,
        verbose=context.verbose,
        content_base_url=context.content_base_url,
        management_base_url=context.management_base_url,
    )
    if context.mock_store_file:
        logger.info(f"Using file-backed content store: {context.mock_store_file}")
        dependencies["content_api"] = FileContentStore(context.mock_store_file)
    else:
        dependencies["content_api"] = dependencies["management_api"]

    # 3. Core services
    content_api = dependencies["content_api"]
    management_api = dependencies["management_api"]
    fetcher = PaginatedFetcher(max_items=context.content_all_max_items)
    orchestrator = BulkOrchestrator(
        content_api=content_api, diagnostics=diagnostics, include_error_details=context.verbose
    )
    dependencies["command_handler"] = CommandHandler(
        content_service=ContentService(content_api, fetcher, management_api=management_api),
        bulk_orchestrator=orchestrator,
        import_service=ImportService(content_api, orchestrator),
        export_service=ExportService(content_api, fetcher, dependencies["file_system"]),
        validation_service=ValidationService(content_api),
        file_system=dependencies["file_system"],
        ui=ui,
        media_service=MediaService(management_api, dependencies["file_system"]),
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Helper for Running Async Commands ---

async def _run_handler(dependencies: Dict[str, Any], call: Callable[[CommandHandler], Awaitable[int]]) -> int:
    try:
        return await call(dependencies["command_handler"])
    finally:
        transport = dependencies.get("transport")
        if transport is not None:
            await transport.aclose()


def run_command(ctx: typer.Context, call: Callable[[CommandHandler], Awaitable[int]]) -> None:
    """Builds the dependencies, runs one handler and maps the outcome to an exit code."""
    options: Dict[str, Any] = ctx.obj or {}
    display = ConsoleDisplay(json_output=bool(options.get("json_output")), verbose=bool(options.get("verbose")))
    try:
        dependencies = create_dependencies(options)
        display = dependencies["ui"]
        exit_code = asyncio.run(_run_handler(dependencies, call))
    except CliError as e:
        logger.debug(f"Command failed: {e!r}")
        display.print_error(e)
        raise typer.Exit(code=int(e.exit_code))
    except Exception as e:
        logger.error(f"Unexpected error executing command: {e}", exc_info=True)
        error = classify_exception(e)
        display.print_error(error)
        raise typer.Exit(code=int(error.exit_code))

    if exit_code:
        raise typer.Exit(code=int(exit_code))


def _error_policy_options(
    interval: Optional[str],
    stop_on_error: bool,
    continue_on_error: bool,
    validate_payload: bool = False,
    strict_warnings: bool = False,
) -> BulkRunOptions:
    return BulkRunOptions(
        interval_ms=parse_int_option("--interval", interval, *INTERVAL_RANGE) or 0,
        stop_on_error=resolve_error_policy(stop_on_error, continue_on_error),
        validate_payload=validate_payload,
        strict_warnings=strict_warnings,
    )


# --- Typer App Definition ---

app = typer.Typer(
    name="cmscli",
    help="cmscli: resilient command-line client for the CMS content API.",
    add_completion=False,
)
content_app = typer.Typer(help="Content API operations.", add_completion=False)
app.add_typer(content_app, name="content")
meta_app = typer.Typer(help="Content metadata (management API).", add_completion=False)
content_app.add_typer(meta_app, name="meta")
created_by_app = typer.Typer(help="Content creator (management API).", add_completion=False)
content_app.add_typer(created_by_app, name="created-by")
media_app = typer.Typer(help="Media operations (management API).", add_completion=False)
app.add_typer(media_app, name="media")

# Shared options
FileOption = Annotated[str, typer.Option("--file", "-f", help="Path to a JSON file.")]
DryRunOption = Annotated[bool, typer.Option("--dry-run", help="Show what would be done without writing.")]
IdempotencyKeyOption = Annotated[
    Optional[str],
    typer.Option("--idempotency-key", help="Idempotency-Key header value; makes the write retry-safe."),
]
IntervalOption = Annotated[Optional[str], typer.Option("--interval", help="Delay between operations in ms.")]
StopOnErrorOption = Annotated[bool, typer.Option("--stop-on-error", help="Stop at the first failure (default).")]
ContinueOnErrorOption = Annotated[bool, typer.Option("--continue-on-error", help="Keep going after failures.")]
StrictWarningsOption = Annotated[bool, typer.Option("--strict-warnings", help="Treat validation warnings as errors.")]


@app.callback()
def main_callback(
    ctx: typer.Context,
    service_domain: Annotated[Optional[str], typer.Option("--service-domain", help="Service domain (tenant).")] = None,
    api_key: Annotated[Optional[str], typer.Option("--api-key", help="API key.")] = None,
    timeout: Annotated[Optional[str], typer.Option("--timeout", help="Per-request timeout in ms.")] = None,
    retry: Annotated[Optional[str], typer.Option("--retry", help="Retry budget per request.")] = None,
    retry_max_delay: Annotated[Optional[str], typer.Option("--retry-max-delay", help="Backoff ceiling in ms.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Machine-readable JSON envelopes.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logs, retry lines and error details.")] = False,
    output: Annotated[Optional[str], typer.Option("--output", help="inspect, plain or table.")] = None,
    select: Annotated[Optional[str], typer.Option("--select", help="Comma-separated fields to render.")] = None,
):
    """Global options shared by every command."""
    ctx.obj = {
        "service_domain": service_domain,
        "api_key": api_key,
        "timeout_ms": timeout,
        "retry": retry,
        "retry_max_delay_ms": retry_max_delay,
        "json_output": json_output,
        "verbose": verbose,
        "output_mode": output,
        "select": select,
    }


@app.command()
def version():
    """Prints the cmscli version."""
    typer.echo(__version__)


@app.command()
def validate(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    file: FileOption,
    strict_warnings: StrictWarningsOption = False,
):
    """Run a payload precheck against the endpoint schema before create/update."""
    run_command(ctx, lambda handler: handler.handle_validate(endpoint, file, strict_warnings))


@content_app.command("list")
def list_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    limit: Annotated[Optional[str], typer.Option("--limit")] = None,
    offset: Annotated[Optional[str], typer.Option("--offset")] = None,
    orders: Annotated[Optional[str], typer.Option("--orders")] = None,
    q: Annotated[Optional[str], typer.Option("--q")] = None,
    filters: Annotated[Optional[str], typer.Option("--filters")] = None,
    fields: Annotated[Optional[str], typer.Option("--fields")] = None,
    ids: Annotated[Optional[str], typer.Option("--ids")] = None,
    depth: Annotated[Optional[str], typer.Option("--depth")] = None,
    draft_key: Annotated[Optional[str], typer.Option("--draft-key")] = None,
    fetch_all: Annotated[bool, typer.Option("--all", help="Fetch and merge every page.")] = False,
):
    """List contents of an endpoint."""

    async def call(handler: CommandHandler) -> int:
        queries = {
            "limit": parse_int_option("--limit", limit, 1, 100),
            "offset": parse_int_option("--offset", offset, 0, 100_000),
            "orders": orders,
            "q": q,
            "filters": filters,
            "fields": fields,
            "ids": ids,
            "depth": parse_int_option("--depth", depth, 0, 3),
            "draftKey": draft_key,
        }
        queries = {key: value for key, value in queries.items() if value is not None}
        return await handler.handle_list(endpoint, queries, fetch_all)

    run_command(ctx, call)


@content_app.command("get")
def get_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
    draft_key: Annotated[Optional[str], typer.Option("--draft-key")] = None,
):
    """Get one content item."""
    run_command(ctx, lambda handler: handler.handle_get(endpoint, content_id, draft_key))


@content_app.command("create")
def create_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    file: FileOption,
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Create a content item from a JSON payload file."""
    run_command(ctx, lambda handler: handler.handle_create(endpoint, file, dry_run, idempotency_key))


@content_app.command("update")
def update_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
    file: FileOption,
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Update a content item from a JSON payload file."""
    run_command(ctx, lambda handler: handler.handle_update(endpoint, content_id, file, dry_run, idempotency_key))


@content_app.command("delete")
def delete_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Delete a content item."""
    run_command(ctx, lambda handler: handler.handle_delete(endpoint, content_id, dry_run, idempotency_key))


@content_app.command("status")
def status_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
    status: Annotated[str, typer.Argument(help="PUBLISH or DRAFT.")],
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Change the publish status of a content item."""

    async def call(handler: CommandHandler) -> int:
        normalized = status.upper()
        if normalized not in CONTENT_STATUSES:
            raise invalid_input("status must be PUBLISH or DRAFT", {"value": status})
        return await handler.handle_status(endpoint, content_id, normalized, dry_run, idempotency_key)

    run_command(ctx, call)


@content_app.command("bulk")
def bulk_command(
    ctx: typer.Context,
    file: FileOption,
    interval: IntervalOption = None,
    stop_on_error: StopOnErrorOption = False,
    continue_on_error: ContinueOnErrorOption = False,
    validate_payload: Annotated[
        bool, typer.Option("--validate-payload", help="Validate payloads against schemas before running.")
    ] = False,
    strict_warnings: StrictWarningsOption = False,
    dry_run: DryRunOption = False,
):
    """Run create/update/delete/status operations from a JSON file, in order."""

    async def call(handler: CommandHandler) -> int:
        options = _error_policy_options(interval, stop_on_error, continue_on_error, validate_payload, strict_warnings)
        return await handler.handle_bulk(file, options, dry_run)

    run_command(ctx, call)


@content_app.command("import")
def import_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    file: FileOption,
    upsert: Annotated[bool, typer.Option("--upsert", help="Update items whose id exists, create the rest.")] = False,
    interval: IntervalOption = None,
    stop_on_error: StopOnErrorOption = False,
    continue_on_error: ContinueOnErrorOption = False,
    strict_warnings: StrictWarningsOption = False,
    dry_run: DryRunOption = False,
):
    """Import contents from a JSON array or an export file."""

    async def call(handler: CommandHandler) -> int:
        options = _error_policy_options(interval, stop_on_error, continue_on_error, strict_warnings=strict_warnings)
        return await handler.handle_import(endpoint, file, options, upsert, dry_run)

    run_command(ctx, call)


@content_app.command("export")
def export_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    out: Annotated[str, typer.Option("--out", "-o", help="Output file path.")],
    fmt: Annotated[str, typer.Option("--format", help="json or csv.")] = "json",
):
    """Export every item of an endpoint to a file."""
    run_command(ctx, lambda handler: handler.handle_export(endpoint, out, fmt))


@content_app.command("diff")
def diff_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
    draft_key: Annotated[str, typer.Option("--draft-key", help="Draft key to compare against.")],
):
    """Compare a published content item with one of its drafts."""
    run_command(ctx, lambda handler: handler.handle_diff(endpoint, content_id, draft_key))


@meta_app.command("list")
def meta_list_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    limit: Annotated[Optional[str], typer.Option("--limit")] = None,
    offset: Annotated[Optional[str], typer.Option("--offset")] = None,
):
    """List content metadata (management API)."""

    async def call(handler: CommandHandler) -> int:
        queries = {
            "limit": parse_int_option("--limit", limit, 1, 100),
            "offset": parse_int_option("--offset", offset, 0, 100_000),
        }
        return await handler.handle_meta_list(endpoint, {key: value for key, value in queries.items() if value is not None})

    run_command(ctx, call)


@meta_app.command("get")
def meta_get_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
):
    """Get the metadata of one content item (management API)."""
    run_command(ctx, lambda handler: handler.handle_meta_get(endpoint, content_id))


@created_by_app.command("set")
def created_by_set_command(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="API endpoint.")],
    content_id: Annotated[str, typer.Argument(metavar="ID", help="Content ID.")],
    member_id: Annotated[str, typer.Option("--member-id", help="Member to record as creator.")],
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Change the creator of a content item (management API)."""
    run_command(
        ctx, lambda handler: handler.handle_created_by(endpoint, content_id, member_id, dry_run, idempotency_key)
    )


@media_app.command("list")
def media_list_command(
    ctx: typer.Context,
    limit: Annotated[Optional[str], typer.Option("--limit")] = None,
    image_only: Annotated[bool, typer.Option("--image-only", help="Only list images.")] = False,
    file_name: Annotated[Optional[str], typer.Option("--file-name", help="Filter by file name.")] = None,
    token: Annotated[Optional[str], typer.Option("--token", help="Pagination token from a previous page.")] = None,
):
    """List media files (management API)."""

    async def call(handler: CommandHandler) -> int:
        queries = {
            "limit": parse_int_option("--limit", limit, 1, 100),
            "imageOnly": True if image_only else None,
            "fileName": file_name,
            "token": token,
        }
        return await handler.handle_media_list({key: value for key, value in queries.items() if value is not None})

    run_command(ctx, call)


@media_app.command("upload")
def media_upload_command(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Local file to upload.")],
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Upload a media file. Attempted once unless an idempotency key is given."""
    run_command(ctx, lambda handler: handler.handle_media_upload(path, dry_run, idempotency_key))


@media_app.command("delete")
def media_delete_command(
    ctx: typer.Context,
    url: Annotated[str, typer.Option("--url", help="URL of the media file.")],
    dry_run: DryRunOption = False,
    idempotency_key: IdempotencyKeyOption = None,
):
    """Delete a media file by URL."""
    run_command(ctx, lambda handler: handler.handle_media_delete(url, dry_run, idempotency_key))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
