"""Rich console rendering of results, error envelopes and diagnostics lines."""

import json
import logging
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.pretty import Pretty
from rich.table import Table

from cmscli import OUTPUT_VERSION
from cmscli.domain.interfaces.diagnostics import DiagnosticsSink
from cmscli.domain.models.common import OutputMode
from cmscli.domain.models.errors import CliError, PayloadValidationError

logger = logging.getLogger(__name__)


class ConsoleDisplay(DiagnosticsSink):
    """Renders command results and diagnostics using the rich library.

    Success output goes to stdout, errors and diagnostics to stderr. In JSON
    mode results are single-line envelopes so they can be piped.
    """

    def __init__(
        self,
        json_output: bool = False,
        verbose: bool = False,
        output_mode: OutputMode = "inspect",
        select_fields: Optional[List[str]] = None,
    ):
        self.json_output = json_output
        self.verbose = verbose
        self.output_mode = output_mode
        self.select_fields = select_fields
        self._console = Console()
        self._err_console = Console(stderr=True)

    @property
    def console(self) -> Console:
        return self._console

    # --- DiagnosticsSink ---

    def emit(self, line: str) -> None:
        self._err_console.print(line, markup=False, highlight=False, soft_wrap=True)

    # --- Results ---

    def print_success(self, data: Any, request_id: Optional[str] = None) -> None:
        if self.json_output:
            envelope = {"ok": True, "data": data, "meta": _meta(request_id)}
            typer.echo(json.dumps(envelope, ensure_ascii=False))
            return

        if self.output_mode == "plain":
            typer.echo(render_plain(data, self.select_fields))
        elif self.output_mode == "table":
            self._print_table(data)
        elif isinstance(data, str):
            typer.echo(data)
        else:
            self.console.print(Pretty(data, expand_all=False), soft_wrap=True)

    def print_diff(self, diff: Dict[str, Any], request_id: Optional[str] = None) -> None:
        """Renders a published-vs-draft diff as ``+``/``-``/``~`` lines or a table."""
        if self.json_output or self.output_mode == "inspect":
            self.print_success(diff, request_id)
            return

        if self.output_mode == "plain":
            typer.echo(render_diff_lines(diff))
            return

        table = Table(show_header=True, header_style="bold")
        for column in ("type", "field", "before", "after"):
            table.add_column(column)
        for entry in diff.get("added", []):
            table.add_row("added", entry["field"], "", format_scalar(entry["value"]))
        for entry in diff.get("removed", []):
            table.add_row("removed", entry["field"], format_scalar(entry["value"]), "")
        for entry in diff.get("changed", []):
            table.add_row("changed", entry["field"], format_scalar(entry["before"]), format_scalar(entry["after"]))
        self.console.print(table)

    def print_error(self, error: CliError, request_id: Optional[str] = None) -> None:
        include_details = self.verbose or isinstance(error, PayloadValidationError)
        logger.debug(f"Rendering error {error!r}")

        if self.json_output:
            envelope = {"ok": False, "error": error.to_json(include_details), "meta": _meta(request_id)}
            typer.echo(json.dumps(envelope, ensure_ascii=False), err=True)
            return

        self._err_console.print(
            f"[bold red]{escape(f'[{error.code.value}]')}[/bold red] {escape(error.message)}",
            highlight=False,
            soft_wrap=True,
        )
        if include_details and error.details is not None:
            self._err_console.print(Pretty(error.details))

    def _print_table(self, data: Any) -> None:
        rows = [project_row(row, self.select_fields) for row in extract_rows(data)]
        if not rows:
            typer.echo("(no rows)")
            return
        columns = self.select_fields or collect_columns(rows)
        if not columns:
            typer.echo("(no columns)")
            return

        table = Table(show_header=True, header_style="bold")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(format_scalar(row.get(column, _MISSING)) for column in columns))
        self.console.print(table)


_MISSING = object()


def _meta(request_id: Optional[str]) -> Dict[str, Any]:
    return {"requestId": request_id, "version": OUTPUT_VERSION}


def format_scalar(value: Any) -> str:
    if value is _MISSING:
        return ""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def get_value_by_path(row: Dict[str, Any], path: str) -> Any:
    current: Any = row
    for key in (part for part in path.split(".") if part):
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def project_row(row: Dict[str, Any], select_fields: Optional[List[str]]) -> Dict[str, Any]:
    if not select_fields:
        return row
    return {field: get_value_by_path(row, field) for field in select_fields}


def _normalize_row(item: Any) -> Dict[str, Any]:
    return item if isinstance(item, dict) else {"value": item}


def extract_rows(data: Any) -> List[Dict[str, Any]]:
    """Rows of a list, of a ``{contents: [...]}`` page, or of a single object."""
    if isinstance(data, list):
        return [_normalize_row(item) for item in data]
    if isinstance(data, dict) and isinstance(data.get("contents"), list):
        return [_normalize_row(item) for item in data["contents"]]
    if isinstance(data, dict):
        return [data]
    return [{"value": data}]


def collect_columns(rows: List[Dict[str, Any]]) -> List[str]:
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def render_plain(data: Any, select_fields: Optional[List[str]] = None) -> str:
    """One line per item, ``key=value`` pairs separated by tabs."""
    if isinstance(data, str):
        return data
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("contents"), list):
        items = data["contents"]
    else:
        return _render_plain_item(data, select_fields)

    if not items:
        return "(empty)"
    return "\n".join(_render_plain_item(item, select_fields) for item in items)


def _render_plain_item(item: Any, select_fields: Optional[List[str]]) -> str:
    if not isinstance(item, dict):
        return format_scalar(item)
    projected = project_row(item, select_fields)
    if not projected:
        return "{}"
    return "\t".join(f"{key}={format_scalar(value)}" for key, value in projected.items())


def render_diff_lines(diff: Dict[str, Any]) -> str:
    lines = [f"+ {entry['field']}: {format_scalar(entry['value'])}" for entry in diff.get("added", [])]
    lines += [f"- {entry['field']}: {format_scalar(entry['value'])}" for entry in diff.get("removed", [])]
    lines += [
        f"~ {entry['field']}: {format_scalar(entry['before'])} -> {format_scalar(entry['after'])}"
        for entry in diff.get("changed", [])
    ]
    return "\n".join(lines) if lines else "(no differences)"
