"""Core service that writes every item of an endpoint to a JSON or CSV file."""

import csv
import io
import json
import logging
from typing import Any, Dict, List

from cmscli.core.services.pagination import PaginatedFetcher
from cmscli.domain.interfaces.content_api import ContentApi
from cmscli.domain.interfaces.file_system import FileSystem
from cmscli.domain.models.common import FilePath
from cmscli.domain.models.errors import invalid_input

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def render_csv(contents: List[Any]) -> str:
    """Renders items as CSV. Columns are the scalar fields in first-seen order."""
    rows = [item for item in contents if isinstance(item, dict)]
    columns: List[str] = []
    for row in rows:
        for key, value in row.items():
            if key not in columns and is_scalar(value) and value is not None:
                columns.append(key)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_cell(row.get(column)) for column in columns])
    return buffer.getvalue()


def _cell(value: Any) -> str:
    if value is None or not is_scalar(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ExportService:
    """Fetches all items of an endpoint and writes them to disk."""

    def __init__(self, content_api: ContentApi, fetcher: PaginatedFetcher, file_system: FileSystem):
        self.content_api = content_api
        self.fetcher = fetcher
        self.file_system = file_system

    async def export(self, endpoint: str, out: FilePath, fmt: str = "json") -> Dict[str, Any]:
        if fmt not in EXPORT_FORMATS:
            raise invalid_input(f"Unsupported export format: {fmt}", {"supported": list(EXPORT_FORMATS)})

        merged = await self.fetcher.fetch_all(endpoint, None, self.content_api.list_content)
        contents = merged.data["contents"]

        if fmt == "csv":
            rendered = render_csv(contents)
        else:
            document = {"endpoint": endpoint, "totalCount": merged.data["totalCount"], "contents": contents}
            rendered = json.dumps(document, indent=2, ensure_ascii=False) + "\n"

        await self.file_system.write_text(out, rendered)
        logger.info(f"Exported {len(contents)} item(s) of '{endpoint}' to {out} as {fmt}")
        return {
            "operation": "content.export",
            "endpoint": endpoint,
            "format": fmt,
            "out": str(out),
            "count": len(contents),
        }
