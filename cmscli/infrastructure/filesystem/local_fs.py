"""Concrete implementation of the FileSystem interface for the local disk.

Uses `pathlib` for paths and `aiofiles` for async I/O.
"""

import json
import logging
import stat
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from cmscli.domain.interfaces.file_system import FileSystem
from cmscli.domain.models.common import FilePath
from cmscli.domain.models.errors import invalid_input

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    """Implementation of FileSystem for the local disk."""

    async def read_json(self, path: FilePath) -> Any:
        """Reads a JSON file asynchronously."""
        file_path = Path(path)
        logger.debug(f"Attempting to read JSON file: {file_path}")
        try:
            async with aiofiles.open(file_path, mode="r", encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            logger.debug(f"Could not read {file_path}: {e}")
            raise invalid_input(f"Could not read file: {path}", {"path": str(path)}) from e
        except UnicodeDecodeError as e:
            logger.debug(f"{file_path} is not UTF-8 text: {e}")
            raise invalid_input(f"Invalid JSON file: {path}", {"path": str(path)}) from e

        try:
            return json.loads(raw)
        except ValueError as e:
            raise invalid_input(f"Invalid JSON file: {path}", {"path": str(path)}) from e

    async def file_size(self, path: FilePath) -> int:
        """Stats a file asynchronously, rejecting directories and missing paths."""
        try:
            info = await aiofiles.os.stat(Path(path))
        except OSError as e:
            raise invalid_input(f"Could not read file: {path}", {"path": str(path)}) from e
        if not stat.S_ISREG(info.st_mode):
            raise invalid_input(f"Path is not a file: {path}", {"path": str(path)})
        return info.st_size

    async def read_bytes(self, path: FilePath) -> bytes:
        """Reads a binary file asynchronously."""
        file_path = Path(path)
        logger.debug(f"Attempting to read binary file: {file_path}")
        try:
            async with aiofiles.open(file_path, mode="rb") as f:
                return await f.read()
        except OSError as e:
            raise invalid_input(f"Could not read file: {path}", {"path": str(path)}) from e

    async def write_text(self, path: FilePath, content: str) -> None:
        """Writes content to a file asynchronously."""
        file_path = Path(path)
        logger.debug(f"Attempting to write {len(content)} characters to file: {file_path}")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, mode="w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"Error writing file {file_path}: {e}")
            raise invalid_input(f"Could not write file: {path}", {"path": str(path)}) from e
        logger.debug(f"Successfully wrote to {file_path}")


def assert_object_payload(payload: Any) -> dict:
    """Rejects anything but a JSON object as a content payload."""
    if not isinstance(payload, dict):
        raise invalid_input("Payload must be a JSON object")
    return payload
