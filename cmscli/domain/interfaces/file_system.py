import abc
from typing import Any

from cmscli.domain.models.common import FilePath


class FileSystem(abc.ABC):
    """Interface for file system operations."""

    @abc.abstractmethod
    async def read_json(self, path: FilePath) -> Any:
        """Reads and parses a JSON file.

        Raises:
            CliError: INVALID_INPUT if the file cannot be read or is not JSON.
        """
        pass

    @abc.abstractmethod
    async def write_text(self, path: FilePath, content: str) -> None:
        """Writes text content, creating parent directories as needed."""
        pass

    @abc.abstractmethod
    async def file_size(self, path: FilePath) -> int:
        """Returns the size in bytes of a regular file.

        Raises:
            CliError: INVALID_INPUT if the path is missing or not a regular file.
        """
        pass

    @abc.abstractmethod
    async def read_bytes(self, path: FilePath) -> bytes:
        pass
