"""Parsing of bulk operation files into typed, immutable operations."""

import logging
from typing import Any, List

from pydantic import ValidationError

from cmscli.domain.models.errors import invalid_input
from cmscli.domain.models.operations import Operation, OperationFile

logger = logging.getLogger(__name__)


def parse_bulk_operations(document: Any) -> List[Operation]:
    """Parses ``{"operations": [...]}``.

    Raises:
        CliError: INVALID_INPUT "Invalid bulk operation file" with one
            ``{path, message}`` entry per problem under ``details.issues``.
    """
    try:
        parsed = OperationFile.model_validate(document)
    except ValidationError as e:
        issues = [
            {"path": ".".join(str(part) for part in issue["loc"]), "message": issue["msg"]}
            for issue in e.errors()
        ]
        logger.debug(f"Rejected bulk operation file with {len(issues)} issue(s)")
        raise invalid_input("Invalid bulk operation file", {"issues": issues}) from e

    logger.debug(f"Parsed {len(parsed.operations)} bulk operation(s)")
    return list(parsed.operations)
