"""Prechecks a content payload against an API schema.

The schema is whatever the management API returns for an endpoint; fields
are read from ``apiFields``, ``fields`` or ``customFields``. Unknown field
kinds are skipped rather than guessed, so the check never produces false
type errors.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Set

from cmscli.domain.models.validation import ValidationResult

logger = logging.getLogger(__name__)

_KIND_SEPARATORS = re.compile(r"[\s_-]")

# Explicit type hints (type / fieldType / inputType)
_TYPE_HINTS: Dict[str, str] = {
    "string": "string", "text": "string",
    "number": "number", "int": "number", "integer": "number",
    "float": "number", "double": "number", "decimal": "number",
    "boolean": "boolean", "bool": "boolean",
    "array": "array", "list": "array",
    "object": "object", "group": "object",
}

# CMS field kinds
_KINDS: Dict[str, str] = {
    "number": "number", "int": "number", "integer": "number",
    "float": "number", "double": "number", "decimal": "number",
    "boolean": "boolean", "switch": "boolean", "checkbox": "boolean",
    "repeater": "array", "array": "array", "list": "array",
    "group": "object", "object": "object",
}
for _kind in ("text", "textarea", "richtext", "richeditor", "wysiwyg", "date",
              "datetime", "time", "slug", "url", "select", "radio"):
    _KINDS[_kind] = "string"


def validate_payload(payload: Any, schema: Any = None) -> ValidationResult:
    """Validates one payload.

    Args:
        payload: The content payload; must be a JSON object.
        schema: Optional API schema. Without fields only the payload shape is checked.

    Returns:
        A ValidationResult. Unknown payload keys are warnings, everything else is an error.
    """
    result = ValidationResult()
    if not isinstance(payload, dict):
        result.add_error("Payload must be a JSON object")
        return result

    fields = extract_fields(schema)
    known = {f["fieldId"]: f for f in fields if isinstance(f.get("fieldId"), str) and f["fieldId"]}

    for field in fields:
        field_id = field.get("fieldId")
        if field.get("required") and field_id and field_id not in payload:
            result.add_error(f"Required field is missing: {field_id}", field_id)

    if known:
        for key in payload:
            if key not in known:
                result.add_warning(f"Unknown field in payload: {key}", key)

    for key, value in payload.items():
        field = known.get(key)
        if field is None:
            continue

        expected = infer_expected_type(field)
        if expected and not matches_expected_type(value, expected):
            result.add_error(f"Field type mismatch: {key} expected {expected}", key)
            continue

        allowed = extract_allowed_values(field)
        if not allowed:
            continue

        if isinstance(value, str):
            if value not in allowed:
                result.add_error(
                    f"Field value out of range: {key} must be one of [{', '.join(allowed)}]", key
                )
        elif isinstance(value, list):
            invalid = [item for item in value if isinstance(item, str) and item not in allowed]
            if invalid:
                result.add_error(
                    f"Field value out of range: {key} has invalid values [{', '.join(invalid)}]", key
                )

    logger.debug(
        f"Validated payload with {len(payload)} keys against {len(known)} fields: "
        f"{len(result.errors)} errors, {len(result.warnings)} warnings"
    )
    return result


def extract_fields(schema: Any) -> List[Dict[str, Any]]:
    if not isinstance(schema, dict):
        return []
    for key in ("apiFields", "fields", "customFields"):
        candidate = schema.get(key)
        if isinstance(candidate, list):
            return [item for item in candidate if isinstance(item, dict)]
    return []


def normalize_kind(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    normalized = _KIND_SEPARATORS.sub("", value.strip().lower())
    return normalized or None


def infer_expected_type(field: Dict[str, Any]) -> Optional[str]:
    """Expected JSON type of a field, or None when it cannot be told safely."""
    for hint in (field.get("type"), field.get("fieldType"), field.get("inputType")):
        normalized = normalize_kind(hint)
        if normalized in _TYPE_HINTS:
            return _TYPE_HINTS[normalized]

    kind = normalize_kind(field.get("kind"))
    if kind is None:
        return None
    if kind == "relation":
        return "array" if field.get("multiple") or field.get("isMultiple") else None
    return _KINDS.get(kind)


def matches_expected_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        # bool is an int subclass; JSON ints are unbounded and never NaN/inf
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and math.isfinite(value))
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    return True


def extract_allowed_values(field: Dict[str, Any]) -> List[str]:
    """Allowed values of a select-like field, in declaration order."""
    for candidate in (field.get("selectItems"), field.get("options")):
        if not isinstance(candidate, list):
            continue

        values: List[str] = []
        seen: Set[str] = set()
        for item in candidate:
            if isinstance(item, dict):
                item = item.get("value") if item.get("value") is not None else item.get("id")
            if isinstance(item, str) and item and item not in seen:
                seen.add(item)
                values.append(item)
        if values:
            return values
    return []
