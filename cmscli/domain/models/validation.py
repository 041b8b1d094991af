"""Result structure of the payload precheck."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

Severity = Literal["error", "warning"]


@dataclass
class ValidationIssue:
    severity: Severity
    message: str
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"severity": self.severity, "field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of validating one payload against an API schema."""
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)

    def add_error(self, message: str, field_id: Optional[str] = None) -> None:
        self.errors.append(message)
        self.issues.append(ValidationIssue("error", message, field_id))
        self.valid = False

    def add_warning(self, message: str, field_id: Optional[str] = None) -> None:
        self.warnings.append(message)
        self.issues.append(ValidationIssue("warning", message, field_id))

    def fails(self, strict_warnings: bool = False) -> bool:
        """True when the payload must be rejected under the given strictness."""
        return not self.valid or (strict_warnings and bool(self.warnings))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "issues": [issue.to_dict() for issue in self.issues],
        }
