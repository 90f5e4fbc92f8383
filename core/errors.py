"""
Shared error types for core services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class ValidationIssue(ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_type: str = "invalid",
        error_code: str | None = None,
        data: dict | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.error_type = error_type
        self.error_code = error_code
        self.data = data


@dataclass(frozen=True)
class Violation:
    """A single field-scoped constraint violation."""

    field: str
    message_key: str
    message: str

    def as_dict(self) -> dict:
        return {
            "field": self.field,
            "message_key": self.message_key,
            "message": self.message,
        }


class AssociationValidationError(ValidationIssue):
    """Raised by services when a part association fails validation."""

    def __init__(self, violations: Sequence[Violation]):
        self.violations = tuple(violations)
        first = self.violations[0] if self.violations else None
        super().__init__(
            "; ".join(v.message for v in self.violations) or "association is invalid",
            field=first.field if first else "unknown",
            error_type="constraint_violation",
            error_code=first.message_key if first else None,
            data={"violations": [v.as_dict() for v in self.violations]},
        )
