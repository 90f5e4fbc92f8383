"""
Shared helpers and configuration for PartLink services.
"""

from __future__ import annotations

from functools import wraps
from typing import Callable

import core.config as config
from core.errors import AssociationValidationError, ValidationIssue
from core.validators import (
    validate_required_text as _validate_required_text,
    validate_optional_text as _validate_optional_text,
    validate_limit as _validate_limit,
    validate_id as _validate_id,
)

# =============================================================================
# Configuration
# =============================================================================

logger = config.logger

MAX_RESULT_LIMIT = config.MAX_RESULT_LIMIT
MAX_TEXT_LENGTH = config.MAX_TEXT_LENGTH
MAX_SHORT_TEXT_LENGTH = config.MAX_SHORT_TEXT_LENGTH


class NotFoundError(Exception):
    pass


# =============================================================================
# Helper Functions
# =============================================================================

def _tool_error_payload(tool_name: str, exc: ValidationIssue) -> dict:
    payload = {
        "status": "error",
        "error_type": "validation_error",
        "tool": tool_name,
        "field": exc.field,
        "message": str(exc),
    }
    if isinstance(exc, AssociationValidationError):
        payload["violations"] = [violation.as_dict() for violation in exc.violations]
    return payload


def _log_validation_issue(tool_name: str, exc: ValidationIssue, warn: bool = False) -> None:
    payload = {
        "tool": tool_name,
        "field": exc.field,
        "error_type": exc.error_type,
        "detail": str(exc),
    }
    if warn:
        logger.warning("tool_validation_error", extra=payload)
    else:
        logger.info("tool_validation_error", extra=payload)


def _tool_error_handler(fn: Callable[..., dict]) -> Callable[..., dict]:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except NotFoundError as exc:
            return {"status": "error", "error_type": "not_found", "message": str(exc)}
        except ValidationIssue as exc:
            _log_validation_issue(fn.__name__, exc, warn=False)
            return _tool_error_payload(fn.__name__, exc)
        except ValueError as exc:
            issue = ValidationIssue(str(exc), field="unknown", error_type="value_error")
            _log_validation_issue(fn.__name__, issue, warn=True)
            return _tool_error_payload(fn.__name__, issue)
    return wrapper


def service_tool(fn: Callable[..., dict]) -> Callable[..., dict]:
    return _tool_error_handler(fn)


def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


__all__ = [
    "logger",
    "MAX_RESULT_LIMIT",
    "MAX_TEXT_LENGTH",
    "MAX_SHORT_TEXT_LENGTH",
    "NotFoundError",
    "service_tool",
    "_validate_required_text",
    "_validate_optional_text",
    "_validate_limit",
    "_validate_id",
    "_isoformat",
]
