"""
Request-scoped context objects for core services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import contextvars


@dataclass(frozen=True)
class AuthContext:
    user_id: Optional[int] = None
    actor: Optional[str] = None


@dataclass(frozen=True)
class RequestContext:
    auth: AuthContext
    request_id: Optional[str] = None
    source: Optional[str] = None


_CURRENT_REQUEST_CONTEXT: contextvars.ContextVar[Optional["RequestContext"]] = contextvars.ContextVar(
    "partlink_request_context",
    default=None,
)


def get_current_request_context() -> Optional["RequestContext"]:
    return _CURRENT_REQUEST_CONTEXT.get()


def set_current_request_context(context: Optional["RequestContext"]) -> contextvars.Token:
    return _CURRENT_REQUEST_CONTEXT.set(context)


def reset_current_request_context(token: contextvars.Token) -> None:
    _CURRENT_REQUEST_CONTEXT.reset(token)


def resolve_context(context: Optional["RequestContext"]) -> Optional["RequestContext"]:
    """Prefer an explicit context, then the one bound to the current request."""
    if context is not None:
        return context
    return get_current_request_context()


def actor_label(context: Optional["RequestContext"]) -> Optional[str]:
    resolved = resolve_context(context)
    if resolved is None or resolved.auth is None:
        return None
    return resolved.auth.actor


def request_id_of(context: Optional["RequestContext"]) -> Optional[str]:
    resolved = resolve_context(context)
    return resolved.request_id if resolved else None


__all__ = [
    "AuthContext",
    "RequestContext",
    "get_current_request_context",
    "set_current_request_context",
    "reset_current_request_context",
    "resolve_context",
    "actor_label",
    "request_id_of",
]
