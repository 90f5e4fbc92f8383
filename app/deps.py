"""
Dependency helpers for the standalone FastAPI app.
"""

from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException

from core.context import AuthContext, RequestContext
from core.db import DB


def get_db_session() -> Generator:
    if DB.SessionLocal is None:
        raise RuntimeError("Database not initialized - SessionLocal is None")
    db = DB.SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_auth_context(
    x_actor: Optional[str] = Header(default=None),
) -> AuthContext:
    if x_actor and x_actor.strip():
        return AuthContext(actor=x_actor.strip()[:255])
    return AuthContext(actor="anonymous")


async def get_request_context(
    auth: AuthContext = Depends(get_auth_context),
    x_request_id: Optional[str] = Header(default=None),
) -> RequestContext:
    return RequestContext(auth=auth, request_id=x_request_id, source="api")


def raise_for_service_error(result: dict) -> dict:
    """Map service error payloads onto HTTP errors; pass successes through."""
    if result.get("status") != "error":
        return result
    if result.get("error_type") == "not_found":
        raise HTTPException(status_code=404, detail=result)
    raise HTTPException(status_code=422, detail=result)
