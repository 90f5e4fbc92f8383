"""
Read access to the audit trail.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.deps import get_db_session
from core.audit import list_audit_events


router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/events")
async def audit_events(
    event_type: Optional[str] = None,
    target_type: Optional[str] = None,
    actor_id: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    limit: int = 100,
    cursor: Optional[str] = None,
    db=Depends(get_db_session),
):
    try:
        return list_audit_events(
            db,
            event_type=event_type,
            target_type=target_type,
            actor_id=actor_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            cursor=cursor,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
