"""
Part services. Deleting a part removes every association that references it.
"""

from __future__ import annotations

from typing import Optional

from core.audit import record_service_event
from core.audit_constants import EVENT_ASSOCIATION_DELETED, EVENT_PART_CREATED, EVENT_PART_DELETED
from core.context import RequestContext
from core.db import DB
from core.models import Part, PartAssociation
from core.services.part_associations import associations_by_other, associations_by_owner
from core.services.service_shared import (
    _isoformat,
    _validate_id,
    _validate_limit,
    _validate_optional_text,
    _validate_required_text,
    MAX_RESULT_LIMIT,
    MAX_SHORT_TEXT_LENGTH,
    MAX_TEXT_LENGTH,
    NotFoundError,
    service_tool,
    logger,
)


def serialize_part(row: Part) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "description": row.description,
        "created_at": _isoformat(row.created_at),
        "updated_at": _isoformat(row.updated_at),
    }


def delete_associations_for_part(
    db,
    part_id: int,
    context: Optional[RequestContext] = None,
) -> list[int]:
    """
    Delete every association that has the part as owner or other.

    Runs inside the caller's transaction so the associations go away
    together with the part. Returns the removed association ids.
    """
    association_ids = sorted(associations_by_owner(db, part_id) | associations_by_other(db, part_id))
    if not association_ids:
        return []
    (
        db.query(PartAssociation)
        .filter(PartAssociation.id.in_(association_ids))
        .delete(synchronize_session="fetch")
    )
    record_service_event(
        db,
        context,
        event_type=EVENT_ASSOCIATION_DELETED,
        target_type="part_association",
        target_ids=association_ids,
        count_affected=len(association_ids),
        metadata={"cascade_from_part_id": part_id},
    )
    logger.info(
        "part_associations_cascaded",
        extra={"part_id": part_id, "count": len(association_ids)},
    )
    return association_ids


@service_tool
def part_create(
    name: str,
    description: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """Create a part."""
    _validate_required_text(name, "name", MAX_SHORT_TEXT_LENGTH)
    _validate_optional_text(description, "description", MAX_TEXT_LENGTH)

    db = DB.SessionLocal()
    try:
        part = Part(name=name.strip(), description=description)
        db.add(part)
        db.flush()
        record_service_event(
            db,
            context,
            event_type=EVENT_PART_CREATED,
            target_type="part",
            target_ids=[part.id],
        )
        db.commit()
        db.refresh(part)
        return {"status": "stored", "id": part.id, "part": serialize_part(part)}
    finally:
        db.close()


@service_tool
def part_get(part_id: int) -> dict:
    """Fetch one part."""
    _validate_id(part_id, "part_id")
    db = DB.SessionLocal()
    try:
        part = db.get(Part, part_id)
        if part is None:
            raise NotFoundError(f"Part {part_id} not found")
        return {"status": "found", "part": serialize_part(part)}
    finally:
        db.close()


@service_tool
def part_list(limit: int = 100) -> dict:
    """List parts by id."""
    _validate_limit(limit, "limit", MAX_RESULT_LIMIT)
    db = DB.SessionLocal()
    try:
        rows = db.query(Part).order_by(Part.id.asc()).limit(limit).all()
        return {
            "status": "ok",
            "count": len(rows),
            "parts": [serialize_part(row) for row in rows],
        }
    finally:
        db.close()


@service_tool
def part_delete(
    part_id: int,
    context: Optional[RequestContext] = None,
) -> dict:
    """Delete a part together with its associations."""
    _validate_id(part_id, "part_id")
    db = DB.SessionLocal()
    try:
        part = db.get(Part, part_id)
        if part is None:
            raise NotFoundError(f"Part {part_id} not found")

        removed = delete_associations_for_part(db, part_id, context=context)
        db.delete(part)
        record_service_event(
            db,
            context,
            event_type=EVENT_PART_DELETED,
            target_type="part",
            target_ids=[part_id],
            count_affected=1,
            metadata={"associations_removed": len(removed)},
        )
        db.commit()
        return {
            "status": "deleted",
            "id": part_id,
            "associations_removed": len(removed),
            "removed_association_ids": removed,
        }
    finally:
        db.close()


__all__ = [
    "serialize_part",
    "delete_associations_for_part",
    "part_create",
    "part_get",
    "part_list",
    "part_delete",
]
