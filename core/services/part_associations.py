"""
Part association services for typed edges between parts.

Supports:
- Creating, updating and deleting associations with full validation
- Listing associations of a part by direction
- Owner/other index lookups used by the part deletion cascade
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from core.audit import record_service_event
from core.audit_constants import (
    EVENT_ASSOCIATION_CREATED,
    EVENT_ASSOCIATION_DELETED,
    EVENT_ASSOCIATION_UPDATED,
)
from core.context import RequestContext
from core.db import DB
from core.errors import AssociationValidationError, ValidationIssue, Violation
from core.labels import translate
from core.models import AssociationType, Part, PartAssociation
from core.services.service_shared import (
    _isoformat,
    _validate_id,
    _validate_limit,
    _validate_optional_text,
    MAX_RESULT_LIMIT,
    MAX_TEXT_LENGTH,
    NotFoundError,
    service_tool,
    logger,
)
from core.validators import (
    MSG_ALREADY_EXISTS,
    MSG_SELF_ASSOCIATION,
    coerce_association_type,
    validate_part_association,
)

DIRECTIONS = {"both", "out", "in"}


def serialize_part_association(row: PartAssociation) -> dict:
    label_key = row.resolve_label()
    # Free-text labels are shown verbatim, even when they look like a catalog key
    label = label_key if row.type == AssociationType.OTHER else translate(label_key)
    return {
        "id": row.id,
        "type": row.type.value if row.type is not None else None,
        "other_type": row.other_type,
        "comment": row.comment,
        "owner_id": row.owner_id,
        "other_id": row.other_id,
        "label_key": label_key,
        "label": label,
        "created_at": _isoformat(row.created_at),
        "updated_at": _isoformat(row.updated_at),
    }


def associations_by_owner(db, part_id: int) -> set[int]:
    """Ids of associations owned by a part."""
    rows = db.query(PartAssociation.id).filter(PartAssociation.owner_id == part_id).all()
    return {row[0] for row in rows}


def associations_by_other(db, part_id: int) -> set[int]:
    """Ids of associations pointing at a part."""
    rows = db.query(PartAssociation.id).filter(PartAssociation.other_id == part_id).all()
    return {row[0] for row in rows}


def _load_part(db, part_id, field: str) -> Optional[Part]:
    # A missing id is reported by the association validator, not here
    if part_id is None:
        return None
    _validate_id(part_id, field)
    part = db.get(Part, part_id)
    if part is None:
        raise NotFoundError(f"Part {part_id} not found")
    return part


def _load_association(db, association_id) -> PartAssociation:
    _validate_id(association_id, "association_id")
    association = db.get(PartAssociation, association_id)
    if association is None:
        raise NotFoundError(f"Part association {association_id} not found")
    return association


def _integrity_error_kind(exc: IntegrityError) -> str:
    detail = str(exc.orig).lower()
    if "uq_part_associations_other_owner_type" in detail or "unique" in detail:
        return "duplicate"
    if "ck_part_associations_distinct" in detail or "check constraint" in detail:
        return "self"
    if "foreign key" in detail:
        return "missing_part"
    return "unknown"


def _flush_validated(db, association: PartAssociation) -> None:
    """Validate, then flush; the storage constraints settle concurrent writers."""
    violations = validate_part_association(db, association)
    if violations:
        db.rollback()
        raise AssociationValidationError(violations)
    db.add(association)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        kind = _integrity_error_kind(exc)
        logger.info(
            "part_association_integrity_error",
            extra={"kind": kind, "detail": str(exc.orig)},
        )
        if kind == "duplicate":
            raise AssociationValidationError(
                [
                    Violation(
                        "other",
                        MSG_ALREADY_EXISTS,
                        "an association with the same parts and type already exists",
                    )
                ]
            ) from exc
        if kind == "self":
            raise AssociationValidationError(
                [
                    Violation(
                        "other",
                        MSG_SELF_ASSOCIATION,
                        "a part cannot be associated with itself",
                    )
                ]
            ) from exc
        if kind == "missing_part":
            raise NotFoundError("Part referenced by the association no longer exists") from exc
        raise


@service_tool
def part_association_add(
    owner_id: Optional[int],
    other_id: Optional[int],
    type: str = AssociationType.OTHER.value,
    other_type: Optional[str] = None,
    comment: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> dict:
    """Associate two parts."""
    type_value = coerce_association_type(type)
    _validate_optional_text(other_type, "other_type", MAX_TEXT_LENGTH)
    _validate_optional_text(comment, "comment", MAX_TEXT_LENGTH)

    db = DB.SessionLocal()
    try:
        association = PartAssociation(
            type=type_value,
            other_type=other_type,
            comment=comment,
            owner=_load_part(db, owner_id, "owner_id"),
            other=_load_part(db, other_id, "other_id"),
        )
        _flush_validated(db, association)
        record_service_event(
            db,
            context,
            event_type=EVENT_ASSOCIATION_CREATED,
            target_type="part_association",
            target_ids=[association.id],
            metadata={
                "type": type_value.value,
                "owner_id": association.owner_id,
                "other_id": association.other_id,
            },
        )
        db.commit()
        db.refresh(association)

        return {
            "status": "created",
            "association": serialize_part_association(association),
        }
    finally:
        db.close()


@service_tool
def part_association_get(association_id: int) -> dict:
    """Fetch one association."""
    db = DB.SessionLocal()
    try:
        association = _load_association(db, association_id)
        return {
            "status": "found",
            "association": serialize_part_association(association),
        }
    finally:
        db.close()


@service_tool
def part_association_update(
    association_id: int,
    type: Optional[str] = None,
    other_type: Optional[str] = None,
    comment: Optional[str] = None,
    owner_id: Optional[int] = None,
    other_id: Optional[int] = None,
    clear_other_type: bool = False,
    clear_comment: bool = False,
    context: Optional[RequestContext] = None,
) -> dict:
    """Change fields of an association and re-validate it."""
    _validate_optional_text(other_type, "other_type", MAX_TEXT_LENGTH)
    _validate_optional_text(comment, "comment", MAX_TEXT_LENGTH)
    if clear_other_type and other_type is not None:
        raise ValidationIssue(
            "other_type and clear_other_type are mutually exclusive",
            field="other_type",
            error_type="invalid_value",
        )
    if clear_comment and comment is not None:
        raise ValidationIssue(
            "comment and clear_comment are mutually exclusive",
            field="comment",
            error_type="invalid_value",
        )
    type_value = coerce_association_type(type) if type is not None else None

    db = DB.SessionLocal()
    try:
        association = _load_association(db, association_id)
        new_owner = None
        if owner_id is not None and owner_id != association.owner_id:
            new_owner = _load_part(db, owner_id, "owner_id")
        new_other = None
        if other_id is not None and other_id != association.other_id:
            new_other = _load_part(db, other_id, "other_id")
        changed: list[str] = []

        # Intermediate states (a half swapped direction) must not reach the table
        with db.no_autoflush:
            if type_value is not None and type_value != association.type:
                association.type = type_value
                changed.append("type")
            if clear_other_type and association.other_type is not None:
                association.other_type = None
                changed.append("other_type")
            elif other_type is not None and other_type != association.other_type:
                association.other_type = other_type
                changed.append("other_type")
            if clear_comment and association.comment is not None:
                association.comment = None
                changed.append("comment")
            elif comment is not None and comment != association.comment:
                association.comment = comment
                changed.append("comment")
            if new_owner is not None:
                association.owner = new_owner
                changed.append("owner")
            if new_other is not None:
                association.other = new_other
                changed.append("other")

            if changed:
                _flush_validated(db, association)

        if changed:
            record_service_event(
                db,
                context,
                event_type=EVENT_ASSOCIATION_UPDATED,
                target_type="part_association",
                target_ids=[association.id],
                metadata={"fields": changed},
            )
            db.commit()
            db.refresh(association)

        return {
            "status": "updated" if changed else "unchanged",
            "changed_fields": changed,
            "association": serialize_part_association(association),
        }
    finally:
        db.close()


@service_tool
def part_association_delete(
    association_id: int,
    context: Optional[RequestContext] = None,
) -> dict:
    """Delete one association. The parts stay untouched."""
    db = DB.SessionLocal()
    try:
        association = _load_association(db, association_id)
        db.delete(association)
        record_service_event(
            db,
            context,
            event_type=EVENT_ASSOCIATION_DELETED,
            target_type="part_association",
            target_ids=[association_id],
            count_affected=1,
        )
        db.commit()
        return {"status": "deleted", "id": association_id}
    finally:
        db.close()


@service_tool
def part_association_list(
    part_id: int,
    direction: str = "both",
    type: Optional[str] = None,
    limit: int = 100,
) -> dict:
    """List associations of a part."""
    _validate_id(part_id, "part_id")
    _validate_limit(limit, "limit", MAX_RESULT_LIMIT)

    direction_value = (direction or "both").strip().lower()
    if direction_value not in DIRECTIONS:
        raise ValidationIssue(
            "direction must be one of: both, out, in",
            field="direction",
            error_type="invalid_value",
        )
    type_value = coerce_association_type(type) if type is not None else None

    db = DB.SessionLocal()
    try:
        _load_part(db, part_id, "part_id")

        query = db.query(PartAssociation)
        if direction_value == "out":
            query = query.filter(PartAssociation.owner_id == part_id)
        elif direction_value == "in":
            query = query.filter(PartAssociation.other_id == part_id)
        else:
            query = query.filter(
                or_(
                    PartAssociation.owner_id == part_id,
                    PartAssociation.other_id == part_id,
                )
            )
        if type_value is not None:
            query = query.filter(PartAssociation.type == type_value)

        rows = (
            query.order_by(PartAssociation.created_at.asc(), PartAssociation.id.asc())
            .limit(limit)
            .all()
        )

        results = []
        for row in rows:
            if row.owner_id == part_id:
                neighbor_id = row.other_id
                row_direction = "out"
            else:
                neighbor_id = row.owner_id
                row_direction = "in"
            results.append({
                "neighbor_id": neighbor_id,
                "direction": row_direction,
                "association": serialize_part_association(row),
            })

        return {
            "status": "ok",
            "part_id": part_id,
            "count": len(results),
            "associations": results,
        }
    finally:
        db.close()


__all__ = [
    "DIRECTIONS",
    "serialize_part_association",
    "associations_by_owner",
    "associations_by_other",
    "part_association_add",
    "part_association_get",
    "part_association_update",
    "part_association_delete",
    "part_association_list",
]
