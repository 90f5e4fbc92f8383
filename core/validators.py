"""
Shared validation helpers for PartLink services.
"""

from __future__ import annotations

from typing import Optional

from core.config import MAX_SHORT_TEXT_LENGTH
from core.errors import ValidationIssue, Violation
from core.models import AssociationType, PartAssociation

MSG_NOT_NULL = "validator.not_null"
MSG_MAX_LENGTH = "validator.max_length"
MSG_SELF_ASSOCIATION = "validator.part_association.part_cannot_be_associated_with_itself"
MSG_OTHER_TYPE_REQUIRED = "validator.part_association.must_set_an_value_if_type_is_other"
MSG_ALREADY_EXISTS = "validator.part_association.already_exists"


def validate_required_text(value: str, field: str, max_len: int) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationIssue(f"{field} must be a non-empty string", field=field, error_type="required")
    if len(value) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")


def validate_optional_text(value: Optional[str], field: str, max_len: int) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ValidationIssue(f"{field} must be a string", field=field, error_type="invalid_type")
    if len(value) > max_len:
        raise ValidationIssue(f"{field} exceeds max length {max_len}", field=field, error_type="max_length")


def validate_limit(value: int, field: str, max_value: int) -> None:
    if value <= 0 or value > max_value:
        raise ValidationIssue(f"{field} must be between 1 and {max_value}", field=field, error_type="out_of_range")


def validate_id(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationIssue(f"{field} must be an integer ID", field=field, error_type="invalid_type")
    if value <= 0:
        raise ValidationIssue(f"{field} must be a positive integer", field=field, error_type="invalid_id")
    return value


def coerce_association_type(value, field: str = "type") -> AssociationType:
    if isinstance(value, AssociationType):
        return value
    if not isinstance(value, str):
        raise ValidationIssue(f"{field} must be a string", field=field, error_type="invalid_type")
    normalized = value.strip().lower()
    for member in AssociationType:
        if member.value == normalized:
            return member
    allowed = ", ".join(member.value for member in AssociationType)
    raise ValidationIssue(
        f"{field} must be one of: {allowed}",
        field=field,
        error_type="invalid_value",
    )


def _part_key(part, part_id):
    if part is not None:
        return part.id
    return part_id


def _is_same_part(association: PartAssociation) -> bool:
    owner = association.owner
    other = association.other
    if owner is not None and other is not None:
        if owner is other:
            return True
        return owner.id is not None and owner.id == other.id
    owner_key = _part_key(owner, association.owner_id)
    other_key = _part_key(other, association.other_id)
    return owner_key is not None and owner_key == other_key


def _find_duplicate_id(db, association: PartAssociation) -> Optional[int]:
    owner_key = _part_key(association.owner, association.owner_id)
    other_key = _part_key(association.other, association.other_id)
    if owner_key is None or other_key is None:
        # unsaved parts cannot collide with persisted rows
        return None
    with db.no_autoflush:
        query = (
            db.query(PartAssociation.id)
            .filter(PartAssociation.owner_id == owner_key)
            .filter(PartAssociation.other_id == other_key)
            .filter(PartAssociation.type == association.type)
        )
        if association.id is not None:
            query = query.filter(PartAssociation.id != association.id)
        row = query.first()
    return row[0] if row else None


def validate_part_association(db, association: PartAssociation) -> list[Violation]:
    """
    Check a part association against its constraints.

    Every check runs and all violations are returned; an empty list means the
    association may be persisted. Nothing is written. Pass db=None to skip the
    uniqueness check (no persisted set to compare against).
    """
    violations: list[Violation] = []

    has_owner = association.owner is not None or association.owner_id is not None
    has_other = association.other is not None or association.other_id is not None
    if not has_owner:
        violations.append(Violation("owner", MSG_NOT_NULL, "owner must be set"))
    if not has_other:
        violations.append(Violation("other", MSG_NOT_NULL, "other must be set"))
    if has_owner and has_other and _is_same_part(association):
        violations.append(
            Violation("other", MSG_SELF_ASSOCIATION, "a part cannot be associated with itself")
        )

    if association.type is None:
        violations.append(Violation("type", MSG_NOT_NULL, "type must be set"))
    elif association.type == AssociationType.OTHER and association.other_type is None:
        violations.append(
            Violation(
                "other_type",
                MSG_OTHER_TYPE_REQUIRED,
                "other_type must be set when type is other",
            )
        )
    if association.other_type is not None and len(association.other_type) > MAX_SHORT_TEXT_LENGTH:
        violations.append(
            Violation(
                "other_type",
                MSG_MAX_LENGTH,
                f"other_type exceeds max length {MAX_SHORT_TEXT_LENGTH}",
            )
        )

    if db is not None and has_owner and has_other and association.type is not None:
        duplicate_id = _find_duplicate_id(db, association)
        if duplicate_id is not None:
            violations.append(
                Violation(
                    "other",
                    MSG_ALREADY_EXISTS,
                    f"an association with the same parts and type already exists (id={duplicate_id})",
                )
            )

    return violations
