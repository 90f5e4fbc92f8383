import os

os.environ.setdefault("DB_BACKEND", "sqlite")

from core.audit_constants import (
    EVENT_ASSOCIATION_CREATED,
    EVENT_ASSOCIATION_DELETED,
    EVENT_ASSOCIATION_UPDATED,
    EVENT_PART_DELETED,
)
from core.context import AuthContext, RequestContext
from core.models import AuditEvent, Part, PartAssociation
from core.services import part_associations as association_service
from core.services import parts as part_service
from core.validators import (
    MSG_ALREADY_EXISTS,
    MSG_NOT_NULL,
    MSG_OTHER_TYPE_REQUIRED,
    MSG_SELF_ASSOCIATION,
)


def _message_keys(result):
    return [violation["message_key"] for violation in result["violations"]]


def test_add_other_association_with_override(part_ids):
    part_a, part_b, _ = part_ids
    result = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="other",
        other_type="Replacement",
        comment="drop-in",
    )

    assert result["status"] == "created"
    association = result["association"]
    assert association["owner_id"] == part_a
    assert association["other_id"] == part_b
    assert association["type"] == "other"
    assert association["label_key"] == "Replacement"
    assert association["label"] == "Replacement"
    assert association["created_at"] is not None

    fetched = association_service.part_association_get(association_id=association["id"])
    assert fetched["status"] == "found"
    assert fetched["association"]["comment"] == "drop-in"


def test_add_closed_type_translates_label(part_ids):
    part_a, part_b, _ = part_ids
    result = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="SUPERSEDES",
    )

    assert result["status"] == "created"
    assert result["association"]["type"] == "supersedes"
    assert result["association"]["label_key"] == "part_association.type.supersedes"
    assert result["association"]["label"] == "Supersedes"


def test_add_self_association_reports_one_violation(part_ids, db_session):
    part_a, _, _ = part_ids
    result = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_a,
        type="compatible",
    )

    assert result["status"] == "error"
    assert result["error_type"] == "validation_error"
    assert _message_keys(result) == [MSG_SELF_ASSOCIATION]
    assert db_session.query(PartAssociation).count() == 0


def test_add_other_without_override_reports_one_violation(part_ids):
    part_a, part_b, _ = part_ids
    result = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="other",
        other_type=None,
    )

    assert result["status"] == "error"
    assert _message_keys(result) == [MSG_OTHER_TYPE_REQUIRED]
    assert result["violations"][0]["field"] == "other_type"


def test_add_without_parts_collects_violations(server_db):
    result = association_service.part_association_add(
        owner_id=None,
        other_id=None,
        type="compatible",
    )

    assert result["status"] == "error"
    assert _message_keys(result) == [MSG_NOT_NULL, MSG_NOT_NULL]


def test_add_duplicate_is_rejected(part_ids, db_session):
    part_a, part_b, part_c = part_ids
    first = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="compatible",
    )
    assert first["status"] == "created"

    duplicate = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="compatible",
    )
    assert duplicate["status"] == "error"
    assert _message_keys(duplicate) == [MSG_ALREADY_EXISTS]

    other_owner = association_service.part_association_add(
        owner_id=part_c,
        other_id=part_b,
        type="compatible",
    )
    assert other_owner["status"] == "created"
    assert db_session.query(PartAssociation).count() == 2


def test_add_rejects_unknown_type_and_part(part_ids):
    part_a, part_b, _ = part_ids
    bad_type = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="sibling",
    )
    assert bad_type["status"] == "error"
    assert bad_type["field"] == "type"

    missing_part = association_service.part_association_add(
        owner_id=part_a,
        other_id=9999,
        type="compatible",
    )
    assert missing_part["status"] == "error"
    assert missing_part["error_type"] == "not_found"

    bad_id = association_service.part_association_add(
        owner_id="abc",
        other_id=part_b,
        type="compatible",
    )
    assert bad_id["status"] == "error"
    assert bad_id["field"] == "owner_id"


def test_update_revalidates_and_excludes_itself(part_ids):
    part_a, part_b, part_c = part_ids
    created = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="other",
        other_type="Replacement",
    )
    association_id = created["association"]["id"]

    unchanged = association_service.part_association_update(
        association_id=association_id,
        other_type="Replacement",
    )
    assert unchanged["status"] == "unchanged"

    updated = association_service.part_association_update(
        association_id=association_id,
        comment="second source",
    )
    assert updated["status"] == "updated"
    assert updated["changed_fields"] == ["comment"]

    cleared = association_service.part_association_update(
        association_id=association_id,
        clear_other_type=True,
    )
    assert cleared["status"] == "error"
    assert _message_keys(cleared) == [MSG_OTHER_TYPE_REQUIRED]

    retyped = association_service.part_association_update(
        association_id=association_id,
        type="compatible",
        clear_other_type=True,
        other_id=part_c,
    )
    assert retyped["status"] == "updated"
    assert retyped["association"]["type"] == "compatible"
    assert retyped["association"]["other_type"] is None
    assert retyped["association"]["other_id"] == part_c
    assert retyped["changed_fields"] == ["type", "other_type", "other"]


def test_update_into_duplicate_or_self_is_rejected(part_ids):
    part_a, part_b, part_c = part_ids
    association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")
    second = association_service.part_association_add(owner_id=part_a, other_id=part_c, type="compatible")
    second_id = second["association"]["id"]

    duplicate = association_service.part_association_update(
        association_id=second_id,
        other_id=part_b,
    )
    assert duplicate["status"] == "error"
    assert _message_keys(duplicate) == [MSG_ALREADY_EXISTS]

    self_link = association_service.part_association_update(
        association_id=second_id,
        owner_id=part_c,
    )
    assert self_link["status"] == "error"
    assert _message_keys(self_link) == [MSG_SELF_ASSOCIATION]

    fetched = association_service.part_association_get(association_id=second_id)
    assert fetched["association"]["owner_id"] == part_a
    assert fetched["association"]["other_id"] == part_c


def test_list_by_direction_and_type(part_ids):
    part_a, part_b, part_c = part_ids
    association_service.part_association_add(owner_id=part_a, other_id=part_b, type="supersedes")
    association_service.part_association_add(owner_id=part_c, other_id=part_a, type="compatible")

    both = association_service.part_association_list(part_id=part_a)
    assert both["count"] == 2
    assert {item["direction"] for item in both["associations"]} == {"out", "in"}
    assert {item["neighbor_id"] for item in both["associations"]} == {part_b, part_c}

    outgoing = association_service.part_association_list(part_id=part_a, direction="out")
    assert outgoing["count"] == 1
    assert outgoing["associations"][0]["neighbor_id"] == part_b

    incoming = association_service.part_association_list(part_id=part_a, direction="in")
    assert incoming["count"] == 1
    assert incoming["associations"][0]["neighbor_id"] == part_c

    filtered = association_service.part_association_list(part_id=part_a, type="compatible")
    assert filtered["count"] == 1

    bad_direction = association_service.part_association_list(part_id=part_a, direction="sideways")
    assert bad_direction["status"] == "error"
    assert bad_direction["field"] == "direction"


def test_index_lookups(part_ids, db_session):
    part_a, part_b, part_c = part_ids
    first = association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")
    second = association_service.part_association_add(owner_id=part_c, other_id=part_a, type="compatible")

    assert association_service.associations_by_owner(db_session, part_a) == {first["association"]["id"]}
    assert association_service.associations_by_other(db_session, part_a) == {second["association"]["id"]}
    assert association_service.associations_by_owner(db_session, part_b) == set()


def test_delete_association_keeps_parts(part_ids, db_session):
    part_a, part_b, _ = part_ids
    created = association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")
    association_id = created["association"]["id"]

    deleted = association_service.part_association_delete(association_id=association_id)
    assert deleted == {"status": "deleted", "id": association_id}
    assert db_session.query(PartAssociation).count() == 0
    assert db_session.query(Part).count() == 3

    missing = association_service.part_association_delete(association_id=association_id)
    assert missing["status"] == "error"
    assert missing["error_type"] == "not_found"


def test_deleting_a_part_cascades_to_associations(part_ids, db_session):
    part_a, part_b, part_c = part_ids
    association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="other",
        other_type="Replacement",
    )
    association_service.part_association_add(owner_id=part_c, other_id=part_a, type="compatible")
    kept = association_service.part_association_add(owner_id=part_b, other_id=part_c, type="compatible")

    result = part_service.part_delete(part_id=part_a)
    assert result["status"] == "deleted"
    assert result["associations_removed"] == 2

    db_session.expire_all()
    remaining = db_session.query(PartAssociation).all()
    assert [row.id for row in remaining] == [kept["association"]["id"]]
    assert db_session.get(Part, part_a) is None
    orphans = (
        db_session.query(PartAssociation)
        .filter((PartAssociation.owner_id == part_a) | (PartAssociation.other_id == part_a))
        .count()
    )
    assert orphans == 0


def test_storage_cascade_backs_up_the_hook(part_ids, db_session):
    part_a, part_b, _ = part_ids
    association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")

    # Delete the part row directly, bypassing the service hook
    db_session.query(Part).filter(Part.id == part_b).delete(synchronize_session=False)
    db_session.commit()

    assert db_session.query(PartAssociation).count() == 0


def test_service_calls_are_audited(part_ids, db_session):
    part_a, part_b, _ = part_ids
    context = RequestContext(auth=AuthContext(actor="alice"), request_id="req-1", source="user")
    created = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="other",
        other_type="Secret free text",
        comment="also free text",
        context=context,
    )
    association_id = created["association"]["id"]
    association_service.part_association_update(
        association_id=association_id,
        comment="changed",
        context=context,
    )
    part_service.part_delete(part_id=part_a, context=context)

    db_session.expire_all()
    events = db_session.query(AuditEvent).all()
    event_types = [event.event_type for event in events]
    assert EVENT_ASSOCIATION_CREATED in event_types
    assert EVENT_ASSOCIATION_UPDATED in event_types
    assert EVENT_ASSOCIATION_DELETED in event_types
    assert EVENT_PART_DELETED in event_types

    created_event = next(e for e in events if e.event_type == EVENT_ASSOCIATION_CREATED)
    assert created_event.actor_type == "user"
    assert created_event.actor_id == "alice"
    assert created_event.request_id == "req-1"
    assert created_event.target_ids == [association_id]

    cascade_event = next(e for e in events if e.event_type == EVENT_ASSOCIATION_DELETED)
    assert cascade_event.count_affected == 1
    assert cascade_event.metadata_ == {"cascade_from_part_id": part_a}

    for event in events:
        flattened = repr(event.metadata_)
        assert "free text" not in flattened
        assert "changed" not in flattened


def test_storage_conflict_is_reported_as_duplicate(part_ids, monkeypatch, db_session):
    part_a, part_b, _ = part_ids
    association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")

    # A validator that lost the race sees no duplicate; the unique constraint still does
    monkeypatch.setattr(association_service, "validate_part_association", lambda db, association: [])
    result = association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")

    assert result["status"] == "error"
    assert _message_keys(result) == [MSG_ALREADY_EXISTS]
    assert db_session.query(PartAssociation).count() == 1


def test_update_can_swap_direction(part_ids):
    part_a, part_b, _ = part_ids
    created = association_service.part_association_add(owner_id=part_a, other_id=part_b, type="supersedes")
    association_id = created["association"]["id"]

    swapped = association_service.part_association_update(
        association_id=association_id,
        owner_id=part_b,
        other_id=part_a,
    )

    assert swapped["status"] == "updated"
    assert swapped["changed_fields"] == ["owner", "other"]
    assert swapped["association"]["owner_id"] == part_b
    assert swapped["association"]["other_id"] == part_a


def test_update_type_and_other_into_a_free_triple(part_ids, db_session):
    part_a, part_b, part_c = part_ids
    association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")
    superseding = association_service.part_association_add(owner_id=part_a, other_id=part_b, type="supersedes")

    # (A, B, compatible) is taken, but the final (A, C, compatible) is free
    result = association_service.part_association_update(
        association_id=superseding["association"]["id"],
        type="compatible",
        other_id=part_c,
    )

    assert result["status"] == "updated"
    assert result["association"]["type"] == "compatible"
    assert result["association"]["other_id"] == part_c
    assert db_session.query(PartAssociation).count() == 2


def test_storage_check_failure_is_reported_as_self_association(part_ids, monkeypatch, db_session):
    part_a, _, _ = part_ids
    monkeypatch.setattr(association_service, "validate_part_association", lambda db, association: [])

    result = association_service.part_association_add(owner_id=part_a, other_id=part_a, type="compatible")

    assert result["status"] == "error"
    assert _message_keys(result) == [MSG_SELF_ASSOCIATION]
    assert db_session.query(PartAssociation).count() == 0


def test_part_removed_before_flush_is_reported_as_not_found(part_ids, monkeypatch, server_db):
    part_a, part_b, _ = part_ids

    def _delete_other_part(db, association):
        concurrent = server_db.SessionLocal()
        try:
            concurrent.query(Part).filter(Part.id == part_b).delete(synchronize_session=False)
            concurrent.commit()
        finally:
            concurrent.close()
        return []

    monkeypatch.setattr(association_service, "validate_part_association", _delete_other_part)
    result = association_service.part_association_add(owner_id=part_a, other_id=part_b, type="compatible")

    assert result["status"] == "error"
    assert result["error_type"] == "not_found"


def test_free_text_label_is_not_translated(part_ids):
    part_a, part_b, _ = part_ids
    result = association_service.part_association_add(
        owner_id=part_a,
        other_id=part_b,
        type="other",
        other_type="part_association.type.supersedes",
    )

    assert result["association"]["label_key"] == "part_association.type.supersedes"
    assert result["association"]["label"] == "part_association.type.supersedes"
