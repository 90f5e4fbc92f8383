"""
PartLink Database Models
Parts, part associations, and the audit trail
"""

from datetime import datetime
from enum import Enum as PyEnum
import uuid
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint,
    Index, UniqueConstraint, Enum, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship, declarative_base

import core.config as config

DB_BACKEND = config.DB_BACKEND

JSON_TYPE = JSONB if DB_BACKEND == "postgres" else JSON
UUID_TYPE = UUID(as_uuid=True) if DB_BACKEND == "postgres" else String(36)


def _uuid_default() -> str | uuid.UUID:
    value = uuid.uuid4()
    return value if DB_BACKEND == "postgres" else str(value)

Base = declarative_base()

# =============================================================================
# Enums
# =============================================================================

class AssociationType(str, PyEnum):
    """How two associated parts relate to each other."""

    OTHER = "other"  # the free-text other_type describes the relation
    COMPATIBLE = "compatible"
    SUPERSEDES = "supersedes"


ASSOCIATION_TYPE_LABEL_KEYS: dict[AssociationType, str] = {
    AssociationType.OTHER: "part_association.type.other",
    AssociationType.COMPATIBLE: "part_association.type.compatible",
    AssociationType.SUPERSEDES: "part_association.type.supersedes",
}


# =============================================================================
# Parts
# =============================================================================

class Part(Base):
    __tablename__ = "parts"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_parts_name", "name"),
    )


# =============================================================================
# Part Associations
# =============================================================================

class PartAssociation(Base):
    """
    A semantic connection between two parts.

    The owner is the part the association is about (e.g. the replacement),
    the other is the part it points at (e.g. the part being replaced).
    Associations are not validated on flush; services run
    core.validators.validate_part_association before committing.
    """
    __tablename__ = "part_associations"

    id = Column(Integer, primary_key=True)
    type = Column(
        Enum(AssociationType, name="association_type"),
        nullable=False,
        default=AssociationType.OTHER,
    )
    other_type = Column(String(255))  # only meaningful when type is OTHER
    comment = Column(Text)
    owner_id = Column(Integer, ForeignKey("parts.id", ondelete="CASCADE"), nullable=False)
    other_id = Column(Integer, ForeignKey("parts.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Parts carry no back-references; lookups go through the owner/other indexes
    owner = relationship("Part", foreign_keys=[owner_id])
    other = relationship("Part", foreign_keys=[other_id])

    __table_args__ = (
        CheckConstraint("owner_id != other_id", name="ck_part_associations_distinct"),
        UniqueConstraint(
            "other_id",
            "owner_id",
            "type",
            name="uq_part_associations_other_owner_type",
        ),
        Index("ix_part_associations_owner", "owner_id"),
        Index("ix_part_associations_other", "other_id"),
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("type", AssociationType.OTHER)
        super().__init__(**kwargs)

    @property
    def type_label_key(self) -> str:
        return ASSOCIATION_TYPE_LABEL_KEYS[self.type]

    def resolve_label(self) -> str:
        """
        Return the label for the type of this association.

        For OTHER the user supplied other_type is the label; a missing value
        falls back to the configured unknown label without touching the row.
        """
        if self.type == AssociationType.OTHER:
            if self.other_type is not None:
                return self.other_type
            return config.UNKNOWN_LABEL
        return ASSOCIATION_TYPE_LABEL_KEYS[self.type]


# =============================================================================
# Audit Events
# =============================================================================

class AuditEvent(Base):
    __tablename__ = "audit_events"

    event_id = Column(UUID_TYPE, primary_key=True, default=_uuid_default)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    event_type = Column(String(100), nullable=False)
    event_version = Column(Integer, default=1, nullable=False)
    actor_type = Column(String(50), nullable=False)
    actor_id = Column(String(255))
    target_type = Column(String(50), nullable=False)
    target_ids = Column(JSON_TYPE, nullable=False)
    count_affected = Column(Integer)
    reason = Column(Text)
    request_id = Column(String(255))
    metadata_ = Column("metadata", JSON_TYPE)

    __table_args__ = (
        Index("ix_audit_events_created_at", "created_at"),
        Index("ix_audit_events_event_type", "event_type"),
    )


__all__ = [
    "Base",
    "AssociationType",
    "ASSOCIATION_TYPE_LABEL_KEYS",
    "Part",
    "PartAssociation",
    "AuditEvent",
]
