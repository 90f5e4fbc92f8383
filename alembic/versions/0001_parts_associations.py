"""Create parts, part associations, and audit events.

Revision ID: 0001_parts_associations
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_parts_associations"
down_revision = None
branch_labels = None
depends_on = None


ASSOCIATION_TYPES = ("OTHER", "COMPATIBLE", "SUPERSEDES")


def upgrade() -> None:
    bind = op.get_bind()
    is_postgres = bind.dialect.name == "postgresql"

    if is_postgres:
        uuid_type = postgresql.UUID(as_uuid=True)
        json_type = postgresql.JSONB()
    else:
        uuid_type = sa.String(36)
        json_type = sa.JSON()

    # =============================================================================
    # Parts
    # =============================================================================
    op.create_table(
        "parts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_parts_name", "parts", ["name"])

    # =============================================================================
    # Part Associations
    # =============================================================================
    op.create_table(
        "part_associations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "type",
            sa.Enum(*ASSOCIATION_TYPES, name="association_type"),
            nullable=False,
        ),
        sa.Column("other_type", sa.String(255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("other_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["owner_id"],
            ["parts.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["other_id"],
            ["parts.id"],
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("owner_id != other_id", name="ck_part_associations_distinct"),
        sa.UniqueConstraint(
            "other_id",
            "owner_id",
            "type",
            name="uq_part_associations_other_owner_type",
        ),
    )
    op.create_index("ix_part_associations_owner", "part_associations", ["owner_id"])
    op.create_index("ix_part_associations_other", "part_associations", ["other_id"])

    # =============================================================================
    # Audit Events
    # =============================================================================
    op.create_table(
        "audit_events",
        sa.Column("event_id", uuid_type, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("event_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("actor_type", sa.String(50), nullable=False),
        sa.Column("actor_id", sa.String(255), nullable=True),
        sa.Column("target_type", sa.String(50), nullable=False),
        sa.Column("target_ids", json_type, nullable=False),
        sa.Column("count_affected", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("request_id", sa.String(255), nullable=True),
        sa.Column("metadata", json_type, nullable=True),
    )
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_event_type", table_name="audit_events")
    op.drop_index("ix_audit_events_created_at", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_part_associations_other", table_name="part_associations")
    op.drop_index("ix_part_associations_owner", table_name="part_associations")
    op.drop_table("part_associations")
    sa.Enum(name="association_type").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_parts_name", table_name="parts")
    op.drop_table("parts")
