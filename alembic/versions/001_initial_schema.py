"""Initial schema — profiles, pets, applications, messages, history, audit log.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    # ── Standalone tables (no FKs) ─────────────────────────────────────

    op.create_table(
        "profiles",
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("shelter_name", sa.String(200)),
        sa.Column("password_hash", sa.String(100), nullable=False),
        _id(),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)

    op.create_table(
        "application_history",
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pet_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("adopter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("shelter_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pet_name", sa.String(100), nullable=False),
        sa.Column("adopter_name", sa.String(200), nullable=False),
        sa.Column("shelter_name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text()),
        _id(),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id"),
    )
    op.create_index("ix_application_history_adopter_id", "application_history", ["adopter_id"])
    op.create_index("ix_application_history_shelter_id", "application_history", ["shelter_id"])

    op.create_table(
        "audit_log",
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True)),
        sa.Column("actor_id", sa.String(100), comment="Profile ID or 'system'"),
        sa.Column("actor_role", sa.String(50), comment="adopter, shelter, system"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text())),
        _id(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_event_type", "audit_log", ["event_type"])
    op.create_index("ix_audit_log_application_id", "audit_log", ["application_id"])

    # ── Dependent tables ───────────────────────────────────────────────

    op.create_table(
        "pets",
        sa.Column("shelter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("species", sa.String(50)),
        sa.Column("status", sa.String(20), nullable=False),
        _id(),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pets_shelter_id", "pets", ["shelter_id"])
    op.create_index("ix_pets_status", "pets", ["status"])

    op.create_table(
        "applications",
        sa.Column("adopter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("shelter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("pet_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("pets.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, comment="Adopter's note to the shelter"),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("rejected_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("deletion_scheduled_at", sa.DateTime(timezone=True)),
        _id(),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'ignored')",
            name="ck_applications_status",
        ),
        sa.CheckConstraint(
            "approved_at IS NULL OR rejected_at IS NULL",
            name="ck_applications_single_decision",
        ),
        sa.CheckConstraint(
            "rejection_reason IS NULL OR rejected_at IS NOT NULL",
            name="ck_applications_reason_requires_rejection",
        ),
        sa.CheckConstraint(
            "(deletion_scheduled_at IS NOT NULL) = (status IN ('approved', 'rejected'))",
            name="ck_applications_deletion_schedule",
        ),
    )
    op.create_index("ix_applications_adopter_id", "applications", ["adopter_id"])
    op.create_index("ix_applications_shelter_id", "applications", ["shelter_id"])
    op.create_index("ix_applications_pet_id", "applications", ["pet_id"])
    op.create_index("ix_applications_deletion_scheduled_at", "applications", ["deletion_scheduled_at"])
    op.create_index(
        "uq_applications_pending_adopter_pet",
        "applications",
        ["adopter_id", "pet_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "messages",
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        _id(),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_application_created", "messages", ["application_id", "created_at"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("applications")
    op.drop_table("pets")
    op.drop_table("audit_log")
    op.drop_table("application_history")
    op.drop_table("profiles")
