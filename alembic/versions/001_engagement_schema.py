"""Engagement schema — users, projects, engagements, discussions, settlements.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FlexJSON = JSONB().with_variant(sa.JSON(), "sqlite")


def upgrade() -> None:
    # -- Reference --
    op.create_table(
        "users",
        sa.Column("user_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("balance", sa.BigInteger, server_default="0", nullable=False),
        sa.Column("total_projects", sa.Integer, server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "projects",
        sa.Column("project_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("client_id", UUID(as_uuid=True),
                  sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("budget", sa.BigInteger, nullable=False),
        sa.Column("status", sa.String(30), server_default="open", nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    # -- Operational --
    op.create_table(
        "engagements",
        sa.Column("engagement_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("project_id", UUID(as_uuid=True),
                  sa.ForeignKey("projects.project_id"), nullable=False),
        sa.Column("freelancer_id", UUID(as_uuid=True),
                  sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("status", sa.String(30), server_default="pending", nullable=False),
        sa.Column("content", FlexJSON, nullable=False),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_engagements_project_id", "engagements", ["project_id"])
    op.create_index("ix_engagements_freelancer_id", "engagements", ["freelancer_id"])
    op.create_index(
        "uq_engagement_active_pair",
        "engagements",
        ["project_id", "freelancer_id"],
        unique=True,
        postgresql_where=sa.text("status != 'rejected'"),
        sqlite_where=sa.text("status != 'rejected'"),
    )

    op.create_table(
        "discussion_entries",
        sa.Column("entry_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("engagement_id", UUID(as_uuid=True),
                  sa.ForeignKey("engagements.engagement_id"), nullable=False),
        sa.Column("sender_id", UUID(as_uuid=True), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("images", FlexJSON, nullable=False),
        sa.Column("files", FlexJSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_discussion_entries_engagement_id", "discussion_entries", ["engagement_id"])

    # -- Ledger --
    op.create_table(
        "settlements",
        sa.Column("settlement_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("engagement_id", UUID(as_uuid=True),
                  sa.ForeignKey("engagements.engagement_id"), nullable=False, unique=True),
        sa.Column("freelancer_id", UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("settlements")
    op.drop_index("ix_discussion_entries_engagement_id", table_name="discussion_entries")
    op.drop_table("discussion_entries")
    op.drop_index("uq_engagement_active_pair", table_name="engagements")
    op.drop_index("ix_engagements_freelancer_id", table_name="engagements")
    op.drop_index("ix_engagements_project_id", table_name="engagements")
    op.drop_table("engagements")
    op.drop_table("projects")
    op.drop_table("users")
