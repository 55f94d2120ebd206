"""SQLAlchemy ORM table models for the engagement service.

Uses FlexJSON (JSONB on Postgres, JSON on SQLite) for attachment lists and
the engagement content log.

Categories:
- REFERENCE: UserRow, ProjectRow (owned by the surrounding CRUD layer; the
  engagement core only reads projects and credits user balances)
- OPERATIONAL: EngagementRow (status updates allowed), DiscussionEntryRow
  (append-only apart from attachment backfill)
- LEDGER: SettlementRow (one row per engagement, PENDING -> PAID)
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from src.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")


# ---------------------------------------------------------------------------
# Reference: users and projects
# ---------------------------------------------------------------------------


class UserRow(Base):
    """User account. Carries the balance credited on settlement."""

    __tablename__ = "users"

    user_id: Mapped[UUID] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    balance: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_projects: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ProjectRow(Base):
    """Project posted by a client. Read-only from the engagement core."""

    __tablename__ = "projects"

    project_id: Mapped[UUID] = mapped_column(primary_key=True)
    client_id: Mapped[UUID] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    budget: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="open", nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Engagements: OPERATIONAL
# ---------------------------------------------------------------------------


class EngagementRow(Base):
    """One freelancer's application to, and work on, one project.

    The partial unique index allows at most one non-rejected row per
    (project_id, freelancer_id).
    """

    __tablename__ = "engagements"
    __table_args__ = (
        Index(
            "uq_engagement_active_pair",
            "project_id",
            "freelancer_id",
            unique=True,
            sqlite_where=text("status != 'rejected'"),
            postgresql_where=text("status != 'rejected'"),
        ),
    )

    engagement_id: Mapped[UUID] = mapped_column(primary_key=True)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.project_id"), nullable=False, index=True
    )
    freelancer_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.user_id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(30), default="pending", nullable=False)
    content = mapped_column(FlexJSON, nullable=False, default=list)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DiscussionEntryRow(Base):
    """One message in the conversation attached to an engagement."""

    __tablename__ = "discussion_entries"

    entry_id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(
        ForeignKey("engagements.engagement_id"), nullable=False, index=True
    )
    sender_id: Mapped[UUID] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    images = mapped_column(FlexJSON, nullable=False, default=list)
    files = mapped_column(FlexJSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Settlement ledger
# ---------------------------------------------------------------------------


class SettlementRow(Base):
    """Settlement marker. UNIQUE engagement_id makes crediting exactly-once."""

    __tablename__ = "settlements"

    settlement_id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(
        ForeignKey("engagements.engagement_id"), nullable=False, unique=True
    )
    freelancer_id: Mapped[UUID] = mapped_column(nullable=False)
    project_id: Mapped[UUID] = mapped_column(nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
