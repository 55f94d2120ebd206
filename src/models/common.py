"""Shared types, enums, and base models used across engagement domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]
Amount = Annotated[int, Field(ge=0, description="Whole currency units.")]


# --- Shared enums ---


class UserRole(StrEnum):
    """Marketplace roles."""

    CLIENT = "client"
    FREELANCER = "freelancer"


class EngagementStatus(StrEnum):
    """Engagement lifecycle states.

    Legacy spellings from the mobile client ("in progress", "in-progress")
    are accepted on input and normalised to IN_PROGRESS.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @classmethod
    def _missing_(cls, value: object) -> "EngagementStatus | None":
        if isinstance(value, str):
            normalised = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalised:
                    return member
        return None


class SettlementStatus(StrEnum):
    """Settlement ledger row status."""

    PENDING = "PENDING"
    PAID = "PAID"


# --- Base model ---


class WorklyticBase(BaseModel):
    """Base model with common configuration for all domain models."""

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }
