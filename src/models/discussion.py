"""Discussion thread models."""

from uuid import UUID

from pydantic import Field

from src.models.common import UTCTimestamp, UUIDv7, WorklyticBase, new_uuid7, utc_now


class DiscussionEntry(WorklyticBase):
    """One message or progress update in an engagement's conversation.

    Display order is insertion order: created_at, then the time-sortable id.
    """

    entry_id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    sender_id: UUID
    description: str = Field(..., max_length=10000)
    images: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)
