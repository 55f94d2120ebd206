"""FastAPI discussion endpoints.

GET   /v1/engagements/{id}/discussions   — thread in display order
POST  /v1/engagements/{id}/discussions   — post an entry
PATCH /v1/discussions/{id}/attachments   — attachment backfill
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_discussion_aggregator, get_upload_service
from src.engagements.discussions import DiscussionAggregator
from src.models.discussion import DiscussionEntry
from src.storage.uploads import UploadService

router = APIRouter(prefix="/v1", tags=["discussions"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class PostDiscussionRequest(BaseModel):
    sender_id: UUID
    description: str = Field(default="", max_length=10000)
    images: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)


class AttachmentsRequest(BaseModel):
    images: list[str] | None = None
    files: list[str] | None = None


class DiscussionListResponse(BaseModel):
    items: list[DiscussionEntry]
    total: int


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/engagements/{engagement_id}/discussions", response_model=DiscussionListResponse)
async def list_discussions(
    engagement_id: UUID,
    aggregator: DiscussionAggregator = Depends(get_discussion_aggregator),
) -> DiscussionListResponse:
    items = await aggregator.list_for_engagement(engagement_id)
    return DiscussionListResponse(items=items, total=len(items))


@router.post(
    "/engagements/{engagement_id}/discussions",
    status_code=201,
    response_model=DiscussionEntry,
)
async def post_discussion(
    engagement_id: UUID,
    body: PostDiscussionRequest,
    aggregator: DiscussionAggregator = Depends(get_discussion_aggregator),
    uploads: UploadService = Depends(get_upload_service),
) -> DiscussionEntry:
    """Post a message. Inline (data: URI) attachments are uploaded after validation."""
    await aggregator.check_post(
        engagement_id, body.sender_id, body.description,
        has_attachments=bool(body.images or body.files),
    )
    images, files = uploads.resolve_groups(
        [body.images, body.files], folder=f"discussions/{engagement_id}",
    )
    return await aggregator.post(engagement_id, body.sender_id, body.description, images, files)


@router.patch("/discussions/{entry_id}/attachments", response_model=DiscussionEntry)
async def backfill_attachments(
    entry_id: UUID,
    body: AttachmentsRequest,
    aggregator: DiscussionAggregator = Depends(get_discussion_aggregator),
    uploads: UploadService = Depends(get_upload_service),
) -> DiscussionEntry:
    await aggregator.require_entry(entry_id)
    images, files = uploads.resolve_groups(
        [body.images or [], body.files or []], folder=f"discussions/entries/{entry_id}",
    )
    return await aggregator.backfill_attachments(
        entry_id,
        images=images if body.images is not None else None,
        files=files if body.files is not None else None,
    )
