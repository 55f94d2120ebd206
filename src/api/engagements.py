"""FastAPI engagement endpoints.

POST   /v1/engagements                     — freelancer applies to a project
GET    /v1/engagements                     — list with discussions attached
GET    /v1/engagements/{id}                — detail with discussions attached
PATCH  /v1/engagements/{id}/status         — accept / complete / reject
DELETE /v1/engagements/{id}                — reject
POST   /v1/engagements/{id}/content        — append a deliverable entry

Completing an engagement settles it; the balance-credited notice is sent
as a background task after the request commits.
"""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import (
    get_discussion_aggregator,
    get_lifecycle_controller,
    get_settlement_orchestrator,
    get_upload_service,
)
from src.engagements.discussions import DiscussionAggregator
from src.engagements.lifecycle import LifecycleController, parse_status
from src.engagements.settlement import SettlementOrchestrator
from src.models.engagement import ContentItem, Engagement, EngagementWithDiscussions
from src.models.settlement import SettlementResult
from src.storage.uploads import UploadService

router = APIRouter(prefix="/v1/engagements", tags=["engagements"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class ContentPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    images: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)


class ApplyRequest(BaseModel):
    freelancer_id: UUID
    project_id: UUID
    content: list[ContentPayload] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1)


class TransitionResponse(BaseModel):
    engagement: Engagement
    settlement: SettlementResult | None = None


class EngagementListResponse(BaseModel):
    items: list[EngagementWithDiscussions]
    total: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _content_items(
    payloads: list[ContentPayload], uploads: UploadService, folder: str,
) -> list[ContentItem]:
    """Resolve inline attachments to hosted references as one batch.

    Callers validate the request first; a rejected request uploads nothing.
    """
    groups = [refs for p in payloads for refs in (p.images, p.files)]
    resolved = iter(uploads.resolve_groups(groups, folder=folder))
    return [
        ContentItem(
            title=p.title,
            description=p.description,
            images=next(resolved),
            files=next(resolved),
        )
        for p in payloads
    ]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=Engagement)
async def apply_to_project(
    body: ApplyRequest,
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
    uploads: UploadService = Depends(get_upload_service),
) -> Engagement:
    """Create a pending engagement. 409 if the freelancer already applied."""
    await lifecycle.check_application(body.freelancer_id, body.project_id)
    content = _content_items(body.content, uploads, f"engagements/{body.project_id}")
    return await lifecycle.apply_to_project(body.freelancer_id, body.project_id, content)


@router.get("", response_model=EngagementListResponse)
async def list_engagements(
    project_id: UUID | None = None,
    freelancer_id: UUID | None = None,
    status: str | None = None,
    aggregator: DiscussionAggregator = Depends(get_discussion_aggregator),
) -> EngagementListResponse:
    """List active engagements joined with project, freelancer and discussions."""
    items = await aggregator.list_engagements(
        project_id=project_id,
        freelancer_id=freelancer_id,
        status=parse_status(status).value if status else None,
    )
    return EngagementListResponse(items=items, total=len(items))


@router.get("/{engagement_id}", response_model=EngagementWithDiscussions)
async def get_engagement(
    engagement_id: UUID,
    aggregator: DiscussionAggregator = Depends(get_discussion_aggregator),
) -> EngagementWithDiscussions:
    return await aggregator.get_engagement(engagement_id)


@router.patch("/{engagement_id}/status", response_model=TransitionResponse)
async def transition_status(
    engagement_id: UUID,
    body: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
    settlement: SettlementOrchestrator = Depends(get_settlement_orchestrator),
) -> TransitionResponse:
    """Apply a status transition. Completing triggers settlement."""
    result = await lifecycle.transition_status(engagement_id, body.status)
    if result.settlement is not None:
        background_tasks.add_task(settlement.flush_notifications)
    return TransitionResponse(engagement=result.engagement, settlement=result.settlement)


@router.delete("/{engagement_id}", response_model=Engagement)
async def reject_engagement(
    engagement_id: UUID,
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
) -> Engagement:
    """Reject an application. Subsequent reads of it return 404."""
    return await lifecycle.reject(engagement_id)


@router.post("/{engagement_id}/content", status_code=201, response_model=Engagement)
async def append_content(
    engagement_id: UUID,
    body: ContentPayload,
    lifecycle: LifecycleController = Depends(get_lifecycle_controller),
    uploads: UploadService = Depends(get_upload_service),
) -> Engagement:
    await lifecycle.check_content_allowed(engagement_id)
    [item] = _content_items([body], uploads, f"engagements/{engagement_id}")
    return await lifecycle.append_content(engagement_id, item)
