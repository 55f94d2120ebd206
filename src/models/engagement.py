"""Engagement models — a freelancer's application to one project.

Status is a closed enum; VALID_ENGAGEMENT_TRANSITIONS is the transition
table the lifecycle controller enforces.
"""

from uuid import UUID

from pydantic import Field

from src.models.common import (
    EngagementStatus,
    UTCTimestamp,
    UUIDv7,
    WorklyticBase,
    new_uuid7,
    utc_now,
)
from src.models.discussion import DiscussionEntry
from src.models.project import FreelancerSummary, ProjectSummary


# ---------------------------------------------------------------------------
# Valid engagement status transitions (state machine)
# ---------------------------------------------------------------------------

VALID_ENGAGEMENT_TRANSITIONS: dict[EngagementStatus, frozenset[EngagementStatus]] = {
    EngagementStatus.PENDING: frozenset({
        EngagementStatus.IN_PROGRESS,
        EngagementStatus.REJECTED,
    }),
    EngagementStatus.IN_PROGRESS: frozenset({
        EngagementStatus.COMPLETED,
        EngagementStatus.REJECTED,
    }),
    EngagementStatus.COMPLETED: frozenset(),
    EngagementStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES: frozenset[EngagementStatus] = frozenset(
    status for status, targets in VALID_ENGAGEMENT_TRANSITIONS.items() if not targets
)


def is_valid_transition(current: EngagementStatus, target: EngagementStatus) -> bool:
    """Return True if the transition table allows current -> target."""
    return target in VALID_ENGAGEMENT_TRANSITIONS.get(current, frozenset())


# ---------------------------------------------------------------------------
# Content log
# ---------------------------------------------------------------------------


class ContentItem(WorklyticBase):
    """One freelancer-submitted deliverable entry.

    images/files hold already-hosted references, never raw bytes.
    """

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=10000)
    images: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    submitted_at: UTCTimestamp = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------


class Engagement(WorklyticBase):
    """Freelancer claim on a project. At most one active per (project, freelancer)."""

    engagement_id: UUIDv7 = Field(default_factory=new_uuid7)
    project_id: UUID
    freelancer_id: UUID
    status: EngagementStatus = Field(default=EngagementStatus.PENDING)
    content: list[ContentItem] = Field(default_factory=list)
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class EngagementWithDiscussions(Engagement):
    """Listing/detail payload: engagement joined with project, freelancer and thread."""

    project: ProjectSummary | None = None
    freelancer: FreelancerSummary | None = None
    discussions: list[DiscussionEntry] = Field(default_factory=list)
