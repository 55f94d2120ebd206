"""Engagement lifecycle controller.

pending -> in_progress -> completed, with rejected reachable from pending
and in_progress. Transitions are validated against
VALID_ENGAGEMENT_TRANSITIONS; anything else raises IllegalTransition.
Completion is delegated to the settlement orchestrator. Rejection is a soft
delete: the row is kept for audit, hidden from reads and no longer counted
by the uniqueness guard.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import EngagementRow
from src.engagements.errors import (
    DuplicateApplication,
    IllegalTransition,
    NotFound,
    ValidationFailed,
)
from src.engagements.settlement import SettlementOrchestrator
from src.engagements.uniqueness import ensure_application_allowed, is_application_allowed
from src.models.common import EngagementStatus, UserRole, new_uuid7
from src.models.engagement import ContentItem, Engagement, is_valid_transition
from src.models.settlement import SettlementResult
from src.repositories.accounts import AccountRepository
from src.repositories.engagements import EngagementRepository
from src.repositories.projects import ProjectRepository

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """Engagement after a status change, plus the settlement when one ran."""

    engagement: Engagement
    settlement: SettlementResult | None = None


def parse_status(value: str | EngagementStatus) -> EngagementStatus:
    """Parse a caller-supplied status, accepting legacy spellings."""
    try:
        return EngagementStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in EngagementStatus)
        raise ValidationFailed(
            f"Unknown engagement status {value!r}. Expected one of: {allowed}.",
            status=str(value),
        ) from None


def engagement_from_row(row: EngagementRow) -> Engagement:
    return Engagement(
        engagement_id=row.engagement_id,
        project_id=row.project_id,
        freelancer_id=row.freelancer_id,
        status=EngagementStatus(row.status),
        content=[ContentItem.model_validate(item) for item in (row.content or [])],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class LifecycleController:
    """Create engagements and move them through their states."""

    def __init__(
        self,
        session: AsyncSession,
        settlement: SettlementOrchestrator,
        *,
        allow_reapply_after_rejection: bool = True,
    ) -> None:
        self._session = session
        self._engagements = EngagementRepository(session)
        self._projects = ProjectRepository(session)
        self._accounts = AccountRepository(session)
        self._settlement = settlement
        self._allow_reapply = allow_reapply_after_rejection

    # ----- Creation -----

    async def check_application(self, freelancer_id: UUID, project_id: UUID) -> None:
        """Raise the error apply_to_project() would raise, without writing anything."""
        project = await self._projects.get_by_id(project_id)
        if project is None:
            raise NotFound("Project", project_id)
        freelancer = await self._accounts.get(freelancer_id)
        if freelancer is None:
            raise NotFound("User", freelancer_id)
        if freelancer.role != UserRole.FREELANCER:
            raise ValidationFailed("Only freelancers can apply to projects.",
                                   freelancer_id=str(freelancer_id))
        if project.client_id == freelancer_id:
            raise ValidationFailed("A client cannot apply to their own project.")

        await ensure_application_allowed(
            self._engagements, freelancer_id, project_id,
            include_rejected=not self._allow_reapply,
        )

    async def apply_to_project(
        self,
        freelancer_id: UUID,
        project_id: UUID,
        content: list[ContentItem] | None = None,
    ) -> Engagement:
        await self.check_application(freelancer_id, project_id)

        try:
            async with self._session.begin_nested():
                row = await self._engagements.create(
                    engagement_id=new_uuid7(),
                    project_id=project_id,
                    freelancer_id=freelancer_id,
                    content=[item.model_dump(mode="json") for item in content or []],
                )
        except IntegrityError as exc:
            # A concurrent apply won the partial unique index.
            existing = await self._engagements.list_for_pair(freelancer_id, project_id)
            if not is_application_allowed(existing, freelancer_id, project_id):
                logger.info("Duplicate application caught by storage constraint: "
                            "freelancer=%s project=%s", freelancer_id, project_id)
                raise DuplicateApplication(freelancer_id, project_id) from exc
            raise ValidationFailed("Engagement references are invalid.") from exc

        logger.info("Engagement %s created: freelancer=%s project=%s",
                    row.engagement_id, freelancer_id, project_id)
        return engagement_from_row(row)

    # ----- Reads -----

    async def get_row(self, engagement_id: UUID) -> EngagementRow:
        row = await self._engagements.get_active(engagement_id)
        if row is None:
            raise NotFound("Engagement", engagement_id)
        return row

    async def get(self, engagement_id: UUID) -> Engagement:
        return engagement_from_row(await self.get_row(engagement_id))

    # ----- Transitions -----

    async def transition_status(
        self,
        engagement_id: UUID,
        target: str | EngagementStatus,
    ) -> TransitionResult:
        target_status = parse_status(target)
        row = await self.get_row(engagement_id)
        current = EngagementStatus(row.status)

        if target_status == EngagementStatus.COMPLETED and current == EngagementStatus.COMPLETED:
            settlement = await self._settlement.settle(engagement_id)
            return TransitionResult(await self.get(engagement_id), settlement)

        if not is_valid_transition(current, target_status):
            raise IllegalTransition(engagement_id, current.value, target_status.value)

        if target_status == EngagementStatus.REJECTED:
            return TransitionResult(await self.reject(engagement_id))

        if target_status == EngagementStatus.COMPLETED:
            settlement = await self._settlement.settle(engagement_id)
            return TransitionResult(await self.get(engagement_id), settlement)

        moved = await self._engagements.compare_and_set_status(
            engagement_id, expected=current.value, new=target_status.value,
        )
        row = await self._engagements.reload(engagement_id)
        if not moved:
            raise IllegalTransition(engagement_id, row.status, target_status.value)

        logger.info("Engagement %s: %s -> %s", engagement_id, current, target_status)
        return TransitionResult(engagement_from_row(row))

    async def reject(self, engagement_id: UUID) -> Engagement:
        """Soft-reject. The engagement disappears from reads and frees its slot."""
        row = await self.get_row(engagement_id)
        current = EngagementStatus(row.status)
        if not is_valid_transition(current, EngagementStatus.REJECTED):
            raise IllegalTransition(engagement_id, current.value, EngagementStatus.REJECTED.value)

        moved = await self._engagements.compare_and_set_status(
            engagement_id, expected=current.value, new=EngagementStatus.REJECTED.value,
        )
        row = await self._engagements.reload(engagement_id)
        if not moved:
            raise IllegalTransition(engagement_id, row.status, EngagementStatus.REJECTED.value)

        logger.info("Engagement %s rejected (was %s)", engagement_id, current)
        return engagement_from_row(row)

    # ----- Content log -----

    async def check_content_allowed(self, engagement_id: UUID) -> EngagementRow:
        row = await self.get_row(engagement_id)
        if EngagementStatus(row.status) == EngagementStatus.COMPLETED:
            raise ValidationFailed("Cannot add content to a completed engagement.",
                                   engagement_id=str(engagement_id))
        return row

    async def append_content(self, engagement_id: UUID, item: ContentItem) -> Engagement:
        await self.check_content_allowed(engagement_id)
        row = await self._engagements.append_content(
            engagement_id, item.model_dump(mode="json"),
        )
        return engagement_from_row(row)
