"""Discussion aggregator — engagement threads and listing joins.

attach_to_all() is a batch join: it collects the distinct engagement,
project and freelancer ids up front and issues one grouped query for each,
so listing M engagements costs three queries instead of 2M round trips.
"""

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import DiscussionEntryRow, EngagementRow
from src.engagements.errors import NotFound, ValidationFailed
from src.engagements.lifecycle import engagement_from_row
from src.models.common import new_uuid7
from src.models.discussion import DiscussionEntry
from src.models.engagement import EngagementWithDiscussions
from src.models.project import FreelancerSummary, ProjectSummary
from src.repositories.accounts import AccountRepository
from src.repositories.discussions import DiscussionRepository
from src.repositories.engagements import EngagementRepository
from src.repositories.projects import ProjectRepository

logger = logging.getLogger(__name__)


def _entry_from_row(row: DiscussionEntryRow) -> DiscussionEntry:
    return DiscussionEntry(
        entry_id=row.entry_id,
        engagement_id=row.engagement_id,
        sender_id=row.sender_id,
        description=row.description,
        images=list(row.images or []),
        files=list(row.files or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class DiscussionAggregator:
    def __init__(self, session: AsyncSession) -> None:
        self._engagements = EngagementRepository(session)
        self._discussions = DiscussionRepository(session)
        self._projects = ProjectRepository(session)
        self._accounts = AccountRepository(session)

    async def require_engagement(self, engagement_id: UUID) -> EngagementRow:
        row = await self._engagements.get_active(engagement_id)
        if row is None:
            raise NotFound("Engagement", engagement_id)
        return row

    async def require_entry(self, entry_id: UUID) -> DiscussionEntryRow:
        """The entry, provided its engagement is still active."""
        row = await self._discussions.get(entry_id)
        if row is None:
            raise NotFound("Discussion entry", entry_id)
        await self.require_engagement(row.engagement_id)
        return row

    # ----- Thread -----

    async def check_post(
        self,
        engagement_id: UUID,
        sender_id: UUID,
        text: str,
        *,
        has_attachments: bool,
    ) -> EngagementRow:
        """Raise the error post() would raise, without writing anything."""
        engagement = await self.require_engagement(engagement_id)
        if not text.strip() and not has_attachments:
            raise ValidationFailed("A discussion entry needs text or an attachment.")

        if sender_id != engagement.freelancer_id:
            project = await self._projects.get_by_id(engagement.project_id)
            if project is None or sender_id != project.client_id:
                raise ValidationFailed(
                    "Only the engagement's freelancer or the project's client can post.",
                    sender_id=str(sender_id),
                )
        return engagement

    async def post(
        self,
        engagement_id: UUID,
        sender_id: UUID,
        text: str,
        image_refs: list[str] | None = None,
        file_refs: list[str] | None = None,
    ) -> DiscussionEntry:
        """Append an entry. Attachments must already be hosted references."""
        images = list(image_refs or [])
        files = list(file_refs or [])
        await self.check_post(engagement_id, sender_id, text,
                              has_attachments=bool(images or files))

        row = await self._discussions.create(
            entry_id=new_uuid7(), engagement_id=engagement_id,
            sender_id=sender_id, description=text,
            images=images, files=files,
        )
        logger.info("Discussion entry %s posted on engagement %s", row.entry_id, engagement_id)
        return _entry_from_row(row)

    async def list_for_engagement(self, engagement_id: UUID) -> list[DiscussionEntry]:
        await self.require_engagement(engagement_id)
        rows = await self._discussions.list_for_engagement(engagement_id)
        return [_entry_from_row(r) for r in rows]

    async def backfill_attachments(
        self,
        entry_id: UUID,
        *,
        images: list[str] | None = None,
        files: list[str] | None = None,
    ) -> DiscussionEntry:
        """The only update path for an entry: replace its attachment references."""
        await self.require_entry(entry_id)
        row = await self._discussions.update_attachments(entry_id, images=images, files=files)
        return _entry_from_row(row)

    # ----- Joins -----

    async def attach_to_engagement(self, engagement: EngagementRow) -> EngagementWithDiscussions:
        [joined] = await self.attach_to_all([engagement])
        return joined

    async def attach_to_all(
        self, engagements: list[EngagementRow],
    ) -> list[EngagementWithDiscussions]:
        if not engagements:
            return []

        engagement_ids = [e.engagement_id for e in engagements]
        project_ids = list({e.project_id for e in engagements})
        freelancer_ids = list({e.freelancer_id for e in engagements})

        entries_by_engagement: dict[UUID, list[DiscussionEntry]] = defaultdict(list)
        for row in await self._discussions.list_for_engagements(engagement_ids):
            entries_by_engagement[row.engagement_id].append(_entry_from_row(row))
        projects = await self._projects.get_many(project_ids)
        accounts = await self._accounts.get_many(freelancer_ids)

        joined: list[EngagementWithDiscussions] = []
        for e in engagements:
            project = projects.get(e.project_id)
            account = accounts.get(e.freelancer_id)
            joined.append(EngagementWithDiscussions(
                **engagement_from_row(e).model_dump(),
                project=ProjectSummary.model_validate(project) if project else None,
                freelancer=FreelancerSummary.model_validate(account) if account else None,
                discussions=entries_by_engagement.get(e.engagement_id, []),
            ))
        return joined

    async def list_engagements(
        self,
        *,
        project_id: UUID | None = None,
        freelancer_id: UUID | None = None,
        status: str | None = None,
    ) -> list[EngagementWithDiscussions]:
        rows = await self._engagements.list_active(
            project_id=project_id, freelancer_id=freelancer_id, status=status,
        )
        return await self.attach_to_all(rows)

    async def get_engagement(self, engagement_id: UUID) -> EngagementWithDiscussions:
        return await self.attach_to_engagement(await self.require_engagement(engagement_id))
