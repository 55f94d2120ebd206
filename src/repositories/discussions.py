"""Discussion entry repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import DiscussionEntryRow
from src.models.common import utc_now


class DiscussionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, entry_id: UUID, engagement_id: UUID,
                     sender_id: UUID, description: str,
                     images: list | None = None,
                     files: list | None = None) -> DiscussionEntryRow:
        now = utc_now()
        row = DiscussionEntryRow(
            entry_id=entry_id, engagement_id=engagement_id,
            sender_id=sender_id, description=description,
            images=images or [], files=files or [],
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, entry_id: UUID) -> DiscussionEntryRow | None:
        return await self._session.get(DiscussionEntryRow, entry_id)

    async def list_for_engagement(self, engagement_id: UUID) -> list[DiscussionEntryRow]:
        result = await self._session.execute(
            select(DiscussionEntryRow)
            .where(DiscussionEntryRow.engagement_id == engagement_id)
            .order_by(DiscussionEntryRow.created_at, DiscussionEntryRow.entry_id)
        )
        return list(result.scalars().all())

    async def list_for_engagements(self, engagement_ids: list[UUID]) -> list[DiscussionEntryRow]:
        """Grouped fetch for many engagements, in display order."""
        if not engagement_ids:
            return []
        result = await self._session.execute(
            select(DiscussionEntryRow)
            .where(DiscussionEntryRow.engagement_id.in_(engagement_ids))
            .order_by(DiscussionEntryRow.created_at, DiscussionEntryRow.entry_id)
        )
        return list(result.scalars().all())

    async def update_attachments(self, entry_id: UUID, *,
                                 images: list | None = None,
                                 files: list | None = None) -> DiscussionEntryRow | None:
        row = await self.get(entry_id)
        if row is not None:
            if images is not None:
                row.images = list(images)
            if files is not None:
                row.files = list(files)
            row.updated_at = utc_now()
            await self._session.flush()
        return row
