"""Engagement repository.

Rejected rows are retained for audit; "active" queries exclude them.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import EngagementRow
from src.models.common import EngagementStatus, utc_now

_REJECTED = EngagementStatus.REJECTED.value


class EngagementRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, engagement_id: UUID, project_id: UUID,
                     freelancer_id: UUID, content: list | None = None,
                     status: str = EngagementStatus.PENDING.value) -> EngagementRow:
        now = utc_now()
        row = EngagementRow(
            engagement_id=engagement_id, project_id=project_id,
            freelancer_id=freelancer_id, status=status,
            content=content or [], created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, engagement_id: UUID) -> EngagementRow | None:
        return await self._session.get(EngagementRow, engagement_id)

    async def reload(self, engagement_id: UUID) -> EngagementRow | None:
        """Re-read the row, overwriting any stale in-session copy."""
        return await self._session.get(EngagementRow, engagement_id, populate_existing=True)

    async def get_active(self, engagement_id: UUID) -> EngagementRow | None:
        row = await self.get(engagement_id)
        if row is None or row.status == _REJECTED:
            return None
        return row

    async def list_all(self) -> list[EngagementRow]:
        result = await self._session.execute(select(EngagementRow))
        return list(result.scalars().all())

    async def list_active(self, *, project_id: UUID | None = None,
                          freelancer_id: UUID | None = None,
                          status: str | None = None) -> list[EngagementRow]:
        stmt = select(EngagementRow).where(EngagementRow.status != _REJECTED)
        if project_id is not None:
            stmt = stmt.where(EngagementRow.project_id == project_id)
        if freelancer_id is not None:
            stmt = stmt.where(EngagementRow.freelancer_id == freelancer_id)
        if status is not None:
            stmt = stmt.where(EngagementRow.status == status)
        stmt = stmt.order_by(EngagementRow.created_at, EngagementRow.engagement_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_pair(self, freelancer_id: UUID, project_id: UUID, *,
                            include_rejected: bool = False) -> list[EngagementRow]:
        stmt = select(EngagementRow).where(
            EngagementRow.freelancer_id == freelancer_id,
            EngagementRow.project_id == project_id,
        )
        if not include_rejected:
            stmt = stmt.where(EngagementRow.status != _REJECTED)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_status(self, status: str) -> list[EngagementRow]:
        result = await self._session.execute(
            select(EngagementRow).where(EngagementRow.status == status)
        )
        return list(result.scalars().all())

    async def compare_and_set_status(self, engagement_id: UUID, *,
                                     expected: str, new: str) -> bool:
        """Move status expected -> new atomically. False if the row was not in `expected`.

        In-session copies are not synchronised; callers reload() afterwards.
        """
        values: dict = {"status": new, "updated_at": utc_now()}
        if new == _REJECTED:
            values["rejected_at"] = values["updated_at"]
        result = await self._session.execute(
            update(EngagementRow)
            .where(
                EngagementRow.engagement_id == engagement_id,
                EngagementRow.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def append_content(self, engagement_id: UUID, item: dict) -> EngagementRow | None:
        row = await self.get(engagement_id)
        if row is not None:
            # Reassign so the JSON column is flagged dirty.
            row.content = [*(row.content or []), item]
            row.updated_at = utc_now()
            await self._session.flush()
        return row
