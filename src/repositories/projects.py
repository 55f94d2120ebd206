"""Project store adapter. Read-only from the engagement core."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import ProjectRow
from src.models.common import utc_now


class ProjectRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, project_id: UUID, client_id: UUID, title: str,
                     budget: int, description: str = "",
                     deadline: datetime | None = None) -> ProjectRow:
        now = utc_now()
        row = ProjectRow(
            project_id=project_id, client_id=client_id, title=title,
            budget=budget, description=description, deadline=deadline,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_by_id(self, project_id: UUID) -> ProjectRow | None:
        return await self._session.get(ProjectRow, project_id)

    async def get_many(self, project_ids: list[UUID]) -> dict[UUID, ProjectRow]:
        if not project_ids:
            return {}
        result = await self._session.execute(
            select(ProjectRow).where(ProjectRow.project_id.in_(project_ids))
        )
        return {row.project_id: row for row in result.scalars().all()}
