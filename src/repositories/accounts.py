"""User account repository — the Account Balance Ledger.

The ledger's only engagement-core writes are credit() and
increment_completed_count(), issued together during settlement.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import UserRow
from src.models.common import utc_now


class AccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, user_id: UUID, email: str, full_name: str,
                     role: str, balance: int = 0,
                     total_projects: int = 0) -> UserRow:
        now = utc_now()
        row = UserRow(
            user_id=user_id, email=email, full_name=full_name, role=role,
            balance=balance, total_projects=total_projects,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, user_id: UUID) -> UserRow | None:
        return await self._session.get(UserRow, user_id)

    async def reload(self, user_id: UUID) -> UserRow | None:
        return await self._session.get(UserRow, user_id, populate_existing=True)

    async def get_by_email(self, email: str) -> UserRow | None:
        result = await self._session.execute(
            select(UserRow).where(UserRow.email == email)
        )
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, UserRow]:
        if not user_ids:
            return {}
        result = await self._session.execute(
            select(UserRow).where(UserRow.user_id.in_(user_ids))
        )
        return {row.user_id: row for row in result.scalars().all()}

    async def credit(self, user_id: UUID, amount: int) -> bool:
        """Add amount to the balance in one UPDATE. False if the user does not exist."""
        result = await self._session.execute(
            update(UserRow)
            .where(UserRow.user_id == user_id)
            .values(balance=UserRow.balance + amount, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_completed_count(self, user_id: UUID) -> bool:
        result = await self._session.execute(
            update(UserRow)
            .where(UserRow.user_id == user_id)
            .values(total_projects=UserRow.total_projects + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
