"""Settlement ledger repository."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import SettlementRow
from src.models.common import SettlementStatus, utc_now


class SettlementRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, settlement_id: UUID, engagement_id: UUID,
                     freelancer_id: UUID, project_id: UUID, amount: int,
                     status: str = SettlementStatus.PENDING.value) -> SettlementRow:
        now = utc_now()
        row = SettlementRow(
            settlement_id=settlement_id, engagement_id=engagement_id,
            freelancer_id=freelancer_id, project_id=project_id,
            amount=amount, status=status, created_at=now,
            paid_at=now if status == SettlementStatus.PAID.value else None,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def reload(self, settlement_id: UUID) -> SettlementRow | None:
        return await self._session.get(SettlementRow, settlement_id, populate_existing=True)

    async def get_by_engagement(self, engagement_id: UUID) -> SettlementRow | None:
        result = await self._session.execute(
            select(SettlementRow).where(SettlementRow.engagement_id == engagement_id)
        )
        return result.scalar_one_or_none()

    async def mark_paid(self, settlement_id: UUID) -> bool:
        """Claim the row PENDING -> PAID. False if it was not PENDING.

        In-session copies are not synchronised; callers reload() afterwards.
        """
        result = await self._session.execute(
            update(SettlementRow)
            .where(
                SettlementRow.settlement_id == settlement_id,
                SettlementRow.status == SettlementStatus.PENDING.value,
            )
            .values(status=SettlementStatus.PAID.value, paid_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_pending(self) -> list[SettlementRow]:
        result = await self._session.execute(
            select(SettlementRow)
            .where(SettlementRow.status == SettlementStatus.PENDING.value)
            .order_by(SettlementRow.created_at)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[SettlementRow]:
        result = await self._session.execute(select(SettlementRow))
        return list(result.scalars().all())
