"""Settlement models."""

from datetime import datetime
from uuid import UUID

from src.models.common import Amount, EngagementStatus, SettlementStatus, WorklyticBase


class SettlementResult(WorklyticBase):
    """Outcome of settle(). already_settled=True means no credit was issued this call."""

    engagement_id: UUID
    settlement_id: UUID
    freelancer_id: UUID
    amount: Amount
    engagement_status: EngagementStatus
    settlement_status: SettlementStatus
    already_settled: bool = False
    paid_at: datetime | None = None
