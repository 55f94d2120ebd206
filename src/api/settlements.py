"""FastAPI settlement endpoints.

POST /v1/settlements/reconcile — repair sweep for unpaid completed engagements
"""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel

from src.api.dependencies import get_settlement_orchestrator
from src.engagements.settlement import SettlementOrchestrator

router = APIRouter(prefix="/v1/settlements", tags=["settlements"])


class ReconcileResponse(BaseModel):
    repaired: list[UUID]
    total: int


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_settlements(
    background_tasks: BackgroundTasks,
    settlement: SettlementOrchestrator = Depends(get_settlement_orchestrator),
) -> ReconcileResponse:
    """Credit settlements stuck PENDING and completed engagements never paid."""
    repaired = await settlement.reconcile()
    if repaired:
        background_tasks.add_task(settlement.flush_notifications)
    return ReconcileResponse(repaired=repaired, total=len(repaired))
