"""FastAPI dependency injection factories for engagement services.

Each factory takes AsyncSession via Depends(get_async_session). FastAPI
caches dependencies per request, so every service in one request shares
the same session and commits as one unit of work.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import Settings, get_settings
from src.db.session import get_async_session
from src.engagements.discussions import DiscussionAggregator
from src.engagements.lifecycle import LifecycleController
from src.engagements.notifications import build_notifier
from src.engagements.settlement import SettlementOrchestrator
from src.storage.uploads import UploadService

# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


async def get_settlement_orchestrator(
    session: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> SettlementOrchestrator:
    return SettlementOrchestrator(
        session,
        notifier=build_notifier(settings),
        timeout_seconds=settings.SETTLEMENT_TIMEOUT_SECONDS,
        repair_unsettled_completions=settings.REPAIR_UNSETTLED_COMPLETIONS,
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def get_lifecycle_controller(
    session: AsyncSession = Depends(get_async_session),
    settlement: SettlementOrchestrator = Depends(get_settlement_orchestrator),
    settings: Settings = Depends(get_settings),
) -> LifecycleController:
    return LifecycleController(
        session,
        settlement,
        allow_reapply_after_rejection=settings.ALLOW_REAPPLY_AFTER_REJECTION,
    )


# ---------------------------------------------------------------------------
# Discussions
# ---------------------------------------------------------------------------


async def get_discussion_aggregator(
    session: AsyncSession = Depends(get_async_session),
) -> DiscussionAggregator:
    return DiscussionAggregator(session)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


def get_upload_service(settings: Settings = Depends(get_settings)) -> UploadService:
    return UploadService(settings.OBJECT_STORAGE_PATH, settings.OBJECT_STORAGE_BASE_URL)
