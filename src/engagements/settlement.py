"""Settlement orchestrator — completion of an engagement plus payment.

settle() runs the two writes (engagement -> completed, freelancer balance +=
project budget) as one unit inside a SAVEPOINT:

1. compare-and-set engagement status in_progress -> completed
2. insert the settlement row (UNIQUE per engagement) as PENDING
3. claim the settlement row PENDING -> PAID by compare-and-set
4. credit the ledger and bump the completed-work counter

Any failure rolls the SAVEPOINT back, so neither effect is visible, and is
surfaced as SettlementPartialFailure naming the failed step. A second
settle() on a completed engagement is a no-op. Losing either compare-and-set
to a concurrent settle() also returns the existing settlement without
crediting. reconcile() repairs settlements left PENDING and, unless
disabled, completed engagements with no settlement row.

Notices are queued during settle() and sent by flush_notifications() once
the caller has committed.
"""

import asyncio
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import EngagementRow, SettlementRow
from src.engagements.errors import IllegalTransition, NotFound, SettlementPartialFailure
from src.engagements.notifications import BalanceCreditedNotice, LogNotifier, Notifier, deliver
from src.models.common import EngagementStatus, SettlementStatus, new_uuid7
from src.models.settlement import SettlementResult
from src.repositories.accounts import AccountRepository
from src.repositories.engagements import EngagementRepository
from src.repositories.projects import ProjectRepository
from src.repositories.settlements import SettlementRepository

logger = logging.getLogger(__name__)


class LedgerWriteError(Exception):
    """The account ledger refused or could not apply a write."""


class _LostRace(Exception):
    """Another settle() moved the engagement or claimed the settlement first."""


class SettlementOrchestrator:
    """Exactly-once payment tied to exactly-once completion."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        notifier: Notifier | None = None,
        timeout_seconds: float = 10.0,
        repair_unsettled_completions: bool = True,
    ) -> None:
        self._session = session
        self._engagements = EngagementRepository(session)
        self._projects = ProjectRepository(session)
        self._accounts = AccountRepository(session)
        self._settlements = SettlementRepository(session)
        self._notifier = notifier or LogNotifier()
        self._timeout = timeout_seconds
        self._repair_unsettled = repair_unsettled_completions
        self._pending_notices: list[BalanceCreditedNotice] = []

    # ----- Public operations -----

    async def settle(self, engagement_id: UUID) -> SettlementResult:
        row = await self._engagements.get_active(engagement_id)
        if row is None:
            raise NotFound("Engagement", engagement_id)

        status = EngagementStatus(row.status)
        if status == EngagementStatus.COMPLETED:
            existing = await self._settlements.get_by_engagement(engagement_id)
            if existing is not None and existing.status == SettlementStatus.PAID:
                logger.info("Engagement %s already settled", engagement_id)
                return self._result(existing, already_settled=True)
            if existing is None and not self._repair_unsettled:
                return await self._adopt(row)
            return await self._repair(row, existing)

        if status != EngagementStatus.IN_PROGRESS:
            raise IllegalTransition(engagement_id, status.value, EngagementStatus.COMPLETED.value)

        project = await self._projects.get_by_id(row.project_id)
        if project is None:
            raise NotFound("Project", row.project_id)

        freelancer_id = row.freelancer_id
        project_id = row.project_id
        amount = project.budget

        logger.info("Settling engagement %s: crediting %d to %s",
                    engagement_id, amount, freelancer_id)
        step = "engagement_status"
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session.begin_nested():
                    moved = await self._engagements.compare_and_set_status(
                        engagement_id,
                        expected=EngagementStatus.IN_PROGRESS.value,
                        new=EngagementStatus.COMPLETED.value,
                    )
                    if not moved:
                        raise _LostRace()
                    step = "settlement_record"
                    settlement = await self._settlements.create(
                        settlement_id=new_uuid7(), engagement_id=engagement_id,
                        freelancer_id=freelancer_id, project_id=project_id,
                        amount=amount,
                    )
                    settlement_id = settlement.settlement_id
                    if not await self._settlements.mark_paid(settlement_id):
                        raise _LostRace()
                    step = "ledger_credit"
                    await self._credit(freelancer_id, amount)
        except _LostRace:
            return await self._after_lost_race(engagement_id)
        except TimeoutError as exc:
            raise self._failure(engagement_id, step, "timed out") from exc
        except (SQLAlchemyError, LedgerWriteError) as exc:
            raise self._failure(engagement_id, step, str(exc)) from exc

        await self._engagements.reload(engagement_id)
        settlement = await self._settlements.reload(settlement_id)
        await self._queue_notice(freelancer_id, amount)
        logger.info("Engagement %s settled (settlement %s)", engagement_id, settlement_id)
        return self._result(settlement)

    async def reconcile(self) -> list[UUID]:
        """Repair sweep. Returns the engagement ids that were credited."""
        repaired: list[UUID] = []

        for settlement in await self._settlements.list_pending():
            engagement_id = settlement.engagement_id
            row = await self._engagements.get(engagement_id)
            if row is None or row.status == EngagementStatus.REJECTED:
                logger.warning("Pending settlement %s has no active engagement",
                               settlement.settlement_id)
                continue
            try:
                result = await self._repair(row, settlement)
            except (SettlementPartialFailure, NotFound, IllegalTransition):
                logger.warning("Could not repair settlement %s", settlement.settlement_id)
                continue
            if not result.already_settled:
                repaired.append(engagement_id)

        if not self._repair_unsettled:
            return self._log_repaired(repaired)

        settled_ids = {s.engagement_id for s in await self._settlements.list_all()}
        for row in await self._engagements.list_by_status(EngagementStatus.COMPLETED.value):
            engagement_id = row.engagement_id
            if engagement_id in settled_ids:
                continue
            try:
                result = await self._repair(row, None)
            except (SettlementPartialFailure, NotFound, IllegalTransition):
                logger.warning("Could not repair engagement %s", engagement_id)
                continue
            if not result.already_settled:
                repaired.append(engagement_id)

        return self._log_repaired(repaired)

    async def flush_notifications(self) -> int:
        """Send queued balance-credited notices. Failures are logged, never raised."""
        notices, self._pending_notices = self._pending_notices, []
        return await deliver(self._notifier, notices)

    # ----- Internals -----

    async def _credit(self, freelancer_id: UUID, amount: int) -> None:
        if not await self._accounts.credit(freelancer_id, amount):
            raise LedgerWriteError(f"account {freelancer_id} not found")
        if not await self._accounts.increment_completed_count(freelancer_id):
            raise LedgerWriteError(f"account {freelancer_id} not found")

    async def _repair(self, row: EngagementRow,
                      existing: SettlementRow | None) -> SettlementResult:
        """Finish a settlement whose engagement is, or can still become, completed.

        Raises IllegalTransition, with nothing written, when the engagement is
        neither completed nor in_progress.
        """
        engagement_id = row.engagement_id
        freelancer_id = row.freelancer_id
        project_id = row.project_id

        if existing is not None:
            amount = existing.amount
        else:
            project = await self._projects.get_by_id(project_id)
            if project is None:
                raise NotFound("Project", project_id)
            amount = project.budget

        logger.warning("Repairing settlement of engagement %s", engagement_id)
        step = "settlement_record"
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session.begin_nested():
                    settlement = existing
                    if settlement is None:
                        settlement = await self._settlements.create(
                            settlement_id=new_uuid7(), engagement_id=engagement_id,
                            freelancer_id=freelancer_id, project_id=project_id,
                            amount=amount,
                        )
                    settlement_id = settlement.settlement_id
                    step = "engagement_status"
                    # Pending rows can predate the status move.
                    moved = await self._engagements.compare_and_set_status(
                        engagement_id,
                        expected=EngagementStatus.IN_PROGRESS.value,
                        new=EngagementStatus.COMPLETED.value,
                    )
                    if not moved:
                        current = (await self._engagements.reload(engagement_id)).status
                        if current != EngagementStatus.COMPLETED:
                            raise IllegalTransition(
                                engagement_id, current, EngagementStatus.COMPLETED.value,
                            )
                    step = "settlement_record"
                    if not await self._settlements.mark_paid(settlement_id):
                        raise _LostRace()
                    step = "ledger_credit"
                    await self._credit(freelancer_id, amount)
        except _LostRace:
            return await self._after_lost_race(engagement_id)
        except TimeoutError as exc:
            raise self._failure(engagement_id, step, "timed out") from exc
        except (SQLAlchemyError, LedgerWriteError) as exc:
            raise self._failure(engagement_id, step, str(exc)) from exc

        await self._engagements.reload(engagement_id)
        settlement = await self._settlements.reload(settlement_id)
        await self._queue_notice(freelancer_id, amount)
        return self._result(settlement)

    async def _adopt(self, row: EngagementRow) -> SettlementResult:
        """Record a completion paid outside this service, without crediting."""
        project = await self._projects.get_by_id(row.project_id)
        if project is None:
            raise NotFound("Project", row.project_id)
        try:
            async with self._session.begin_nested():
                settlement = await self._settlements.create(
                    settlement_id=new_uuid7(), engagement_id=row.engagement_id,
                    freelancer_id=row.freelancer_id, project_id=row.project_id,
                    amount=project.budget, status=SettlementStatus.PAID.value,
                )
        except IntegrityError:
            # Another request recorded the settlement first.
            return await self._after_lost_race(row.engagement_id)
        logger.info("Engagement %s completed without settlement; recorded as paid",
                    row.engagement_id)
        return self._result(settlement, already_settled=True)

    async def _after_lost_race(self, engagement_id: UUID) -> SettlementResult:
        row = await self._engagements.reload(engagement_id)
        if row is None or row.status == EngagementStatus.REJECTED:
            raise NotFound("Engagement", engagement_id)
        existing = await self._settlements.get_by_engagement(engagement_id)
        if row.status == EngagementStatus.COMPLETED and existing is not None:
            existing = await self._settlements.reload(existing.settlement_id)
            logger.info("Engagement %s settled by a concurrent request", engagement_id)
            return self._result(existing, already_settled=True)
        raise IllegalTransition(engagement_id, row.status, EngagementStatus.COMPLETED.value)

    async def _queue_notice(self, freelancer_id: UUID, amount: int) -> None:
        account = await self._accounts.reload(freelancer_id)
        if account is not None:
            self._pending_notices.append(
                BalanceCreditedNotice(email=account.email, name=account.full_name, amount=amount)
            )

    @staticmethod
    def _log_repaired(repaired: list[UUID]) -> list[UUID]:
        if repaired:
            logger.info("Reconciliation repaired %d settlement(s)", len(repaired))
        return repaired

    @staticmethod
    def _failure(engagement_id: UUID, step: str, reason: str) -> SettlementPartialFailure:
        logger.error("Settlement of engagement %s failed at %s: %s",
                     engagement_id, step, reason)
        return SettlementPartialFailure(engagement_id, step, reason)

    @staticmethod
    def _result(settlement: SettlementRow, *, already_settled: bool = False) -> SettlementResult:
        return SettlementResult(
            engagement_id=settlement.engagement_id,
            settlement_id=settlement.settlement_id,
            freelancer_id=settlement.freelancer_id,
            amount=settlement.amount,
            engagement_status=EngagementStatus.COMPLETED,
            settlement_status=SettlementStatus(settlement.status),
            already_settled=already_settled,
            paid_at=settlement.paid_at,
        )
