"""Uniqueness guard — at most one active engagement per (freelancer, project).

is_application_allowed() is the pure check. ensure_application_allowed()
runs it against the store and fails closed: if the scan itself errors, the
application is denied with UpstreamUnavailable. The partial unique index on
engagements is the storage-level backstop for concurrent applies.
"""

import logging
from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from src.engagements.errors import DuplicateApplication, UpstreamUnavailable
from src.repositories.engagements import EngagementRepository

logger = logging.getLogger(__name__)


class _PairKeyed(Protocol):
    freelancer_id: UUID
    project_id: UUID


def is_application_allowed(
    engagements: Iterable[_PairKeyed],
    freelancer_id: UUID,
    project_id: UUID,
) -> bool:
    """False if any engagement matches both foreign keys exactly."""
    return not any(
        e.freelancer_id == freelancer_id and e.project_id == project_id
        for e in engagements
    )


async def ensure_application_allowed(
    repo: EngagementRepository,
    freelancer_id: UUID,
    project_id: UUID,
    *,
    include_rejected: bool = False,
) -> None:
    """Raise DuplicateApplication if the pair already has an engagement.

    include_rejected=True also counts rejected engagements, which blocks
    re-applying after a rejection.
    """
    try:
        existing = await repo.list_for_pair(
            freelancer_id, project_id, include_rejected=include_rejected,
        )
    except SQLAlchemyError as exc:
        logger.error("Uniqueness scan failed for freelancer=%s project=%s: %s",
                     freelancer_id, project_id, exc)
        raise UpstreamUnavailable("engagement store", str(exc)) from exc

    if not is_application_allowed(existing, freelancer_id, project_id):
        logger.info("Duplicate application rejected: freelancer=%s project=%s",
                    freelancer_id, project_id)
        raise DuplicateApplication(freelancer_id, project_id)
