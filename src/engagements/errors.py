"""Engagement core error taxonomy.

Every error carries a machine-readable code and the HTTP status the API
layer renders it with. NotFound, DuplicateApplication, IllegalTransition and
ValidationFailed are terminal (no retry). SettlementPartialFailure must stay
distinguishable from ordinary failures so reconciliation can find it.
"""

from typing import Any
from uuid import UUID


class EngagementError(Exception):
    """Base class for all engagement core errors."""

    status_code: int = 500
    code: str = "engagement_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(EngagementError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: UUID) -> None:
        super().__init__(f"{entity} {entity_id} not found.", entity=entity, id=str(entity_id))


class DuplicateApplication(EngagementError):
    status_code = 409
    code = "duplicate_application"

    def __init__(self, freelancer_id: UUID, project_id: UUID) -> None:
        super().__init__(
            "Freelancer already applied to this project",
            freelancer_id=str(freelancer_id),
            project_id=str(project_id),
        )


class IllegalTransition(EngagementError):
    status_code = 409
    code = "illegal_transition"

    def __init__(self, engagement_id: UUID, current: str, target: str) -> None:
        super().__init__(
            f"Cannot transition engagement {engagement_id} from {current} to {target}.",
            engagement_id=str(engagement_id),
            current=current,
            target=target,
        )


class ValidationFailed(EngagementError):
    status_code = 422
    code = "validation_error"


class SettlementPartialFailure(EngagementError):
    """One of the settlement writes failed. The unit was rolled back."""

    status_code = 502
    code = "settlement_partial_failure"

    def __init__(self, engagement_id: UUID, failed_step: str, reason: str) -> None:
        super().__init__(
            f"Settlement of engagement {engagement_id} failed at {failed_step}: {reason}",
            engagement_id=str(engagement_id),
            failed_step=failed_step,
        )
        self.engagement_id = engagement_id
        self.failed_step = failed_step


class UpstreamUnavailable(EngagementError):
    status_code = 503
    code = "upstream_unavailable"

    def __init__(self, dependency: str, reason: str) -> None:
        super().__init__(f"{dependency} unavailable: {reason}", dependency=dependency)
