"""Read-only summaries of collaborator entities (projects, user accounts)."""

from datetime import datetime
from uuid import UUID

from src.models.common import Amount, WorklyticBase


class ProjectSummary(WorklyticBase):
    """Project facts the engagement core consumes. budget is the settlement amount."""

    project_id: UUID
    client_id: UUID
    title: str
    budget: Amount
    status: str = "open"
    deadline: datetime | None = None


class FreelancerSummary(WorklyticBase):
    """Public view of the freelancer attached to an engagement listing."""

    user_id: UUID
    full_name: str
    total_projects: int = 0


class AccountBalance(WorklyticBase):
    """Balance fields of a user account."""

    user_id: UUID
    balance: Amount
    total_projects: int
