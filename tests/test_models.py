"""Tests for engagement domain Pydantic models.

Covers: status enum (including legacy spellings), the transition table,
content items and settlement results.
"""

import pytest
from pydantic import ValidationError
from uuid_extensions import uuid7

from src.models.common import EngagementStatus, SettlementStatus, UserRole
from src.models.engagement import (
    TERMINAL_STATUSES,
    VALID_ENGAGEMENT_TRANSITIONS,
    ContentItem,
    Engagement,
    EngagementWithDiscussions,
    is_valid_transition,
)
from src.models.project import ProjectSummary
from src.models.settlement import SettlementResult


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TestEngagementStatus:
    def test_canonical_values(self) -> None:
        assert [s.value for s in EngagementStatus] == [
            "pending", "in_progress", "completed", "rejected",
        ]

    @pytest.mark.parametrize("raw", ["in progress", "in-progress", "In Progress", " in_progress "])
    def test_legacy_spellings_normalise(self, raw: str) -> None:
        assert EngagementStatus(raw) == EngagementStatus.IN_PROGRESS

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValueError):
            EngagementStatus("archived")

    def test_roles(self) -> None:
        assert {r.value for r in UserRole} == {"client", "freelancer"}


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


class TestTransitions:
    def test_every_status_has_an_entry(self) -> None:
        assert set(VALID_ENGAGEMENT_TRANSITIONS) == set(EngagementStatus)

    def test_forward_path(self) -> None:
        assert is_valid_transition(EngagementStatus.PENDING, EngagementStatus.IN_PROGRESS)
        assert is_valid_transition(EngagementStatus.IN_PROGRESS, EngagementStatus.COMPLETED)

    def test_reject_from_open_states(self) -> None:
        assert is_valid_transition(EngagementStatus.PENDING, EngagementStatus.REJECTED)
        assert is_valid_transition(EngagementStatus.IN_PROGRESS, EngagementStatus.REJECTED)

    def test_cannot_skip_in_progress(self) -> None:
        assert not is_valid_transition(EngagementStatus.PENDING, EngagementStatus.COMPLETED)

    def test_no_backwards_moves(self) -> None:
        assert not is_valid_transition(EngagementStatus.IN_PROGRESS, EngagementStatus.PENDING)
        assert not is_valid_transition(EngagementStatus.COMPLETED, EngagementStatus.IN_PROGRESS)

    def test_terminal_statuses(self) -> None:
        assert TERMINAL_STATUSES == {EngagementStatus.COMPLETED, EngagementStatus.REJECTED}
        for status in TERMINAL_STATUSES:
            for target in EngagementStatus:
                assert not is_valid_transition(status, target)


# ---------------------------------------------------------------------------
# Engagement models
# ---------------------------------------------------------------------------


class TestEngagement:
    def test_defaults(self) -> None:
        e = Engagement(project_id=uuid7(), freelancer_id=uuid7())
        assert e.status == EngagementStatus.PENDING
        assert e.content == []
        assert not e.is_terminal

    def test_completed_is_terminal(self) -> None:
        e = Engagement(project_id=uuid7(), freelancer_id=uuid7(), status="completed")
        assert e.is_terminal

    def test_legacy_status_accepted(self) -> None:
        e = Engagement(project_id=uuid7(), freelancer_id=uuid7(), status="in-progress")
        assert e.status == EngagementStatus.IN_PROGRESS

    def test_content_item_requires_title(self) -> None:
        with pytest.raises(ValidationError):
            ContentItem(title="")

    def test_with_discussions_defaults(self) -> None:
        e = EngagementWithDiscussions(project_id=uuid7(), freelancer_id=uuid7())
        assert e.discussions == []
        assert e.project is None
        assert e.freelancer is None


class TestSummaries:
    def test_negative_budget_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProjectSummary(project_id=uuid7(), client_id=uuid7(), title="x", budget=-1)

    def test_settlement_result(self) -> None:
        r = SettlementResult(
            engagement_id=uuid7(), settlement_id=uuid7(), freelancer_id=uuid7(),
            amount=1_000_000, engagement_status="completed", settlement_status="PAID",
        )
        assert r.settlement_status == SettlementStatus.PAID
        assert r.already_settled is False
