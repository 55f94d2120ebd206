"""Tests for the uniqueness guard."""

from dataclasses import dataclass
from uuid import UUID

import pytest
from sqlalchemy.exc import OperationalError
from uuid_extensions import uuid7

from src.engagements.errors import DuplicateApplication, UpstreamUnavailable
from src.engagements.uniqueness import ensure_application_allowed, is_application_allowed
from src.models.common import new_uuid7
from src.repositories.engagements import EngagementRepository


@dataclass
class _Pair:
    freelancer_id: UUID
    project_id: UUID


class TestIsApplicationAllowed:
    def test_empty_collection_allows(self) -> None:
        assert is_application_allowed([], uuid7(), uuid7())

    def test_exact_pair_denies(self) -> None:
        f, p = uuid7(), uuid7()
        assert not is_application_allowed([_Pair(f, p)], f, p)

    def test_partial_matches_allow(self) -> None:
        f, p = uuid7(), uuid7()
        existing = [_Pair(f, uuid7()), _Pair(uuid7(), p)]
        assert is_application_allowed(existing, f, p)


class _BrokenRepo:
    async def list_for_pair(self, freelancer_id, project_id, *, include_rejected=False):
        raise OperationalError("SELECT", {}, Exception("connection reset"))


class TestEnsureApplicationAllowed:
    @pytest.mark.anyio
    async def test_fails_closed_on_store_error(self) -> None:
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await ensure_application_allowed(_BrokenRepo(), uuid7(), uuid7())
        assert exc_info.value.status_code == 503

    @pytest.mark.anyio
    async def test_existing_engagement_denied(
        self, db_session, project, freelancer_account,
    ) -> None:
        repo = EngagementRepository(db_session)
        await repo.create(engagement_id=new_uuid7(), project_id=project.project_id,
                          freelancer_id=freelancer_account.user_id)
        with pytest.raises(DuplicateApplication) as exc_info:
            await ensure_application_allowed(repo, freelancer_account.user_id, project.project_id)
        assert exc_info.value.message == "Freelancer already applied to this project"

    @pytest.mark.anyio
    async def test_rejected_engagement_only_counts_when_asked(
        self, db_session, project, freelancer_account,
    ) -> None:
        repo = EngagementRepository(db_session)
        await repo.create(engagement_id=new_uuid7(), project_id=project.project_id,
                          freelancer_id=freelancer_account.user_id, status="rejected")
        await ensure_application_allowed(repo, freelancer_account.user_id, project.project_id)
        with pytest.raises(DuplicateApplication):
            await ensure_application_allowed(
                repo, freelancer_account.user_id, project.project_id, include_rejected=True,
            )
