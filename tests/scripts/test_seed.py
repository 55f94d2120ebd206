"""Seed script tests: demo data shape and idempotency."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from scripts.seed import DEMO_CLIENT_EMAIL, DEMO_FREELANCERS, DEMO_PROJECTS, seed_demo
from src.models.common import UserRole
from src.repositories.accounts import AccountRepository
from src.repositories.projects import ProjectRepository


class TestSeedDemo:
    @pytest.mark.anyio
    async def test_creates_client_freelancers_and_projects(self, db_session: AsyncSession) -> None:
        result = await seed_demo(db_session)
        assert result["created"] is True

        accounts = AccountRepository(db_session)
        client = await accounts.get(result["client_id"])
        assert client.email == DEMO_CLIENT_EMAIL
        assert client.role == UserRole.CLIENT

        freelancers = await accounts.get_many(result["freelancer_ids"])
        assert len(freelancers) == len(DEMO_FREELANCERS)
        assert all(f.role == UserRole.FREELANCER for f in freelancers.values())

        projects = await ProjectRepository(db_session).get_many(result["project_ids"])
        assert len(projects) == len(DEMO_PROJECTS)
        assert all(p.client_id == client.user_id for p in projects.values())

    @pytest.mark.anyio
    async def test_seed_demo_idempotent(self, db_session: AsyncSession) -> None:
        first = await seed_demo(db_session)
        second = await seed_demo(db_session)
        assert second["created"] is False
        assert second["client_id"] == first["client_id"]
        assert second["project_ids"] == []
