"""Seed script — load demo marketplace data into the Worklytic database.

Creates:
1. A demo client account
2. Two demo freelancer accounts
3. Two open projects posted by the demo client

Idempotent: safe to run multiple times — skips if the demo client already exists.

Usage:
    python -m scripts.seed          # against DATABASE_URL from .env
    pytest tests/scripts/test_seed.py  # against aiosqlite in-memory
"""

import asyncio
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import ProjectRow, UserRow
from src.models.common import UserRole, new_uuid7, utc_now
from src.repositories.accounts import AccountRepository
from src.repositories.projects import ProjectRepository

# Demo client email (used for idempotency check)
DEMO_CLIENT_EMAIL = "client@demo.worklytic.test"

DEMO_FREELANCERS = [
    {"email": "amira@demo.worklytic.test", "full_name": "Amira Haddad"},
    {"email": "jonas@demo.worklytic.test", "full_name": "Jonas Berg"},
]

# Budgets in whole currency units
DEMO_PROJECTS = [
    {
        "title": "Landing page redesign",
        "description": "Responsive landing page for the spring campaign.",
        "budget": 1_000_000,
        "deadline_days": 30,
    },
    {
        "title": "Mobile app onboarding flow",
        "description": "Three-screen onboarding with account linking.",
        "budget": 2_500_000,
        "deadline_days": 45,
    },
]


async def seed_client(session: AsyncSession) -> UserRow:
    """Create the demo client account."""
    repo = AccountRepository(session)
    return await repo.create(
        user_id=new_uuid7(),
        email=DEMO_CLIENT_EMAIL,
        full_name="Demo Client Ltd",
        role=UserRole.CLIENT.value,
    )


async def seed_freelancers(session: AsyncSession) -> list[UserRow]:
    repo = AccountRepository(session)
    return [
        await repo.create(
            user_id=new_uuid7(),
            email=demo["email"],
            full_name=demo["full_name"],
            role=UserRole.FREELANCER.value,
        )
        for demo in DEMO_FREELANCERS
    ]


async def seed_projects(session: AsyncSession, client: UserRow) -> list[ProjectRow]:
    repo = ProjectRepository(session)
    now = utc_now()
    return [
        await repo.create(
            project_id=new_uuid7(),
            client_id=client.user_id,
            title=demo["title"],
            description=demo["description"],
            budget=demo["budget"],
            deadline=now + timedelta(days=demo["deadline_days"]),
        )
        for demo in DEMO_PROJECTS
    ]


async def seed_demo(session: AsyncSession) -> dict:
    """Seed the full demo dataset. Idempotent.

    Returns dict with: created, client_id, freelancer_ids, project_ids.
    """
    existing = await AccountRepository(session).get_by_email(DEMO_CLIENT_EMAIL)
    if existing is not None:
        return {
            "created": False,
            "client_id": existing.user_id,
            "freelancer_ids": [],
            "project_ids": [],
        }

    client = await seed_client(session)
    freelancers = await seed_freelancers(session)
    projects = await seed_projects(session, client)
    return {
        "created": True,
        "client_id": client.user_id,
        "freelancer_ids": [f.user_id for f in freelancers],
        "project_ids": [p.project_id for p in projects],
    }


async def _run_seed() -> None:
    """Run the seed against the real database (idempotent)."""
    from src.db.session import async_session_factory

    async with async_session_factory() as session:
        result = await seed_demo(session)

        if not result["created"]:
            print(f"Demo data already seeded ({DEMO_CLIENT_EMAIL} exists). Skipping.")
            print(f"  Client: {result['client_id']}")
            return

        await session.commit()

        print("Seed complete.")
        print(f"  Client:       {result['client_id']}")
        for fid, demo in zip(result["freelancer_ids"], DEMO_FREELANCERS):
            print(f"  Freelancer:   {fid} ({demo['full_name']})")
        for pid, demo in zip(result["project_ids"], DEMO_PROJECTS):
            print(f"  Project:      {pid} {demo['title']!r} budget={demo['budget']:,}")


if __name__ == "__main__":
    asyncio.run(_run_seed())
