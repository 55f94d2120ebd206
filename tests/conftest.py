"""Shared pytest fixtures for the Worklytic engagement test suite.

Provides:
- db_engine: in-memory SQLite async engine with all tables
- db_session: SAVEPOINT-isolated async session (app commits don't leak)
- client: AsyncClient with dependency overrides for DB-backed testing
- client_account / freelancer_account / project: seeded marketplace rows
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from src.db.session import Base, get_async_session
import src.db.tables  # noqa: F401 (registers ORM models on Base.metadata)
from src.models.common import UserRole, new_uuid7
from src.repositories.accounts import AccountRepository
from src.repositories.projects import ProjectRepository

PROJECT_BUDGET = 1_000_000


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide a SAVEPOINT-isolated session.

    The outer transaction is never committed — it rolls back at teardown.
    The session joins it through a SAVEPOINT, so session.commit() and the
    settlement's own nested SAVEPOINTs never reach the outer transaction.
    """
    async with db_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
async def client(db_session, tmp_path):
    """AsyncClient with the session and upload storage overridden."""
    from src.api.dependencies import get_upload_service
    from src.api.main import app
    from src.storage.uploads import UploadService

    async def _override_session():
        yield db_session

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_upload_service] = lambda: UploadService(
        str(tmp_path), "http://test/uploads",
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Marketplace rows
# ---------------------------------------------------------------------------


@pytest.fixture
async def client_account(db_session):
    return await AccountRepository(db_session).create(
        user_id=new_uuid7(),
        email="client@example.com",
        full_name="Acme Studio",
        role=UserRole.CLIENT.value,
    )


@pytest.fixture
async def freelancer_account(db_session):
    return await AccountRepository(db_session).create(
        user_id=new_uuid7(),
        email="dana@example.com",
        full_name="Dana Ortiz",
        role=UserRole.FREELANCER.value,
    )


@pytest.fixture
async def second_freelancer(db_session):
    return await AccountRepository(db_session).create(
        user_id=new_uuid7(),
        email="lee@example.com",
        full_name="Lee Park",
        role=UserRole.FREELANCER.value,
    )


@pytest.fixture
async def project(db_session, client_account):
    return await ProjectRepository(db_session).create(
        project_id=new_uuid7(),
        client_id=client_account.user_id,
        title="Landing page redesign",
        budget=PROJECT_BUDGET,
    )
