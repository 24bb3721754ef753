from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from linksaver.database import get_db
from linksaver.main import app
from linksaver.models import Base, User
from linksaver.utils.auth import create_access_token, get_password_hash

OWNER_EMAIL = "tester@example.com"
OTHER_EMAIL = "other@example.com"
PASSWORD = "secret123"


@pytest.fixture
async def session_factory(
    tmp_path: Path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """A fresh SQLite file database per test.

    A file (not ``:memory:``) so concurrently running sessions each get
    their own connection, as they would in production.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def users(session_factory: async_sessionmaker[AsyncSession]) -> tuple[int, int]:
    """Create the owner and a second, unrelated user; return their ids."""
    async with session_factory() as session:
        owner = User(email=OWNER_EMAIL, hashed_password=get_password_hash(PASSWORD))
        other = User(email=OTHER_EMAIL, hashed_password=get_password_hash(PASSWORD))
        session.add_all([owner, other])
        await session.commit()
        return owner.id, other.id


@pytest.fixture
async def test_client(
    session_factory: async_sessionmaker[AsyncSession],
    users: tuple[int, int],
) -> AsyncGenerator[
    tuple[AsyncClient, async_sessionmaker[AsyncSession], int, int]
]:
    """Client authenticated as the owner with a real bearer token."""
    user_id, other_user_id = users

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {create_access_token(user_id)}"},
    ) as client:
        yield client, session_factory, user_id, other_user_id

    app.dependency_overrides.clear()


@pytest.fixture
def other_headers(users: tuple[int, int]) -> dict[str, str]:
    """Authorization header of the second user."""
    return {"Authorization": f"Bearer {create_access_token(users[1])}"}
