"""Test authentication utilities and routes."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linksaver.config import config
from linksaver.errors import ConflictError, UnauthorizedError, ValidationError
from linksaver.utils.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    decode_access_token,
    get_password_hash,
    get_user_by_email,
    get_user_by_token,
    verify_password,
)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


async def test_password_hashing() -> None:
    """Test password hashing and verification."""
    password = "test_password_123"
    hashed = get_password_hash(password)

    assert hashed != password
    assert verify_password(password, hashed)
    assert not verify_password("wrong_password", hashed)


async def test_password_hashes_are_salted() -> None:
    assert get_password_hash("same-password") != get_password_hash("same-password")


@pytest.mark.asyncio
async def test_create_user(db_session: AsyncSession) -> None:
    """Test user creation."""
    user = await create_user(db_session, "Test@Example.com ", "test_password")

    assert user.email == "test@example.com"
    assert user.hashed_password != "test_password"
    assert verify_password("test_password", user.hashed_password)
    assert user.is_active


@pytest.mark.asyncio
async def test_register_same_email_twice_conflicts(db_session: AsyncSession) -> None:
    await create_user(db_session, "user1@example.com", "password1")

    with pytest.raises(ConflictError):
        await create_user(db_session, "user1@example.com", "password2")

    with pytest.raises(ConflictError):
        await create_user(db_session, "USER1@example.com", "password2")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("email", "password", "field"),
    [
        ("not-an-email", "password1", "email"),
        ("short@example.com", "12345", "password"),
    ],
)
async def test_create_user_rejects_bad_input(
    db_session: AsyncSession, email: str, password: str, field: str
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        await create_user(db_session, email, password)
    assert excinfo.value.field == field


@pytest.mark.asyncio
async def test_authenticate_user(db_session: AsyncSession) -> None:
    await create_user(db_session, "login@example.com", "correct-horse")

    assert await authenticate_user(db_session, "login@example.com", "correct-horse")
    assert await authenticate_user(db_session, "LOGIN@example.com", "correct-horse")
    assert await authenticate_user(db_session, "login@example.com", "wrong") is None
    assert await authenticate_user(db_session, "nobody@example.com", "x") is None


@pytest.mark.asyncio
async def test_inactive_user_cannot_authenticate(db_session: AsyncSession) -> None:
    user = await create_user(db_session, "inactive@example.com", "password1")
    user.is_active = False
    await db_session.commit()

    user_after = await authenticate_user(
        db_session, "inactive@example.com", "password1"
    )
    assert user_after is None
    with pytest.raises(UnauthorizedError):
        await get_user_by_token(db_session, create_access_token(user.id))


@pytest.mark.asyncio
async def test_token_round_trip(db_session: AsyncSession) -> None:
    user = await create_user(db_session, "token@example.com", "password1")
    token = create_access_token(user.id)

    assert decode_access_token(token) == user.id
    resolved = await get_user_by_token(db_session, token)
    assert resolved.id == user.id
    found = await get_user_by_email(db_session, "token@example.com")
    assert found is not None and found.id == user.id


async def test_expired_or_garbage_tokens_are_rejected() -> None:
    expired = create_access_token(1, expires_delta=timedelta(seconds=-10))

    assert decode_access_token(expired) is None
    assert decode_access_token("not.a.token") is None


@pytest.mark.asyncio
async def test_register_and_login_routes(test_client: Any) -> None:
    client, _, _, _ = test_client

    response = await client.post(
        "/auth/register",
        json={"email": "new@example.com", "password": "password1", "fullName": "New"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["fullName"] == "New"
    assert "hashedPassword" not in body["user"]
    assert body["token"]

    response = await client.post(
        "/auth/register",
        json={"email": "new@example.com", "password": "password1"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"

    response = await client.post(
        "/auth/login", json={"email": "new@example.com", "password": "password1"}
    )
    assert response.status_code == 200
    token = response.json()["token"]

    response = await client.get(
        "/auth/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "new@example.com"


@pytest.mark.asyncio
async def test_login_with_wrong_password(test_client: Any) -> None:
    client, _, _, _ = test_client

    response = await client.post(
        "/auth/login", json={"email": "tester@example.com", "password": "nope"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_register_rejects_missing_fields(test_client: Any) -> None:
    client, _, _, _ = test_client

    response = await client.post("/auth/register", json={"email": "x@example.com"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert body["errors"]


@pytest.mark.asyncio
async def test_signup_can_be_disabled(
    test_client: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    client, _, _, _ = test_client
    monkeypatch.setattr(config, "FEATURE_SIGNUP_ENABLED", False)

    response = await client.post(
        "/auth/register",
        json={"email": "blocked@example.com", "password": "password1"},
    )
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [
        {"Authorization": ""},
        {"Authorization": "Bearer not-a-token"},
        {"Authorization": f"Bearer {create_access_token(1, timedelta(seconds=-5))}"},
    ],
)
async def test_protected_routes_require_valid_token(
    test_client: Any, headers: dict[str, str]
) -> None:
    client, _, _, _ = test_client

    response = await client.get("/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"
    assert response.headers["www-authenticate"] == "Bearer"
