"""Authentication routes."""

from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.config import config
from linksaver.database import get_db
from linksaver.errors import ForbiddenError, UnauthorizedError
from linksaver.models import User
from linksaver.schemas import LoginRequest, RegisterRequest
from linksaver.services.common import isoformat
from linksaver.utils.auth import (
    authenticate_user,
    create_access_token,
    create_user,
    get_user_by_token,
)

router = APIRouter(prefix="/auth", tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False)


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "avatarUrl": user.avatar_url,
        "createdAt": isoformat(user.created_at),
    }


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Get current user from the bearer token, if one was sent."""
    if credentials is None or not credentials.credentials:
        return None
    return await get_user_by_token(db, credentials.credentials)


async def require_auth(
    current_user: User | None = Depends(get_current_user),
) -> User:
    """Require authentication."""
    if current_user is None:
        raise UnauthorizedError("Access token required")
    return current_user


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """User registration."""
    if not config.FEATURE_SIGNUP_ENABLED:
        raise ForbiddenError("Signup is disabled")

    user = await create_user(db, body.email, body.password, body.full_name)
    return {"user": serialize_user(user), "token": create_access_token(user.id)}


@router.post("/login")
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """User login."""
    user = await authenticate_user(db, body.email, body.password)
    if user is None:
        raise UnauthorizedError("Invalid credentials")

    return {"user": serialize_user(user), "token": create_access_token(user.id)}


@router.get("/me")
async def me(current_user: User = Depends(require_auth)) -> dict[str, Any]:
    """Get current user info."""
    return {"user": serialize_user(current_user)}
