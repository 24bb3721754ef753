"""Authentication utilities."""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import Final

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from linksaver.config import config
from linksaver.errors import ConflictError, UnauthorizedError, ValidationError
from linksaver.models import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH: Final = 6
_EMAIL_RE: Final = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def get_password_hash(password: str) -> str:
    """Hash a password with a fresh salt."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(
    user_id: int, expires_delta: timedelta | None = None
) -> str:
    """Create a signed, time-bounded JWT for ``user_id``."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(UTC)
    to_encode: dict[str, object] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    encoded_jwt: str = jwt.encode(
        to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM
    )
    return encoded_jwt


def decode_access_token(token: str) -> int | None:
    """Decode a JWT and return the user id, or ``None`` if invalid/expired."""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get user by email."""
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_user_by_token(db: AsyncSession, token: str) -> User:
    """Resolve a bearer token to an active user or raise ``UnauthorizedError``."""
    user_id = decode_access_token(token)
    if user_id is None:
        raise UnauthorizedError("Invalid or expired token")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Invalid or expired token")
    return user


async def authenticate_user(
    db: AsyncSession, email: str, password: str
) -> User | None:
    """Authenticate user."""
    user = await get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str | None = None,
) -> User:
    """Register a new user.

    Raises:
        ValidationError: malformed email or too-short password
        ConflictError: the email is already registered
    """
    cleaned_email = normalize_email(email)
    if not _EMAIL_RE.match(cleaned_email):
        raise ValidationError("A valid email address is required.", field="email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
            field="password",
        )

    if await get_user_by_email(db, cleaned_email) is not None:
        raise ConflictError("Email already registered", field="email")

    user = User(
        email=cleaned_email,
        hashed_password=get_password_hash(password),
        full_name=(full_name or "").strip() or None,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Email already registered", field="email") from exc
    await db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user
