"""Configuration management for LinkSaver."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Application configuration."""

    # Application
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    PORT: int = int(os.getenv("PORT", "3001"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./linksaver.db")
    MIGRATION_LOCK_PATH: Path = Path(
        os.getenv("MIGRATION_LOCK_PATH", "./.linksaver-migrations.lock")
    )

    # Security
    CORS_ORIGINS: list[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://localhost:8080,http://localhost:3000,"
            "http://127.0.0.1:5173,http://127.0.0.1:8080,http://127.0.0.1:3000",
        )
    )

    # Features
    FEATURE_SIGNUP_ENABLED: bool = (
        os.getenv("FEATURE_SIGNUP_ENABLED", "true").lower() == "true"
    )

    # Auth
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7))  # 1 week
    )
    ALGORITHM: str = "HS256"

    # Categories
    DEFAULT_CATEGORY_COLOR: str = os.getenv("DEFAULT_CATEGORY_COLOR", "#3b82f6")

    # Metadata extraction
    METADATA_FETCH_TIMEOUT: float = float(os.getenv("METADATA_FETCH_TIMEOUT", "10"))


config = Config()
