"""
Application settings.

Values are read from environment variables once by Settings.from_env() and the
resulting object is passed explicitly to the app factory. Nothing else in the
package reads the environment.
"""
from __future__ import annotations

import os
from typing import List

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime configuration for the chat backend."""

    database_url: str = Field("sqlite:///./chat_app.db", description="SQLAlchemy database URL")
    db_pool_size: int = Field(10, ge=1, description="Connections kept in the pool")
    db_max_overflow: int = Field(0, ge=0, description="Extra connections allowed above pool_size")
    db_pool_timeout: int = Field(30, ge=1, description="Seconds to wait for a pooled connection")

    jwt_secret_key: str = Field("dev-secret-change-me", description="HMAC key for bearer tokens")
    jwt_algorithm: str = Field("HS256", description="JWT signing algorithm")
    jwt_expires_days: int = Field(7, ge=1, description="Token lifetime in days")

    bcrypt_rounds: int = Field(12, ge=4, le=31, description="bcrypt cost factor")

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    seed_demo_user: bool = Field(False, description="Create the demo account on startup")
    log_level: str = Field("INFO")

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./chat_app.db"),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "0")),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", "dev-secret-change-me"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_expires_days=int(os.getenv("JWT_EXPIRES_DAYS", "7")),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            seed_demo_user=_env_bool("SEED_DEMO_USER", False),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
