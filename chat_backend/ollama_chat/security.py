"""
Security helpers: password hashing and bearer token issuance/validation.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from ollama_chat.config import Settings
from ollama_chat.db.models import User
from ollama_chat.errors import TokenRejectedError


class PasswordHasher:
    """One-way salted password hashing backed by bcrypt."""

    def __init__(self, rounds: int = 12):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__default_rounds=rounds)

    # PUBLIC_INTERFACE
    def hash_password(self, password: str) -> str:
        """Hash a plaintext password using a strong one-way hash."""
        return self.pwd_context.hash(password)

    # PUBLIC_INTERFACE
    def verify_password(self, plain_password: str, password_hash: str) -> bool:
        """Verify a plaintext password against a stored hash."""
        return self.pwd_context.verify(plain_password, password_hash)

    def dummy_verify(self) -> None:
        """Spend the same time as a real verification when there is no user to check."""
        self.pwd_context.dummy_verify()


@dataclass(frozen=True)
class TokenIdentity:
    """The user identity carried by a validated bearer token."""
    user_id: int
    username: str


class TokenService:
    """Issues and validates signed JWT bearer tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires: timedelta = timedelta(days=7)):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires = expires

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires=timedelta(days=settings.jwt_expires_days),
        )

    # PUBLIC_INTERFACE
    def issue(self, user: User) -> str:
        """Create a token for the given user."""
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user.id),
            "userId": user.id,
            "username": user.username,
            "iat": now,
            "exp": now + self.expires,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    # PUBLIC_INTERFACE
    def validate(self, token: str) -> TokenIdentity:
        """Decode a token, raising TokenRejectedError if it is invalid or expired."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.InvalidTokenError:
            # ExpiredSignatureError is a subclass; both surface the same way.
            raise TokenRejectedError()
        user_id = payload.get("userId")
        username = payload.get("username")
        if not isinstance(user_id, int) or not isinstance(username, str):
            raise TokenRejectedError()
        return TokenIdentity(user_id=user_id, username=username)
