"""
Credential store: registration, login and per-user preferences.
"""
from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ollama_chat.db.models import EMAIL_MAX_LENGTH, THEMES, USERNAME_MAX_LENGTH, User, utcnow
from ollama_chat.errors import AuthError, ConflictError, NotFoundError, ValidationError, check_length
from ollama_chat.security import PasswordHasher

logger = logging.getLogger(__name__)

DEMO_USERNAME = "demo"
DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo123"


class CredentialStore:
    """Reads and writes user records."""

    def __init__(self, db: Session, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    # PUBLIC_INTERFACE
    def register(self, username: str, email: str, raw_password: str) -> User:
        """Create a user with a hashed password and the default theme.

        Raises ValidationError for missing or malformed fields and
        ConflictError when the username or email is already taken.
        """
        username = (username or "").strip()
        email = (email or "").strip()
        raw_password = raw_password or ""

        if not username or not email or not raw_password:
            raise ValidationError("Username, email, and password are required")
        if len(username) < 3:
            raise ValidationError("Username must be at least 3 characters")
        check_length("Username", username, USERNAME_MAX_LENGTH)
        check_length("Email", email, EMAIL_MAX_LENGTH)
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError("Invalid email format")
        if len(raw_password) < 6:
            raise ValidationError("Password must be at least 6 characters long")

        existing = self.db.execute(
            select(User.id).where(or_(User.username == username, User.email == email))
        ).first()
        if existing:
            raise ConflictError("Username or email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=self.hasher.hash_password(raw_password),
            theme_preference="light",
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name.
            self.db.rollback()
            raise ConflictError("Username or email already exists")
        self.db.refresh(user)
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    # PUBLIC_INTERFACE
    def authenticate(self, username_or_email: str, raw_password: str) -> User:
        """Return the user matching the credentials or raise AuthError."""
        username_or_email = (username_or_email or "").strip()
        if not username_or_email or not raw_password:
            raise ValidationError("Username and password are required")

        user = self.db.execute(
            select(User).where(or_(User.username == username_or_email, User.email == username_or_email))
        ).scalars().first()
        if user is None:
            self.hasher.dummy_verify()
            logger.info("Failed login for %r", username_or_email)
            raise AuthError("Invalid credentials")
        if not self.hasher.verify_password(raw_password, user.password_hash):
            logger.info("Failed login for %r", username_or_email)
            raise AuthError("Invalid credentials")
        return user

    # PUBLIC_INTERFACE
    def update_theme(self, user_id: int, theme: str) -> None:
        """Set the user's theme preference; idempotent."""
        if theme not in THEMES:
            raise ValidationError("Valid theme (light/dark) is required")
        self.db.execute(
            update(User).where(User.id == user_id).values(theme_preference=theme, updated_at=utcnow())
        )
        self.db.commit()

    # PUBLIC_INTERFACE
    def get_profile(self, user_id: int) -> User:
        """Return the user or raise NotFoundError."""
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def ensure_demo_user(self) -> User:
        """Create the demo account unless it already exists."""
        user = self.db.execute(select(User).where(User.username == DEMO_USERNAME)).scalar_one_or_none()
        if user is not None:
            return user
        return self.register(DEMO_USERNAME, DEMO_EMAIL, DEMO_PASSWORD)
