"""
SQLAlchemy ORM models for the chat backend.

Models:
- User: account with unique username/email, password hash and theme preference
- Chat: a named conversation with a caller-supplied id, owned by one user
- Message: one turn of a chat, sent by "user" or "ai"

Timestamps are naive UTC values assigned by the application.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

THEMES = ("light", "dark")
SENDERS = ("user", "ai")

# Column widths; inputs are checked against these before they reach the store.
USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100
CHAT_ID_MAX_LENGTH = 100
CHAT_NAME_MAX_LENGTH = 255
MODEL_MAX_LENGTH = 100
RESPONSE_INFO_MAX_LENGTH = 50


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Normalize a possibly offset-aware datetime to naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


class TimestampMixin:
    """Adds created_at and updated_at timestamp columns."""
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class User(TimestampMixin, Base):
    """Represents an application user."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    theme_preference: Mapped[str] = mapped_column(
        Enum(*THEMES, name="theme_preference", create_constraint=True),
        nullable=False,
        default="light",
        server_default="light",
    )

    # Relationships
    chats: Mapped[List["Chat"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan", passive_deletes=True
    )


class Chat(TimestampMixin, Base):
    """Represents a chat session owned by a user."""
    __tablename__ = "chats"
    __table_args__ = (Index("idx_user_updated", "user_id", "updated_at"),)

    id: Mapped[str] = mapped_column(String(CHAT_ID_MAX_LENGTH), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(CHAT_NAME_MAX_LENGTH), nullable=False)
    model: Mapped[str] = mapped_column(String(MODEL_MAX_LENGTH), nullable=False)

    # Relationships
    owner: Mapped[User] = relationship(back_populates="chats")
    messages: Mapped[List["Message"]] = relationship(
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.timestamp",
    )


class Message(Base):
    """Represents a single message within a chat."""
    __tablename__ = "messages"
    __table_args__ = (Index("idx_chat_timestamp", "chat_id", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    chat_id: Mapped[str] = mapped_column(
        String(CHAT_ID_MAX_LENGTH), ForeignKey("chats.id", ondelete="CASCADE"), index=True, nullable=False
    )
    sender: Mapped[str] = mapped_column(Enum(*SENDERS, name="message_sender", create_constraint=True), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[Optional[str]] = mapped_column(String(MODEL_MAX_LENGTH), nullable=True)
    response_info: Mapped[Optional[str]] = mapped_column(String(RESPONSE_INFO_MAX_LENGTH), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Relationships
    chat: Mapped[Chat] = relationship(back_populates="messages")
