"""
Chat store: chat sessions owned by a user.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ollama_chat.db.models import (
    CHAT_ID_MAX_LENGTH,
    CHAT_NAME_MAX_LENGTH,
    MODEL_MAX_LENGTH,
    Chat,
    Message,
    utcnow,
)
from ollama_chat.errors import ConflictError, ValidationError, check_length
from ollama_chat.services.ownership import OwnershipGuard

logger = logging.getLogger(__name__)


@dataclass
class ChatSummary:
    """A chat row plus the content of its newest message."""
    id: str
    name: str
    model: str
    created_at: datetime
    updated_at: datetime
    last_message: Optional[str] = None
    messages: Optional[List[Message]] = field(default=None)


def ordered_messages(db: Session, chat_id: str) -> List[Message]:
    """Messages of a chat, oldest first; ties keep insertion order."""
    stmt = (
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.timestamp.asc(), Message.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


class ChatStore:
    """Create, list, rename and delete chats for their owner."""

    def __init__(self, db: Session):
        self.db = db
        self.guard = OwnershipGuard(db)

    # PUBLIC_INTERFACE
    def list_for_user(self, user_id: int, include_messages: bool = False) -> List[ChatSummary]:
        """List the user's chats, most recently active first."""
        last_message = (
            select(Message.content)
            .where(Message.chat_id == Chat.id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(1)
            .correlate(Chat)
            .scalar_subquery()
        )
        stmt = (
            select(Chat, last_message.label("last_message"))
            .where(Chat.user_id == user_id)
            .order_by(Chat.updated_at.desc(), Chat.created_at.desc())
        )
        summaries = []
        for chat, last in self.db.execute(stmt).all():
            summary = ChatSummary(
                id=chat.id,
                name=chat.name,
                model=chat.model,
                created_at=chat.created_at,
                updated_at=chat.updated_at,
                last_message=last,
            )
            if include_messages:
                summary.messages = ordered_messages(self.db, chat.id)
            summaries.append(summary)
        return summaries

    # PUBLIC_INTERFACE
    def create(self, user_id: int, chat_id: str, name: str, model: str) -> Chat:
        """Create a chat with a caller-supplied id.

        The id is global: reusing one that belongs to any user is a conflict.
        """
        if not chat_id or not name or not model:
            raise ValidationError("Chat ID, name, and model are required")
        # The id is used as a single URL path segment.
        if "/" in chat_id:
            raise ValidationError("Chat ID must not contain '/'")
        check_length("Chat ID", chat_id, CHAT_ID_MAX_LENGTH)
        check_length("Chat name", name, CHAT_NAME_MAX_LENGTH)
        check_length("Model", model, MODEL_MAX_LENGTH)
        if self.db.get(Chat, chat_id) is not None:
            raise ConflictError("Chat already exists")

        chat = Chat(id=chat_id, user_id=user_id, name=name, model=model)
        self.db.add(chat)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Chat already exists")
        logger.info("User %s created chat %s", user_id, chat_id)
        return chat

    # PUBLIC_INTERFACE
    def get_with_messages(self, user_id: int, chat_id: str) -> Tuple[Chat, List[Message]]:
        """Return the owned chat and its ordered messages."""
        chat = self.guard.require_chat(user_id, chat_id)
        return chat, ordered_messages(self.db, chat.id)

    # PUBLIC_INTERFACE
    def rename(self, user_id: int, chat_id: str, new_name: str) -> Chat:
        if not new_name:
            raise ValidationError("Chat name is required")
        check_length("Chat name", new_name, CHAT_NAME_MAX_LENGTH)
        chat = self.guard.require_chat(user_id, chat_id)
        chat.name = new_name
        chat.updated_at = utcnow()
        self.db.commit()
        return chat

    # PUBLIC_INTERFACE
    def delete(self, user_id: int, chat_id: str) -> None:
        """Delete the owned chat together with all of its messages."""
        chat = self.guard.require_chat(user_id, chat_id)
        self.db.delete(chat)
        self.db.commit()
        logger.info("User %s deleted chat %s", user_id, chat_id)
