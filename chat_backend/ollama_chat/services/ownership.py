"""Single ownership check consulted by every chat and message operation."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ollama_chat.db.models import Chat
from ollama_chat.errors import NotFoundError


class OwnershipGuard:
    """Scopes chat access to the user who owns the chat.

    A chat that exists but belongs to someone else is reported exactly like a
    chat that does not exist.
    """

    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: int, chat_id: str) -> Optional[Chat]:
        stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    # PUBLIC_INTERFACE
    def owns(self, user_id: int, chat_id: str) -> bool:
        """Return True if a chat with this id exists and is owned by user_id."""
        return self._find(user_id, chat_id) is not None

    # PUBLIC_INTERFACE
    def require_chat(self, user_id: int, chat_id: str) -> Chat:
        """Return the owned chat or raise NotFoundError."""
        chat = self._find(user_id, chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        return chat
