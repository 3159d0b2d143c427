"""
Message store: appending to and synchronizing chat transcripts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ollama_chat.db.models import MODEL_MAX_LENGTH, RESPONSE_INFO_MAX_LENGTH, SENDERS, Message, as_utc, utcnow
from ollama_chat.errors import ValidationError, check_length
from ollama_chat.services.ownership import OwnershipGuard

logger = logging.getLogger(__name__)


@dataclass
class NewMessage:
    """One entry of a transcript supplied by a client."""
    sender: str
    content: str
    model: Optional[str] = None
    response_info: Optional[str] = None
    timestamp: Optional[datetime] = None


def _validate(sender: str, content: str, model: Optional[str], response_info: Optional[str]) -> None:
    if not sender or not content:
        raise ValidationError("Sender and content are required")
    if sender not in SENDERS:
        raise ValidationError("Sender must be 'user' or 'ai'")
    check_length("Model", model, MODEL_MAX_LENGTH)
    check_length("Response info", response_info, RESPONSE_INFO_MAX_LENGTH)


class MessageStore:
    """Writes messages to chats owned by the acting user."""

    def __init__(self, db: Session):
        self.db = db
        self.guard = OwnershipGuard(db)

    # PUBLIC_INTERFACE
    def append(
        self,
        user_id: int,
        chat_id: str,
        sender: str,
        content: str,
        model: Optional[str] = None,
        response_info: Optional[str] = None,
    ) -> Message:
        """Add a message and move the chat's updated_at to the message's timestamp.

        Both writes are committed together or not at all.
        """
        chat = self.guard.require_chat(user_id, chat_id)
        _validate(sender, content, model, response_info)

        now = utcnow()
        msg = Message(
            chat_id=chat.id,
            sender=sender,
            content=content,
            model=model or None,
            response_info=response_info or None,
            timestamp=now,
        )
        try:
            self.db.add(msg)
            chat.updated_at = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return msg

    # PUBLIC_INTERFACE
    def replace_all(self, user_id: int, chat_id: str, messages: Sequence[NewMessage]) -> List[Message]:
        """Overwrite the chat's transcript with the supplied messages, in order.

        This is a destructive overwrite, not a merge: a message appended by
        another request after the client read the transcript is lost.
        """
        chat = self.guard.require_chat(user_id, chat_id)
        for entry in messages:
            _validate(entry.sender, entry.content, entry.model, entry.response_info)

        now = utcnow()
        rows = [
            Message(
                chat_id=chat.id,
                sender=entry.sender,
                content=entry.content,
                model=entry.model or None,
                response_info=entry.response_info or None,
                timestamp=as_utc(entry.timestamp) if entry.timestamp is not None else now,
            )
            for entry in messages
        ]
        try:
            self.db.execute(delete(Message).where(Message.chat_id == chat.id))
            self.db.add_all(rows)
            chat.updated_at = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Replaced transcript of chat %s with %d messages", chat_id, len(rows))
        return rows
