"""
Pydantic schemas for request/response models.

Request fields default to empty values so that missing input reaches the
services, which own the validation rules and messages.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, List

from pydantic import BaseModel, Field, field_serializer


def _utc_iso(value: datetime) -> str:
    """Render a stored naive-UTC timestamp as ISO 8601 with a Z suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


# === Auth ===
class UserCreate(BaseModel):
    username: str = Field("", description="Unique username, at least 3 characters")
    email: str = Field("", description="Unique email address for the user")
    password: str = Field("", description="Raw password to be hashed, at least 6 characters")


class UserLogin(BaseModel):
    username: str = Field("", description="Username or email")
    password: str = Field("", description="User password for login")


class UserRead(BaseModel):
    id: int = Field(..., description="User ID")
    username: str
    email: str
    theme_preference: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    message: str
    token: str = Field(..., description="JWT bearer token")
    user: UserRead


class ProfileResponse(BaseModel):
    user: UserRead


class ThemeUpdate(BaseModel):
    theme: str = Field("", description="Either 'light' or 'dark'")


class ThemeResponse(BaseModel):
    message: str
    theme: str


# === Chats ===
class ChatCreate(BaseModel):
    id: str = Field("", description="Client-generated chat id")
    name: str = Field("", description="Human-readable chat name")
    model: str = Field("", description="Model the chat talks to")


class ChatRename(BaseModel):
    name: str = Field("", description="New chat name")


class MessageRead(BaseModel):
    id: int
    chat_id: str
    sender: str
    content: str
    model: Optional[str]
    response_info: Optional[str]
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return _utc_iso(value)

    class Config:
        from_attributes = True


class ChatRead(BaseModel):
    id: str
    user_id: int
    name: str
    model: str
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialize_times(self, value: datetime) -> str:
        return _utc_iso(value)

    class Config:
        from_attributes = True


class ChatSummaryRead(BaseModel):
    id: str
    name: str
    model: str
    created_at: datetime
    updated_at: datetime
    last_message: Optional[str] = None
    messages: Optional[List[MessageRead]] = None

    @field_serializer("created_at", "updated_at")
    def _serialize_times(self, value: datetime) -> str:
        return _utc_iso(value)

    class Config:
        from_attributes = True


class ChatList(BaseModel):
    chats: List[ChatSummaryRead]


class ChatWithMessages(BaseModel):
    chat: ChatRead
    messages: List[MessageRead]


# === Messages ===
class MessageCreate(BaseModel):
    sender: str = Field("", description="Either 'user' or 'ai'")
    content: str = Field("", description="Message content")
    model: Optional[str] = Field(None, description="Model that produced the message")
    response_info: Optional[str] = Field(None, description="Short response metadata, e.g. latency")


class TranscriptEntry(MessageCreate):
    timestamp: Optional[datetime] = Field(None, description="Client timestamp; server time if omitted")


class TranscriptReplace(BaseModel):
    messages: List[TranscriptEntry] = Field(default_factory=list)


class StatusMessage(BaseModel):
    message: str


class TranscriptReplaced(StatusMessage):
    count: int
