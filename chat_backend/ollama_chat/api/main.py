"""
HTTP surface of the chat backend.

Serve with the application factory:

    uvicorn --factory ollama_chat.api.main:create_app
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from ollama_chat.config import Settings
from ollama_chat.db.config import build_engine, build_session_factory, get_db
from ollama_chat.db.init_db import init_db
from ollama_chat.errors import AuthError, ChatServiceError, InternalError
from ollama_chat.schemas import (
    AuthResponse,
    ChatCreate,
    ChatList,
    ChatRead,
    ChatRename,
    ChatSummaryRead,
    ChatWithMessages,
    MessageCreate,
    MessageRead,
    ProfileResponse,
    StatusMessage,
    ThemeResponse,
    ThemeUpdate,
    TranscriptReplace,
    TranscriptReplaced,
    UserCreate,
    UserLogin,
    UserRead,
)
from ollama_chat.security import PasswordHasher, TokenIdentity, TokenService
from ollama_chat.services.chats import ChatStore, ChatSummary
from ollama_chat.services.credentials import CredentialStore
from ollama_chat.services.messages import MessageStore, NewMessage

logger = logging.getLogger(__name__)

# Bearer token scheme; missing tokens are reported by _get_current_identity.
bearer_scheme = HTTPBearer(auto_error=False)


# === Dependencies ===
def _get_credential_store(request: Request, db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db, request.app.state.password_hasher)


def _get_chat_store(db: Session = Depends(get_db)) -> ChatStore:
    return ChatStore(db)


def _get_message_store(db: Session = Depends(get_db)) -> MessageStore:
    return MessageStore(db)


def _get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenIdentity:
    """Resolve the caller's identity from the bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required")
    return request.app.state.token_service.validate(credentials.credentials)


# === Error handlers ===
def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _service_error_handler(request: Request, exc: ChatServiceError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Router-level 404/405 and any HTTPException raised by FastAPI itself.
    response = _error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(400, message)


async def _store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    error = InternalError()
    return _error_response(error.status_code, error.message)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError()
    return _error_response(error.status_code, error.message)


def _summary_read(summary: ChatSummary) -> ChatSummaryRead:
    data = {
        "id": summary.id,
        "name": summary.name,
        "model": summary.model,
        "created_at": summary.created_at,
        "updated_at": summary.updated_at,
        "last_message": summary.last_message,
    }
    if summary.messages is not None:
        data["messages"] = [MessageRead.model_validate(m) for m in summary.messages]
    return ChatSummaryRead(**data)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application around explicit settings."""
    settings = settings or Settings.from_env()
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(settings.log_level)

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables on startup if they don't already exist.
        init_db(engine, session_factory, password_hasher, seed_demo_user=settings.seed_demo_user)
        yield
        engine.dispose()

    app = FastAPI(
        title="Ollama Chat Backend",
        description="Backend API handling authentication, user preferences, and chat/message storage.",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Service health and readiness checks"},
            {"name": "auth", "description": "Registration, login and profile"},
            {"name": "chats", "description": "Create and manage chats"},
            {"name": "messages", "description": "Append and synchronize chat messages"},
        ],
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.password_hasher = password_hasher
    app.state.token_service = TokenService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ChatServiceError, _service_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # PUBLIC_INTERFACE
    @app.get("/health", tags=["health"], summary="Health Check", description="Basic service-level health check.")
    def health_check():
        """Simple health check endpoint."""
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    # PUBLIC_INTERFACE
    @app.get(
        "/db/health",
        tags=["health"],
        summary="Database Health",
        description="Checks if the application can connect to the database and run a simple query.",
    )
    def db_health(db: Session = Depends(get_db)):
        """Run a trivial SELECT 1 to verify DB connectivity."""
        db.execute(text("SELECT 1"))
        return {"database": "ok"}

    # === Auth Endpoints ===
    # PUBLIC_INTERFACE
    @app.post(
        "/api/register",
        tags=["auth"],
        summary="Register",
        description="Create a new user account and return a bearer token",
        response_model=AuthResponse,
        status_code=201,
    )
    def register(
        payload: UserCreate,
        request: Request,
        store: CredentialStore = Depends(_get_credential_store),
    ):
        """Create a new user with hashed password."""
        user = store.register(payload.username, payload.email, payload.password)
        token = request.app.state.token_service.issue(user)
        return AuthResponse(message="User created successfully", token=token, user=UserRead.model_validate(user))

    # PUBLIC_INTERFACE
    @app.post(
        "/api/login",
        tags=["auth"],
        summary="Login",
        description="Authenticate with username or email and return a bearer token",
        response_model=AuthResponse,
    )
    def login(
        payload: UserLogin,
        request: Request,
        store: CredentialStore = Depends(_get_credential_store),
    ):
        """Verify credentials and return a bearer token."""
        user = store.authenticate(payload.username, payload.password)
        token = request.app.state.token_service.issue(user)
        return AuthResponse(message="Login successful", token=token, user=UserRead.model_validate(user))

    # PUBLIC_INTERFACE
    @app.get(
        "/api/profile",
        tags=["auth"],
        summary="Get current user profile",
        response_model=ProfileResponse,
    )
    def get_profile(
        identity: TokenIdentity = Depends(_get_current_identity),
        store: CredentialStore = Depends(_get_credential_store),
    ):
        """Return the authenticated user's profile."""
        return ProfileResponse(user=UserRead.model_validate(store.get_profile(identity.user_id)))

    # PUBLIC_INTERFACE
    @app.patch(
        "/api/profile/theme",
        tags=["auth"],
        summary="Update theme preference",
        response_model=ThemeResponse,
    )
    def update_theme(
        payload: ThemeUpdate,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: CredentialStore = Depends(_get_credential_store),
    ):
        store.update_theme(identity.user_id, payload.theme)
        return ThemeResponse(message="Theme preference updated", theme=payload.theme)

    # === Chat Endpoints ===
    # PUBLIC_INTERFACE
    @app.get(
        "/api/chats",
        tags=["chats"],
        summary="List chats",
        description="List the current user's chats with the latest message of each, most recent first",
        response_model=ChatList,
        response_model_exclude_unset=True,
    )
    def list_chats(
        include_messages: bool = False,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: ChatStore = Depends(_get_chat_store),
    ):
        summaries = store.list_for_user(identity.user_id, include_messages=include_messages)
        return ChatList(chats=[_summary_read(s) for s in summaries])

    # PUBLIC_INTERFACE
    @app.get(
        "/api/chats/{chat_id}",
        tags=["chats"],
        summary="Get chat with messages",
        response_model=ChatWithMessages,
    )
    def get_chat(
        chat_id: str,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: ChatStore = Depends(_get_chat_store),
    ):
        """Fetch a chat and its messages in timestamp order."""
        chat, messages = store.get_with_messages(identity.user_id, chat_id)
        return ChatWithMessages(
            chat=ChatRead.model_validate(chat),
            messages=[MessageRead.model_validate(m) for m in messages],
        )

    # PUBLIC_INTERFACE
    @app.post(
        "/api/chats",
        tags=["chats"],
        summary="Create chat",
        response_model=StatusMessage,
        status_code=201,
    )
    def create_chat(
        payload: ChatCreate,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: ChatStore = Depends(_get_chat_store),
    ):
        store.create(identity.user_id, payload.id, payload.name, payload.model)
        return StatusMessage(message="Chat created successfully")

    # PUBLIC_INTERFACE
    @app.patch(
        "/api/chats/{chat_id}",
        tags=["chats"],
        summary="Rename chat",
        response_model=StatusMessage,
    )
    def rename_chat(
        chat_id: str,
        payload: ChatRename,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: ChatStore = Depends(_get_chat_store),
    ):
        store.rename(identity.user_id, chat_id, payload.name)
        return StatusMessage(message="Chat updated successfully")

    # PUBLIC_INTERFACE
    @app.delete(
        "/api/chats/{chat_id}",
        tags=["chats"],
        summary="Delete chat",
        description="Delete a chat and its messages",
        response_model=StatusMessage,
    )
    def delete_chat(
        chat_id: str,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: ChatStore = Depends(_get_chat_store),
    ):
        store.delete(identity.user_id, chat_id)
        return StatusMessage(message="Chat deleted successfully")

    # === Message Endpoints ===
    # PUBLIC_INTERFACE
    @app.post(
        "/api/chats/{chat_id}/messages",
        tags=["messages"],
        summary="Add message",
        response_model=StatusMessage,
        status_code=201,
    )
    def add_message(
        chat_id: str,
        payload: MessageCreate,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: MessageStore = Depends(_get_message_store),
    ):
        """Append a message to a chat. Only the owner may post."""
        store.append(
            identity.user_id,
            chat_id,
            payload.sender,
            payload.content,
            model=payload.model,
            response_info=payload.response_info,
        )
        return StatusMessage(message="Message added successfully")

    # PUBLIC_INTERFACE
    @app.put(
        "/api/chats/{chat_id}/messages",
        tags=["messages"],
        summary="Replace transcript",
        description="Overwrite every message of a chat with the supplied ordered list",
        response_model=TranscriptReplaced,
    )
    def replace_messages(
        chat_id: str,
        payload: TranscriptReplace,
        identity: TokenIdentity = Depends(_get_current_identity),
        store: MessageStore = Depends(_get_message_store),
    ):
        entries = [
            NewMessage(
                sender=m.sender,
                content=m.content,
                model=m.model,
                response_info=m.response_info,
                timestamp=m.timestamp,
            )
            for m in payload.messages
        ]
        rows = store.replace_all(identity.user_id, chat_id, entries)
        return TranscriptReplaced(message="Chat messages replaced", count=len(rows))

