from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ollama_chat.api.main import create_app
from ollama_chat.config import Settings
from ollama_chat.services.chats import ChatStore
from ollama_chat.services.credentials import CredentialStore
from ollama_chat.services.messages import MessageStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'chat_test.db'}",
        jwt_secret_key="test-secret",
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which creates the tables.
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(client, app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def credentials(db, app):
    return CredentialStore(db, app.state.password_hasher)


@pytest.fixture
def chats(db):
    return ChatStore(db)


@pytest.fixture
def messages(db):
    return MessageStore(db)


@pytest.fixture
def alice(credentials):
    return credentials.register("alice", "alice@example.com", "secret1")


@pytest.fixture
def bob(credentials):
    return credentials.register("bob", "bob@example.com", "secret2")


def register(client, username, email=None, password="secret123"):
    """Register through the API and return the auth headers."""
    resp = client.post(
        "/api/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
