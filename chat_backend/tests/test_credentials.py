import pytest

from ollama_chat.db.models import User
from ollama_chat.errors import AuthError, ConflictError, NotFoundError, ValidationError


def test_register_defaults_to_light_theme_and_can_login(credentials):
    user = credentials.register("carol", "carol@example.com", "hunter22")

    assert user.id is not None
    assert user.theme_preference == "light"
    assert user.password_hash != "hunter22"
    assert credentials.authenticate("carol", "hunter22").id == user.id


def test_login_accepts_email_in_place_of_username(credentials, alice):
    assert credentials.authenticate("alice@example.com", "secret1").id == alice.id


@pytest.mark.parametrize(
    "username, email",
    [
        ("alice", "other@example.com"),
        ("someone", "alice@example.com"),
        ("alice", "alice@example.com"),
    ],
)
def test_register_duplicate_username_or_email_conflicts(credentials, alice, username, email):
    with pytest.raises(ConflictError):
        credentials.register(username, email, "password1")


def test_register_conflict_regardless_of_which_field_collides_first(credentials):
    credentials.register("first", "first@example.com", "password1")
    credentials.register("second", "second@example.com", "password1")

    # username of one user, email of the other
    with pytest.raises(ConflictError):
        credentials.register("first", "second@example.com", "password1")
    with pytest.raises(ConflictError):
        credentials.register("second", "first@example.com", "password1")


@pytest.mark.parametrize(
    "username, email, password, message",
    [
        ("", "x@example.com", "secret1", "required"),
        ("dave", "", "secret1", "required"),
        ("dave", "x@example.com", "", "required"),
        ("ab", "x@example.com", "secret1", "at least 3"),
        ("dave", "not-an-email", "secret1", "Invalid email"),
        ("dave", "x@example.com", "12345", "at least 6"),
    ],
)
def test_register_validation(credentials, username, email, password, message):
    with pytest.raises(ValidationError) as exc_info:
        credentials.register(username, email, password)
    assert message in exc_info.value.message


def test_authenticate_does_not_reveal_which_part_was_wrong(credentials, alice):
    with pytest.raises(AuthError) as wrong_password:
        credentials.authenticate("alice", "nope-nope")
    with pytest.raises(AuthError) as unknown_user:
        credentials.authenticate("mallory", "secret1")

    assert wrong_password.value.message == unknown_user.value.message == "Invalid credentials"


def test_authenticate_requires_both_fields(credentials):
    with pytest.raises(ValidationError):
        credentials.authenticate("", "secret1")
    with pytest.raises(ValidationError):
        credentials.authenticate("alice", "")


def test_update_theme(credentials, alice, db):
    credentials.update_theme(alice.id, "dark")
    credentials.update_theme(alice.id, "dark")

    db.expire_all()
    assert credentials.get_profile(alice.id).theme_preference == "dark"


def test_update_theme_rejects_unknown_theme(credentials, alice, db):
    with pytest.raises(ValidationError):
        credentials.update_theme(alice.id, "purple")

    db.expire_all()
    assert credentials.get_profile(alice.id).theme_preference == "light"


def test_get_profile_missing_user(credentials):
    with pytest.raises(NotFoundError):
        credentials.get_profile(4242)


def test_ensure_demo_user_is_idempotent(credentials, db):
    first = credentials.ensure_demo_user()
    second = credentials.ensure_demo_user()

    assert first.id == second.id
    assert db.query(User).filter(User.username == "demo").count() == 1
    assert credentials.authenticate("demo", "demo123").email == "demo@example.com"


@pytest.mark.parametrize(
    "username, email",
    [
        ("u" * 51, "long@example.com"),
        ("longmail", "e" * 90 + "@example.com"),
    ],
)
def test_register_rejects_values_wider_than_their_columns(credentials, username, email):
    with pytest.raises(ValidationError) as exc_info:
        credentials.register(username, email, "secret1")
    assert "at most" in exc_info.value.message
