"""
Schema creation and optional demo seed.

Run directly to create the tables for DATABASE_URL:

    python -m ollama_chat.db.init_db
"""
from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ollama_chat.config import Settings
from ollama_chat.db.config import build_engine, build_session_factory
from ollama_chat.db.models import Base
from ollama_chat.security import PasswordHasher
from ollama_chat.services.credentials import CredentialStore

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def init_db(engine: Engine, session_factory: sessionmaker, hasher: PasswordHasher, seed_demo_user: bool = False) -> None:
    """Create all tables that don't exist yet and seed the demo account if asked."""
    # In a production system, prefer Alembic migrations.
    Base.metadata.create_all(bind=engine)
    if seed_demo_user:
        with session_factory() as db:
            user = CredentialStore(db, hasher).ensure_demo_user()
            logger.info("Demo user available as %s", user.username)


if __name__ == "__main__":
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    engine = build_engine(settings)
    init_db(
        engine,
        build_session_factory(engine),
        PasswordHasher(rounds=settings.bcrypt_rounds),
        seed_demo_user=settings.seed_demo_user,
    )
    engine.dispose()
    logger.info("Database initialization complete.")
