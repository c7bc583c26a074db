"""
Engine and session factory for the card platform database.

``DATABASE_URL`` (read from the environment or a ``.env`` file) selects the
backend: PostgreSQL in deployment, SQLite for local runs and tests.
"""
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# PUBLIC_INTERFACE
def get_database_url():
    """Return ``DATABASE_URL``; the platform cannot start without one."""
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise ValueError("DATABASE_URL environment variable not set.")
    return db_url


# PUBLIC_INTERFACE
def make_engine(url: str, echo: bool = False):
    """
    Build an engine for ``url``.

    SQLite connections are shared with the request threadpool, and an
    in-memory SQLite database is pinned to a single connection so every
    session sees the same tables.
    """
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=echo, **kwargs)


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


DATABASE_URL = get_database_url()
engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)
