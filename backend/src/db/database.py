"""
SQLAlchemy engine and sessions.

EVENTFLOW_DB_URL selects the database (backend/.env is read if present).
SQLite runs on a single shared connection so an in-memory database is
visible to every session, including the lifecycle runner's; any other
backend gets a pre-pinged connection pool.
"""

import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"
if _ENV_FILE.exists():
    load_dotenv(dotenv_path=_ENV_FILE)

DATABASE_URL = os.environ.get("EVENTFLOW_DB_URL", "sqlite:///./eventflow.db")


def _create_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(
            url,
            pool_size=10,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
            future=True,
        )

    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _create_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Create missing tables.

    Development SQLite databases and tests only; deployed databases are
    managed with alembic (alembic upgrade head).
    """
    from backend.src.models import Base
    Base.metadata.create_all(bind=engine)
