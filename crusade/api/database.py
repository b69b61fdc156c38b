"""
Database setup for the campaign tracker.

The URL comes from CRUSADE_DATABASE_URL, then DATABASE_URL (e.g. hosted Postgres),
then a SQLite file next to this module. Campaign saves are one JSON row each, so any
SQLAlchemy backend works.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

DEFAULT_SQLITE_FILE = "crusade_campaigns.db"


def resolve_database_url(environ=None) -> str:
    """Pick the campaign database URL from the environment."""
    environ = os.environ if environ is None else environ
    url = environ.get("CRUSADE_DATABASE_URL") or environ.get("DATABASE_URL")
    if not url:
        db_dir = os.path.dirname(os.path.abspath(__file__))
        return f"sqlite:///{os.path.join(db_dir, DEFAULT_SQLITE_FILE)}"
    # SQLAlchemy 2.x only knows the postgresql:// scheme
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def connect_args_for(url: str) -> dict:
    """SQLite sessions cross FastAPI's threadpool; other drivers take no extra args."""
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


DATABASE_URL = resolve_database_url()
engine = create_engine(DATABASE_URL, connect_args=connect_args_for(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Dependency that yields a DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create all tables (on the configured engine unless another is given)."""
    Base.metadata.create_all(bind=bind or engine)
