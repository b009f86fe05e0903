"""Database connection and session management.

This module handles the database connection using SQLAlchemy.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import DATA_DIR, DATABASE_URL
from models.base import Base
# Import models to ensure they are registered with Base.metadata
import models  # noqa: F401


def build_engine(url: str) -> Engine:
    """Create an engine, applying the SQLite specifics when needed.

    Args:
        url: SQLAlchemy database URL.

    Returns:
        Configured Engine.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # Ensure data directory exists
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args={"check_same_thread": False})


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    Base.metadata.create_all(bind=bind)


def get_db():
    """Dependency for getting a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
