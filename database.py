"""Database connection and session management."""
import logging
import sqlite3
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from config import DATABASE_URL, SEED_SAMPLE_DATA
from models import Base, Product

logger = logging.getLogger(__name__)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str) -> Engine:
    """Create an engine with pool settings suited to the backend."""
    if url.startswith("sqlite"):
        # Writers wait on the file lock instead of failing immediately
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(
        url,
        isolation_level="READ COMMITTED",
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,
        pool_timeout=30,
    )


engine = build_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None, seed: bool = SEED_SAMPLE_DATA) -> None:
    """Apply the schema and optionally seed an empty catalog."""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    logger.info("Schema applied", extra={"dialect": bind.dialect.name})

    if not seed:
        return

    # Imported here: sample data pulls in the service layer
    from sample_data import load_sample_data

    db = Session(bind=bind)
    try:
        if db.query(Product).count() == 0:
            load_sample_data(db)
    finally:
        db.close()
