"""
Database configuration and connection handling.

Supports SQLite (default, single file) and PostgreSQL through DATABASE_URL.
"""

import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from config import config
from .models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

# Global engine instance
engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with pool settings suited to the backend."""
    engine_kwargs = {"echo": echo}

    if url.startswith("sqlite"):
        # FastAPI runs sync endpoints in a threadpool.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            engine_kwargs["poolclass"] = StaticPool
    else:
        # PostgreSQL mode.
        engine_kwargs["pool_pre_ping"] = True
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10
        engine_kwargs["pool_recycle"] = 3600  # Recycle connections after 1 hour

    return create_engine(url, **engine_kwargs)


def init_engine(url: Optional[str] = None) -> Engine:
    """Initialize the global engine and bind the session factory to it."""
    global engine

    target_url = url or DATABASE_URL
    engine = build_engine(target_url, echo=config.SQLALCHEMY_ECHO)
    SessionLocal.configure(bind=engine)
    logger.info(f"Database engine ready: {target_url.split('@')[-1]}")
    return engine


def is_database_available() -> bool:
    """Check if the database answers a trivial query."""
    if engine is None:
        return False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session.

    Usage: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all tables (for initial setup)."""
    if engine is not None:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")


def drop_tables():
    """Drop all tables (use with caution!)."""
    if engine is not None:
        Base.metadata.drop_all(bind=engine)
        logger.info("Database tables dropped")


# Initialize engine on module import
init_engine()
