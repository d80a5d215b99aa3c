# backend/argfolio/database.py
"""
Database connection and session management.

This module configures SQLAlchemy with:
- Environment-aware settings (SQLite for test/development, any URL in production)
- Table creation for the append-only ledger
- Health check capabilities
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base

logger = logging.getLogger(__name__)


def _create_engine():
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    Returns:
        Engine: Configured SQLAlchemy engine

    Configuration varies by database type:
    - SQLite: StaticPool so an in-memory ledger is shared by every session
      (including the settlement scheduler thread)
    - Others: default QueuePool with pre-ping health checks
    """
    if settings.is_sqlite:
        # check_same_thread=False: the settlement scheduler runs in its own thread
        logger.info("Configuring SQLite ledger database")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info("Configuring ledger database connection pool")
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_timeout=30,
        echo=settings.debug,
    )


# Create engine and session factory
engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all ledger tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Ledger tables ready")


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Yields:
        Session: A SQLAlchemy database session that auto-closes after use.

    Usage:
        @router.get("/movements")
        def list_movements(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns:
        dict: Health status with connection info

    Used by the /health endpoint to verify ledger availability.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            conn.commit()

        return {
            "status": "healthy",
            "database": "sqlite" if settings.is_sqlite else engine.dialect.name,
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
        }
