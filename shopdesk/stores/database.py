"""
Database Core

SQLAlchemy engine, session management, and database utilities for shopdesk.

Features:
- Pooled engine for Postgres, single-file engine for SQLite (local runs and tests)
- Session context manager and FastAPI dependency with rollback on error
- Transaction context manager with automatic commit/rollback
- Table creation and connection health check
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    DatabaseError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from shopdesk.core.config import settings
from shopdesk.core.error_codes import DatabaseErrorCode
from shopdesk.core.exceptions import DatabaseException
from shopdesk.core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PoolStatus:
    """Immutable connection pool status information."""

    size: int
    checked_out: int
    overflow: int


# Global SQLAlchemy base
Base = declarative_base()


def _database_host(database_url: str) -> str:
    try:
        return make_url(database_url).host or "local"
    except Exception:
        return "unknown"


def _create_database_engine() -> Engine:
    """Create the database engine; SQLite URLs skip the pool sizing options."""
    url = settings.database__url
    try:
        if url.startswith("sqlite"):
            return create_engine(
                url,
                echo=settings.database__echo,
                connect_args={"check_same_thread": False},
            )

        return create_engine(
            url,
            echo=settings.database__echo,
            pool_pre_ping=settings.database__pool_pre_ping,
            pool_size=settings.database__pool_size,
            max_overflow=settings.database__max_overflow,
            pool_timeout=settings.database__pool_timeout,
            pool_recycle=settings.database__pool_recycle,
            poolclass=QueuePool,
        )

    except Exception as e:
        logger.error("Failed to create database engine: %s", e)
        raise DatabaseException(
            f"Database engine creation failed: {e}",
            DatabaseErrorCode.CONNECTION_FAILED,
            details={"database_url_host": _database_host(url)},
        ) from e


engine = _create_database_engine()

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
    expire_on_commit=False,
)


def get_pool_status() -> PoolStatus:
    """Return the current connection pool counters (zeros for non-queue pools)."""
    pool = engine.pool
    return PoolStatus(
        size=getattr(pool, "size", lambda: 0)(),
        checked_out=getattr(pool, "checkedout", lambda: 0)(),
        overflow=getattr(pool, "overflow", lambda: 0)(),
    )


def _create_db_session() -> Generator[Session, None, None]:
    """
    Shared session lifecycle for the FastAPI dependency and the context manager.

    SQLAlchemy errors roll the session back and are re-raised as
    DatabaseException; application exceptions raised inside the block pass
    through unchanged.
    """
    db_session = SessionLocal()
    logger.debug("Database session created")
    try:
        yield db_session

    except SQLAlchemyError as e:
        logger.error("Database session error: %s", e)
        db_session.rollback()
        raise DatabaseException(
            f"Database session error: {e}", DatabaseErrorCode.QUERY_FAILED
        ) from e

    except Exception:
        db_session.rollback()
        raise

    finally:
        db_session.close()
        logger.debug("Database session closed")


def get_db_dependency() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    yield from _create_db_session()


@contextmanager
def database_session() -> Generator[Session, None, None]:
    """
    Context manager for database session.

    Used by the stores, background tasks and scripts.

    Example:
        with database_session() as db:
            sale = db.get(Sale, sale_id)
            sale.courier_status = "delivered"
            db.commit()
    """
    yield from _create_db_session()


@contextmanager
def transaction_manager(db_session: Session) -> Generator[Session, None, None]:
    """
    Transaction context manager with automatic commit/rollback.

    Usage:
        with database_session() as db:
            with transaction_manager(db) as tx:
                tx.add(status_log)
                sale.courier_status = new_status
                # commits on exit, rolls back on any exception
    """
    if db_session is None:
        raise DatabaseException(
            "Database session is None", DatabaseErrorCode.CONNECTION_FAILED
        )

    logger.debug("Starting database transaction")

    try:
        yield db_session
        db_session.commit()
        logger.debug("Database transaction committed successfully")

    except Exception as e:
        logger.error("Database transaction failed: %s", e)
        db_session.rollback()

        error_code = (
            DatabaseErrorCode.QUERY_FAILED
            if isinstance(e, SQLAlchemyError)
            else DatabaseErrorCode.TRANSACTION_FAILED
        )
        raise DatabaseException(f"Database transaction failed: {e}", error_code) from e


def create_tables(bind: Engine | None = None) -> None:
    """Create every table registered on ``Base`` that does not exist yet."""
    import shopdesk.models  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))


def dispose_engine() -> None:
    """Dispose database engine and close all connections (application shutdown)."""
    try:
        engine.dispose()
        logger.info("Database engine disposed successfully")
    except SQLAlchemyError as e:
        logger.error("Failed to dispose database engine: %s", e)


def test_connection() -> Dict[str, Any]:
    """
    Test database connection and return status information.

    Raises:
        DatabaseException: If connection test fails
    """
    try:
        with engine.connect() as conn:
            test_value = conn.execute(text("SELECT 1 as test_value")).scalar()

        pool_status = get_pool_status()
        logger.info(
            "Database connection test - Pool status: Size=%d, Checked out=%d, "
            "Overflow=%d",
            pool_status.size,
            pool_status.checked_out,
            pool_status.overflow,
        )

        return {
            "connection_test": "passed",
            "test_query_result": test_value,
            "pool_status": {
                "size": pool_status.size,
                "checked_out": pool_status.checked_out,
                "overflow": pool_status.overflow,
            },
            "engine_url": engine.url.render_as_string(hide_password=True),
        }

    except (OperationalError, DatabaseError, InterfaceError) as e:
        logger.error("Database connection test failed: %s", e)
        raise DatabaseException(
            f"Database connection test failed: {e}",
            DatabaseErrorCode.CONNECTION_FAILED,
            details={"error_type": type(e).__name__},
        ) from e
