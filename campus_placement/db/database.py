import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from campus_placement.core.config import get_settings
from campus_placement.db.tables import metadata

logger = logging.getLogger(__name__)

_engine: Engine = None

# Session factory, bound lazily by configure_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement (and ON DELETE CASCADE) off
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_engine(url: str = None) -> Engine:
    """
    Create the engine for url (default: settings) and bind SessionLocal to it.

    PostgreSQL gets a connection pool:
    pool_size=5: maintain 5 connections ready
    max_overflow=10: allow 10 extra connections under load
    """
    global _engine
    settings = get_settings()
    url = url or settings.sqlalchemy_url

    if _engine is not None:
        _engine.dispose()

    if url.startswith("sqlite"):
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.db_echo
        )
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        _engine = create_engine(
            url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            echo=settings.db_echo  # Log SQL queries when enabled
        )

    SessionLocal.configure(bind=_engine)
    logger.info("Database engine configured for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        configure_engine()
    return _engine


def init_schema() -> None:
    """Create all tables and indexes that do not exist yet."""
    metadata.create_all(get_engine())


@contextmanager
def get_db_session():
    """
    Context manager for database sessions. One block = one transaction.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM drives"))
    """
    get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_database_connection() -> bool:
    """
    Test if the relational store is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception:
        logger.exception("Database connection failed")
        return False

