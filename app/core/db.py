# app/core/db.py
from sqlalchemy import create_engine, inspect, event
from sqlalchemy.orm import sessionmaker, Session
from contextlib import contextmanager
import logging
from typing import Generator

from app.core.config import settings
from app.core.db_base import Base

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}  # Needed for SQLite
    return {
        "pool_pre_ping": True,  # Verify connections before using them
        "pool_recycle": 3600,  # Recycle connections after an hour
    }


engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    echo=settings.DB_ECHO,
    future=True,
    **_engine_options(settings.SQLALCHEMY_DATABASE_URI)
)


# Set up listeners so SQLite enforces ON DELETE CASCADE like the server databases do
def enable_sqlite_foreign_keys(target_engine):
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)


def import_models():
    """Import every model module so its table is registered on Base"""
    from app.models import user, contact, company, campaign, asset, integration, field_change, object_mapping  # noqa: F401


def init_db(bind=None) -> bool:
    """Create all tables"""
    bind = bind or engine
    import_models()

    try:
        Base.metadata.create_all(bind=bind)
        logger.info(f"Database tables ready: {', '.join(sorted(inspect(bind).get_table_names()))}")
        return True
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}", exc_info=True)
        raise


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting a database session"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {str(e)}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for getting database session - useful for scripts"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database context error: {str(e)}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
