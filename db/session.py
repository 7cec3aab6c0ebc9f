# WORKFLOW: Database engine, sessions and schema checks for parcel storage.
# Used by: Upload router (get_db), app startup (init_db), readiness endpoint
# Functions:
# 1. get_engine() - Lazy engine built from settings.database_url
# 2. get_db() - Request-scoped session for FastAPI dependencies
# 3. init_db() - Create the products / parcels / parcel_items tables
# 4. check_db_connection() - SELECT 1 against the configured database
# 5. missing_tables() - Parcel tables not present in the database yet
#
# SQLite is the default store; sessions are shared across the threadpool that runs
# sync dependencies, so SQLite connections are opened with check_same_thread=False.

from typing import Any, Dict, List
import logging

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker

from core.config import settings

logger = logging.getLogger(__name__)

# Lazy-loaded database engine and session factory
_engine = None
_SessionLocal = None


def _connect_args(database_url: str) -> Dict[str, Any]:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    if database_url.startswith("postgresql"):
        return {"options": "-c timezone=utc"}
    return {}


def get_engine():
    """Get database engine (lazy-loaded)."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.database_url,
            pool_pre_ping=True,
            echo=settings.debug,
            connect_args=_connect_args(settings.database_url),
        )
        logger.info(f"Database engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory():
    """Get session factory (lazy-loaded)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db():
    """
    Dependency yielding a storage session.

    The storage service commits per parcel record; anything left open when the
    request fails is rolled back here before the session is closed.
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create the parcel storage tables if they do not exist."""
    from db.models import Base

    try:
        Base.metadata.create_all(bind=get_engine())
        logger.info(f"Database tables ready: {', '.join(sorted(Base.metadata.tables))}")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def check_db_connection() -> bool:
    """Check if database connection is working."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def missing_tables() -> List[str]:
    """Names of parcel storage tables that init_db() has not created yet."""
    from db.models import Base

    existing = set(inspect(get_engine()).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in existing)
