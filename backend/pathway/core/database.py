"""
Database configuration and session management for the onboarding engine.

Sets up SQLAlchemy engine, session factory, and base model.
"""

from typing import Generator, Optional
from sqlalchemy import create_engine, event, MetaData, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

from .config import settings


# Configure logging
logger = logging.getLogger(__name__)


# SQLAlchemy metadata conventions for better constraint naming
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=convention)


# Base class for models
Base = declarative_base(metadata=metadata)


# Session factory, bound once the engine exists
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

_engine: Optional[Engine] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: Optional[str] = None, timeout: Optional[float] = None) -> Engine:
    """
    Create an engine with a bounded per-call timeout.
    
    Args:
        url: Database URL; defaults to in-memory SQLite when testing,
            otherwise ``settings.DATABASE_URL``
        timeout: Timeout in seconds for connecting and for each statement
        
    Returns:
        Engine: Configured SQLAlchemy engine
    """
    timeout = timeout if timeout is not None else settings.STORAGE_TIMEOUT_SECONDS
    
    if url is None and settings.TESTING:
        url = "sqlite:///:memory:"
    url = url or settings.DATABASE_URL
    
    if url.startswith("sqlite"):
        options = {}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            # In-memory SQLite must share one connection across threads
            options["poolclass"] = StaticPool
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": timeout},
            echo=settings.DEBUG,
            **options,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    
    return create_engine(
        url,
        connect_args={
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        },
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=20,
        pool_timeout=timeout,
        echo=settings.DEBUG,
    )


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
        SessionLocal.configure(bind=_engine)
    return _engine


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    
    Yields:
        Session: SQLAlchemy database session
    """
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_connection() -> bool:
    """
    Check if database is accessible.
    
    Returns:
        bool: True if database is accessible, False otherwise
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


class DatabaseManager:
    """
    Database manager for schema lifecycle.
    """
    
    @staticmethod
    def create_all_tables(engine: Optional[Engine] = None):
        """Create all database tables."""
        # Import models to ensure they're registered
        import pathway.models  # noqa: F401
        
        Base.metadata.create_all(bind=engine or get_engine())
        logger.info("All database tables created successfully")
    
    @staticmethod
    def drop_all_tables(engine: Optional[Engine] = None):
        """Drop all database tables. USE WITH CAUTION!"""
        import pathway.models  # noqa: F401
        
        Base.metadata.drop_all(bind=engine or get_engine())
        logger.warning("All database tables dropped")
