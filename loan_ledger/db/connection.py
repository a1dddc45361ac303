"""
Database connection management.

Handles:
- Connection pooling (PostgreSQL) and single-file/in-memory SQLite
- Environment-based configuration
- Context managers for transactions
- Connection lifecycle management
"""

import logging
import os
import time
from contextlib import contextmanager
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool

# Load environment variables from .env file
load_dotenv()

# Import models to ensure they're registered with Base
from .models import Base

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """Database configuration from environment variables."""

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL")
        if not self.database_url:
            raise ValueError("Database URL not configured. Set the DATABASE_URL environment variable.")

        # Log masked URL for debugging (hide password)
        if "@" in self.database_url:
            masked_url = self.database_url.split("@")[1]
            logger.info(f"Database: Connecting to {masked_url}")
        else:
            logger.info("Database: Connection configured")

        self.is_sqlite = self.database_url.startswith("sqlite")

        # Connection pooling settings
        self.pool_size = int(os.getenv("DB_POOL_SIZE", "5"))
        self.max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "10"))
        self.pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.pool_recycle = int(os.getenv("DB_POOL_RECYCLE", "3600"))  # 1 hour
        self.echo = os.getenv("SQL_ECHO", "false").lower() == "true"


class DatabaseManager:
    """
    Singleton database manager for connection pooling.

    Usage:
        db_manager = DatabaseManager()
        with db_manager.session() as session:
            loans = session.query(Loan).all()
    """

    _instance: Optional["DatabaseManager"] = None
    _engine: Optional[Engine] = None
    _session_factory: Optional[sessionmaker] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._engine is None:
            self._initialize_engine()

    def _initialize_engine(self):
        """Initialize SQLAlchemy engine with connection pooling."""
        config = DatabaseConfig()

        if config.is_sqlite:
            # SQLite: one writer at a time, no server-side pool
            self._engine = create_engine(
                config.database_url,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
                echo=config.echo,
            )
            logger.info("Database: Using SQLite")
        elif os.getenv("VERCEL"):
            # Serverless: each invocation gets fresh connections
            self._engine = create_engine(
                config.database_url,
                poolclass=NullPool,
                echo=config.echo,
            )
            logger.info("Database: Using NullPool (serverless mode)")
        else:
            self._engine = create_engine(
                config.database_url,
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout,
                pool_recycle=config.pool_recycle,
                poolclass=QueuePool,
                echo=config.echo,
            )
            logger.info(
                f"Database: Using QueuePool (pool_size={config.pool_size}, max_overflow={config.max_overflow})"
            )

        self._configure_events(config)

        # Create session factory
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    def _configure_events(self, config: DatabaseConfig):
        """Configure SQLAlchemy engine events."""

        if config.is_sqlite:

            @event.listens_for(self._engine, "connect")
            def enable_foreign_keys(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            return

        @event.listens_for(self._engine, "checkout")
        def check_connection(dbapi_conn, connection_record, connection_proxy):
            """Verify connection is alive on checkout with timing."""
            start = time.time()
            cursor = dbapi_conn.cursor()
            try:
                cursor.execute("SELECT 1")
                elapsed_ms = (time.time() - start) * 1000
                if elapsed_ms > 100:
                    logger.warning(f"Slow connection health check: {elapsed_ms:.2f}ms")
            except Exception as e:
                elapsed_ms = (time.time() - start) * 1000
                logger.error(f"Connection health check failed after {elapsed_ms:.2f}ms: {e}")
                # Connection is stale, raise to trigger reconnection
                raise
            finally:
                cursor.close()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions with automatic commit/rollback.

        Usage:
            with db_manager.session() as session:
                loan = session.query(Loan).first()
                # Automatically commits on success, rolls back on exception
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """
        Get a new session without context manager.

        Warning: Caller is responsible for closing the session.
        """
        return self._session_factory()

    def create_all(self):
        """Create all tables in the database."""
        Base.metadata.create_all(self._engine)
        logger.info("Database: All tables created")

    def dispose(self):
        """Dispose of the connection pool."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database: Connection pool disposed")


# Convenience functions

def get_db_manager() -> DatabaseManager:
    """Get or create the database manager singleton."""
    return DatabaseManager()


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Convenience context manager for database sessions.

    Usage:
        with db_session() as session:
            users = session.query(User).all()
    """
    db_manager = get_db_manager()
    with db_manager.session() as session:
        yield session


def init_database():
    """
    Initialize database schema and the single-user-mode default user.

    Call this once during deployment to create all tables.
    """
    from .models import User

    db_manager = get_db_manager()
    db_manager.create_all()
    with db_session() as session:
        if not session.query(User).filter_by(id=1).first():
            session.add(User(id=1, name="Default User"))
            logger.info("Database: Default user created")


def get_db_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency for getting database sessions.

    Usage in FastAPI routes:
        @router.get("/loan")
        def list_loans(db: Session = Depends(get_db_session)):
            return db.query(Loan).all()
    """
    db_manager = get_db_manager()
    session = db_manager.get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
