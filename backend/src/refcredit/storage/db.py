"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from refcredit.errors import StoreError
from refcredit.logging_config import get_logger
from refcredit.settings import settings

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
        """
        self.database_url = database_url or settings.database_url
        connect_args = {}
        if self.database_url.startswith("sqlite"):
            # Sessions are handed between threads by the API worker pool
            connect_args["check_same_thread"] = False
        self.engine = create_engine(
            self.database_url,
            echo=settings.env == "development",
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

        if self.engine.dialect.name == "sqlite":
            self._enable_sqlite_transactions()

    def _enable_sqlite_transactions(self) -> None:
        """Let SQLAlchemy emit BEGIN instead of the sqlite3 driver.

        The driver only opens a transaction before the first write, so reads
        and savepoints would otherwise run outside it and releasing a
        savepoint could commit early.
        """

        @event.listens_for(self.engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(self.engine, "begin")
        def _begin(conn):
            conn.exec_driver_sql("BEGIN")

    def create_tables(self) -> None:
        """Create all tables in the database."""
        # Register models on Base.metadata
        import refcredit.auth.models  # noqa: F401
        import refcredit.referral.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        import refcredit.auth.models  # noqa: F401
        import refcredit.referral.models  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Everything done inside one block commits together or not at all.
        Driver and constraint failures are re-raised as StoreError.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("database_transaction_failed", error=str(e))
            raise StoreError("Database transaction failed, please retry") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
db = Database()
