from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

import database.models  # noqa: F401  (registers tables on SQLModel.metadata)
from config.settings import (
    DATABASE_URL,
    DATABASE_ECHO,
    DATABASE_POOL_SIZE,
    DATABASE_MAX_OVERFLOW,
)
from utils.logger import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory database
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": DATABASE_POOL_SIZE,        # Max number of DB connections in pool
        "max_overflow": DATABASE_MAX_OVERFLOW,  # Extra connections during peak load
        "pool_recycle": 300,                    # Recycle connections every 5 min
        "pool_pre_ping": True,                  # Verify connection health before use
        "pool_timeout": 60,                     # Wait up to 60 seconds for a connection
    }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Persistence handle for the access-control engine.

    Constructed explicitly (usually once per process in the app lifespan) and
    passed to the services that need it. Call create_all() on startup and
    dispose() on shutdown.

    Example:
        db = Database("sqlite://")
        db.create_all()
        with db.transaction() as session:
            ...
        db.dispose()
    """

    def __init__(self, url: Optional[str] = None, echo: bool = DATABASE_ECHO):
        self.url = url or DATABASE_URL
        self.engine = create_engine(self.url, echo=echo, **_engine_options(self.url))
        if self.url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------
    def create_all(self) -> None:
        """Create all tables defined in SQLModel models."""
        SQLModel.metadata.create_all(self.engine)
        logger.info("[Database] Tables created/verified")

    def drop_all(self) -> None:
        SQLModel.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("[Database] Connection pool disposed")

    # ---------------------------------------------------------------------
    # Sessions
    # ---------------------------------------------------------------------
    def session(self) -> Session:
        """Raw session for read paths. Caller closes it (use as context manager)."""
        return Session(self.engine, expire_on_commit=False)

    @contextmanager
    def transaction(self, isolation_level: Optional[str] = None) -> Iterator[Session]:
        """
        Scoped unit of work: commits when the block exits normally, rolls back
        on any exception and re-raises it.
        """
        with self.session() as session:
            if isolation_level:
                # Must be requested before the transaction touches the database
                session.connection(execution_options={"isolation_level": isolation_level})
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
