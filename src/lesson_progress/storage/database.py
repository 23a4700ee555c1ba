"""Engine and session management for the progress store."""

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lesson_progress.storage.tables import Base

logger = structlog.get_logger()

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


class Database:
    """Owns the SQLAlchemy engine and hands out transactional sessions.

    Args:
        url: SQLAlchemy database URL.
        echo: Log emitted SQL.
    """

    def __init__(self, url: str, echo: bool = False):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine_kwargs = {}
        if url in _MEMORY_URLS:
            # One shared connection, otherwise every checkout sees a fresh empty database
            engine_kwargs["poolclass"] = StaticPool
        self.url = url
        self.engine = create_engine(url, echo=echo, connect_args=connect_args, **engine_kwargs)
        self._sessionmaker = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def insert(self, table):
        """Dialect-specific INSERT supporting ``on_conflict_do_update``."""
        if self.dialect == "postgresql":
            return postgresql.insert(table)
        if self.dialect == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Upserts are not supported on {self.dialect}")

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("database_schema_ready", dialect=self.dialect)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional scope: commit on success, roll back on error."""
        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
