"""Engine and session handling for the snapshot history database."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import config
from .models import Base, FormSnapshotRecord

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine for snapshot history and hands out transactional sessions."""

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        """Create the engine.

        Args:
            database_url: SQLAlchemy URL, defaults to ``DATABASE_URL``
            echo: Log every SQL statement
        """
        self.database_url = database_url or config.DATABASE_URL
        self.engine = create_engine(self.database_url, echo=echo, **self._engine_options(self.database_url))
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False)

    @staticmethod
    def _engine_options(database_url: str) -> Dict[str, Any]:
        url = make_url(database_url)
        if url.get_backend_name() != "sqlite":
            return {"pool_pre_ping": True}

        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # A single shared connection keeps an in-memory history alive between sessions
            options["poolclass"] = StaticPool
        return options

    def create_tables(self):
        """Create the snapshot history tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop the snapshot history tables."""
        Base.metadata.drop_all(bind=self.engine)

    def has_snapshot_table(self) -> bool:
        return inspect(self.engine).has_table(FormSnapshotRecord.__tablename__)

    def ensure_schema(self) -> bool:
        """Create the tables if the snapshot table is missing.

        Returns:
            True when tables were created
        """
        if self.has_snapshot_table():
            return False
        logger.info("Creating snapshot history tables at %s", self.engine.url.render_as_string(hide_password=True))
        self.create_tables()
        return True

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Session committed on success and rolled back on any error."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Dispose of the engine and its pooled connections."""
        self.engine.dispose()
