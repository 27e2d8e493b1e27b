"""
Database plumbing shared by the services.

Each process builds one `Database` at startup from its DATABASE_URL and hands
it to the stores that need it. Models of every service hang off the same
declarative `Base`, but a service only creates the tables it owns.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger("db")


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sqlite_connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        # threads share the pool; writers wait on the file lock instead of failing
        return {"check_same_thread": False, "timeout": 30}
    return {}


class Database:
    """Owns the engine and session factory for one process."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine: Engine = create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            connect_args=_sqlite_connect_args(url),
        )
        self.session_factory = sessionmaker(self.engine, expire_on_commit=False)

    def create_all(self, tables: Optional[Sequence] = None) -> None:
        """Create the given tables (or every registered model) if missing."""
        Base.metadata.create_all(self.engine, tables=tables)
        logger.info("Schema ready on %s", self.engine.url.render_as_string(hide_password=True))

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope: commit on success, roll back on any exception."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            return False

    def dispose(self) -> None:
        self.engine.dispose()
