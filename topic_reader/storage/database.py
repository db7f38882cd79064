"""
Lazily opened SQLAlchemy database shared by the local stores.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from topic_reader.errors import LocalStoreError
from topic_reader.models.config import DEFAULT_DB_URL

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """
    Owns the engine and session factory.

    The engine is created on first use and reused for the lifetime of the
    object; calling ``init_db`` again is a no-op.
    """

    def __init__(self, database_url: str = DEFAULT_DB_URL):
        """
        Args:
            database_url: SQLAlchemy database URL
        """
        self.database_url = database_url
        self.engine: Optional[Engine] = None
        self.Session: Optional[sessionmaker] = None

    def init_db(self) -> None:
        if self.engine is not None:
            return
        try:
            engine = create_engine(self.database_url)
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            logger.error(f"Error opening local database {self.database_url}: {str(e)}")
            raise LocalStoreError(
                f"❌ Local Storage Unavailable!\n\n"
                f"Could not open the local database ({self.database_url}).\n"
                f"Error: {e}\n\n"
                "Please check DATABASE_URL and that the file location is writable."
            ) from e
        self.engine = engine
        self.Session = sessionmaker(bind=engine, expire_on_commit=False)
        logger.debug(f"Opened local database {self.database_url}")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Open a session, rolling back and wrapping errors on failure."""
        self.init_db()
        session = self.Session()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Local database error: {str(e)}")
            raise LocalStoreError(f"❌ Local Storage Error: {e}") from e
        finally:
            session.close()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.Session = None
