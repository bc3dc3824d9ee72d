"""Database manager for the PDF pipeline.

This module contains the DatabaseManager class for handling database
connections, session creation, and database initialization.
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import Config
from ..models import Base
from ..exceptions import DatabaseError

__all__ = ["DatabaseManager"]


def _is_memory_database(url: str) -> bool:
    database = make_url(url).database
    return not database or database == ":memory:" or "mode=memory" in url


class DatabaseManager:
    """Manages database connections and session creation.

    This class handles SQLAlchemy engine creation, database initialization,
    and provides methods for creating database sessions. It implements
    lazy initialization for better resource management.

    SQLite allows a single writer, so sessions on a SQLite database are
    serialized across threads. In-memory databases share one connection
    through StaticPool; file databases get a connection per session.

    Attributes:
        database_url: SQLAlchemy database URL
        _engine: Cached SQLAlchemy engine instance
        _session_factory: Cached sessionmaker factory
    """

    def __init__(self, database_url: str = Config.DATABASE_URL) -> None:
        """Initialize DatabaseManager with database URL.

        Args:
            database_url: SQLAlchemy database URL string
        """
        self.database_url: str = database_url
        self._engine: Optional[Any] = None
        self._session_factory: Optional[Any] = None
        self._sqlite_lock: Optional[threading.RLock] = (
            threading.RLock() if database_url.startswith("sqlite") else None
        )

    @property
    def engine(self) -> Any:
        """Get or create SQLAlchemy engine with lazy initialization.

        Returns:
            SQLAlchemy engine instance

        Raises:
            DatabaseError: If engine creation or database initialization fails
        """
        if self._engine is None:
            try:
                if self.database_url.startswith("sqlite"):
                    options = {}
                    if _is_memory_database(self.database_url):
                        options["poolclass"] = StaticPool
                    self._engine = create_engine(
                        self.database_url,
                        connect_args={
                            "check_same_thread": False,
                            "timeout": 20
                        },
                        echo=False,
                        **options
                    )
                else:
                    self._engine = create_engine(self.database_url, echo=False)
                Base.metadata.create_all(self._engine)
            except Exception as e:
                raise DatabaseError(f"Database initialization error: {str(e)}")
        return self._engine

    def create_session(self) -> Session:
        """Create a new database session.

        Objects stay readable after commit so repositories can hand them
        back to callers once the session is closed.

        Returns:
            SQLAlchemy Session instance
        """
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory()

    @contextmanager
    def session_scope(self, action: str = "operation") -> Iterator[Session]:
        """Provide a transactional scope around a series of operations.

        Args:
            action: Short description used in the error message

        Yields:
            Session that is committed on success and rolled back on failure

        Raises:
            DatabaseError: If any SQLAlchemy operation fails
        """
        if self._sqlite_lock is None:
            with self._transaction(action) as session:
                yield session
            return
        with self._sqlite_lock:
            with self._transaction(action) as session:
                yield session

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        session: Session = self.create_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Database {action} error: {str(e)}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
