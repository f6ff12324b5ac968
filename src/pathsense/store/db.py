"""SQLite engine configured for concurrent readers during indexing writes.

WAL mode gives every reader a consistent snapshot: a search running while a
batch is being written sees the table either before or after that batch's
transaction, never a half-written row.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine


class Database:
    """
    Database connection manager with WAL mode.

    Configures SQLite for concurrent access:
    - WAL mode for concurrent readers with queued writers
    - 30-second busy timeout to handle contention

    Usage::

        db = Database(Path("embeddings.db"))
        db.create_all()

        with db.session() as session:
            row = session.get(EmbeddingRow, "/docs/a.txt")

        with db.transaction() as conn:
            conn.execute(stmt, rows)
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize database with path to SQLite file."""
        self.db_path = db_path
        self.engine = self._create_engine()

    def _create_engine(self) -> Engine:
        """Create SQLAlchemy engine with proper configuration."""
        engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        event.listen(engine, "connect", _configure_pragmas)
        return engine

    def create_all(self) -> None:
        """Create all tables from SQLModel metadata."""
        SQLModel.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """ORM session for reads and low-volume writes."""
        with Session(self.engine) as session:
            yield session

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """Core connection inside one transaction.

        Commits on successful exit, rolls back on exception.
        """
        with self.engine.begin() as conn:
            yield conn

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()


def _configure_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
    """Configure SQLite for concurrent access and performance."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA busy_timeout=30000")  # 30 second wait
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.close()
