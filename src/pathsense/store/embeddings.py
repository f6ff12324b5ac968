"""Persistent path → embedding store.

One row per path in a local SQLite file (see ``models.EmbeddingRow``).
The store is an explicit handle: whoever wires the pipeline together opens
it on startup and closes it on shutdown.

Lifecycle:
  - open()                 → create file + schema
  - put(record)            → upsert by path
  - put_many(records)      → upsert a batch in one transaction
  - get_all()/load_corpus()→ snapshot reads
  - delete(paths)/clear()  → removal
  - close()                → dispose connections
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Any

import numpy as np
import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, func, select

from pathsense.core.errors import StoreError
from pathsense.store.db import Database
from pathsense.store.models import EmbeddingRow

log = structlog.get_logger()

# Little-endian float32 on disk regardless of host byte order
_VECTOR_DTYPE = np.dtype("<f4")

_UPSERT_SQL = text(
    """
    INSERT INTO embeddings (path, embedding, dim, model, created_at)
    VALUES (:path, :embedding, :dim, :model, :created_at)
    ON CONFLICT (path)
    DO UPDATE SET embedding = excluded.embedding,
                  dim = excluded.dim,
                  model = excluded.model,
                  created_at = excluded.created_at
    """
)


def now_ms() -> int:
    """Current time as integer epoch millis."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class EmbeddingRecord:
    """Vector for one path, tagged with the model that produced it."""

    path: str
    embedding: list[float]
    model: str
    created_at: int = field(default_factory=now_ms)


@dataclass(frozen=True, slots=True)
class Corpus:
    """Paths and their vectors as a dense matrix (rows parallel to paths)."""

    paths: list[str]
    matrix: np.ndarray

    def __len__(self) -> int:
        return len(self.paths)


@dataclass(frozen=True, slots=True)
class StoreStats:
    """Summary of store contents."""

    count: int
    models: dict[str, int]
    path: str


def _encode(vector: Sequence[float] | np.ndarray) -> bytes:
    return np.asarray(vector, dtype=_VECTOR_DTYPE).ravel().tobytes()


def _decode(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=_VECTOR_DTYPE).astype(np.float32)


def _to_row(record: EmbeddingRecord) -> dict[str, Any]:
    blob = _encode(record.embedding)
    return {
        "path": record.path,
        "embedding": blob,
        "dim": len(blob) // _VECTOR_DTYPE.itemsize,
        "model": record.model,
        "created_at": record.created_at,
    }


def _to_record(row: EmbeddingRow) -> EmbeddingRecord:
    return EmbeddingRecord(
        path=row.path,
        embedding=_decode(row.embedding).tolist(),
        model=row.model,
        created_at=row.created_at,
    )


class EmbeddingStore:
    """Durable key-value store of ``path → {embedding, model, created_at}``.

    Thread-safe: every method opens its own connection, and indexing work
    may run in a worker thread while searches read from another.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._db: Database | None = None

    # --- Lifecycle ---

    def open(self) -> EmbeddingStore:
        """Create the database file and schema if needed."""
        if self._db is not None:
            return self
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        db = Database(self.db_path)
        db.create_all()
        self._db = db
        log.debug("store.opened", path=str(self.db_path))
        return self

    def close(self) -> None:
        if self._db is None:
            return
        self._db.dispose()
        self._db = None
        log.debug("store.closed", path=str(self.db_path))

    @property
    def is_open(self) -> bool:
        return self._db is not None

    def __enter__(self) -> EmbeddingStore:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _require_db(self) -> Database:
        if self._db is None:
            raise StoreError.not_open(str(self.db_path))
        return self._db

    # --- Writes ---

    def put(self, record: EmbeddingRecord) -> None:
        """Insert or replace the record for ``record.path``."""
        self.put_many([record])

    def put_many(self, records: Iterable[EmbeddingRecord]) -> int:
        """Upsert records in a single transaction. Returns rows written.

        Raises:
            StoreError: The transaction failed and was rolled back.
        """
        rows = [_to_row(r) for r in records]
        if not rows:
            return 0
        db = self._require_db()
        try:
            with db.transaction() as conn:
                conn.execute(_UPSERT_SQL, rows)
        except SQLAlchemyError as e:
            raise StoreError.write_failed(str(self.db_path), len(rows), str(e)) from e
        return len(rows)

    def delete(self, paths: Iterable[str]) -> int:
        """Remove records for *paths*. Returns rows deleted."""
        targets = list(dict.fromkeys(paths))
        if not targets:
            return 0
        deleted = 0
        with self._require_db().transaction() as conn:
            for path in targets:
                result = conn.execute(
                    text("DELETE FROM embeddings WHERE path = :path"), {"path": path}
                )
                deleted += result.rowcount or 0
        return deleted

    def clear(self) -> int:
        """Remove every record. Returns rows deleted."""
        with self._require_db().transaction() as conn:
            result = conn.execute(text("DELETE FROM embeddings"))
        deleted = result.rowcount or 0
        log.info("store.cleared", deleted=deleted)
        return deleted

    # --- Reads ---

    def get(self, path: str) -> EmbeddingRecord | None:
        with self._require_db().session() as session:
            row = session.get(EmbeddingRow, path)
            return _to_record(row) if row is not None else None

    def get_all(self) -> list[EmbeddingRecord]:
        """Every stored record, in insertion order."""
        with self._require_db().session() as session:
            rows = session.exec(select(EmbeddingRow).order_by(text("rowid"))).all()
            return [_to_record(row) for row in rows]

    def load_corpus(self, prefix: str | None = None) -> Corpus:
        """Snapshot of ``(paths, matrix)`` for ranking.

        Args:
            prefix: Only include paths starting with this string.

        Rows whose dimension differs from the most common one (left over
        from a different model) are skipped.
        """
        sql = "SELECT path, embedding, dim FROM embeddings"
        params: dict[str, Any] = {}
        if prefix:
            sql += " WHERE substr(path, 1, :n) = :prefix"
            params = {"n": len(prefix), "prefix": prefix}
        sql += " ORDER BY rowid"

        with self._require_db().transaction() as conn:
            rows = conn.execute(text(sql), params).all()

        if not rows:
            return Corpus(paths=[], matrix=np.empty((0, 0), dtype=np.float32))

        dim = Counter(row[2] for row in rows).most_common(1)[0][0]
        kept = [row for row in rows if row[2] == dim]
        if len(kept) != len(rows):
            log.warning("store.mixed_dimensions", dim=dim, skipped=len(rows) - len(kept))

        matrix = np.vstack([_decode(row[1]) for row in kept])
        return Corpus(paths=[row[0] for row in kept], matrix=matrix)

    def count(self) -> int:
        with self._require_db().session() as session:
            return int(session.exec(select(func.count()).select_from(EmbeddingRow)).one())

    def paths(self) -> list[str]:
        with self._require_db().session() as session:
            return list(session.exec(select(EmbeddingRow.path).order_by(text("rowid"))).all())

    def missing(self, paths: Iterable[str]) -> list[str]:
        """Return the subset of *paths* with no stored embedding, order preserved."""
        stored = set(self.paths())
        return [p for p in paths if p not in stored]

    def stats(self) -> StoreStats:
        with self._require_db().session() as session:
            rows = session.exec(
                select(EmbeddingRow.model, func.count()).group_by(col(EmbeddingRow.model))
            ).all()
        models = {model: int(n) for model, n in rows}
        return StoreStats(count=sum(models.values()), models=models, path=str(self.db_path))
