"""Batch indexing pipeline.

Turns ``FileEntry`` items into stored embeddings:

    entries ──batch(10)──▶ "{name} {path}" texts ──embed──▶ EmbeddingRecord ──▶ store

Batches run strictly one after another. A failed batch is logged and
skipped; the rest of the job continues. Progress is published after every
batch and cleared when the job ends, however it ends.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from pathsense.core.errors import InternalError, PathSenseError
from pathsense.lifecycle import ModelLifecycle, Progress
from pathsense.store.embeddings import EmbeddingRecord, EmbeddingStore, now_ms

log = structlog.get_logger()

ProgressCallback = Callable[[Progress | None], None]


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A file to index. Only the name and path are embedded, never contents."""

    path: str
    name: str

    @classmethod
    def coerce(cls, item: FileEntry | Mapping[str, str]) -> FileEntry:
        if isinstance(item, FileEntry):
            return item
        return cls(path=item["path"], name=item["name"])

    def embedding_text(self) -> str:
        return f"{self.name} {self.path}"


@dataclass(slots=True)
class IndexingReport:
    """Outcome of one ``index_files`` call."""

    total: int = 0
    indexed: int = 0
    failed: int = 0
    failed_batches: list[int] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "indexed": self.indexed,
            "failed": self.failed,
            "failed_batches": list(self.failed_batches),
            "cancelled": self.cancelled,
        }


class Embedder(Protocol):
    """Anything that can turn texts into vectors (``ModelLifecycle`` in production)."""

    async def embed(
        self, texts: Sequence[str], timeout: float | None = None
    ) -> list[list[float]]: ...


def batched(entries: Sequence[FileEntry], size: int) -> list[Sequence[FileEntry]]:
    return [entries[i : i + size] for i in range(0, len(entries), size)]


class IndexingPipeline:
    """Embeds files in fixed-size batches and writes them to the store."""

    def __init__(
        self,
        embedder: Embedder | ModelLifecycle,
        store: EmbeddingStore,
        *,
        batch_size: int = 10,
        embed_timeout: float | None = None,
        model_name: str = "all-MiniLM-L6-v2",
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._embedder = embedder
        self._store = store
        self._batch_size = batch_size
        self._embed_timeout = embed_timeout
        self._model_name = model_name
        self._on_progress = on_progress
        self._progress: Progress | None = None

    @property
    def progress(self) -> Progress | None:
        return self._progress

    @property
    def model_name(self) -> str:
        return self._model_name

    @model_name.setter
    def model_name(self, value: str) -> None:
        self._model_name = value

    async def index_files(
        self,
        files: Iterable[FileEntry | Mapping[str, str]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> IndexingReport:
        """Embed and store every entry in *files*.

        Never raises for batch failures; see the returned report. Task
        cancellation propagates after progress is cleared.
        """
        entries = [FileEntry.coerce(f) for f in files]
        report = IndexingReport(total=len(entries))
        if not entries:
            return report

        log.info("indexing.started", total=report.total, batch_size=self._batch_size)
        done = 0
        try:
            for number, batch in enumerate(batched(entries, self._batch_size)):
                if cancel is not None and cancel.is_set():
                    report.cancelled = True
                    log.info("indexing.cancelled", done=done, total=report.total)
                    break

                try:
                    report.indexed += await self._index_batch(batch)
                except PathSenseError as e:
                    report.failed += len(batch)
                    report.failed_batches.append(number)
                    log.warning(
                        "indexing.batch_failed",
                        batch=number,
                        size=len(batch),
                        error=e.error_name,
                        message=e.message,
                    )

                done = min(done + len(batch), report.total)
                self._publish(Progress(current=done, total=report.total))
        finally:
            self._publish(None)

        log.info(
            "indexing.finished",
            indexed=report.indexed,
            failed=report.failed,
            cancelled=report.cancelled,
        )
        return report

    async def index_missing(
        self,
        files: Iterable[FileEntry | Mapping[str, str]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> IndexingReport:
        """Index only the entries that have no stored embedding yet."""
        entries = [FileEntry.coerce(f) for f in files]
        missing = set(await asyncio.to_thread(self._store.missing, [e.path for e in entries]))
        todo = [e for e in entries if e.path in missing]
        log.debug("indexing.missing", requested=len(entries), missing=len(todo))
        return await self.index_files(todo, cancel=cancel)

    async def generate_embeddings(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed arbitrary texts without storing them."""
        if not texts:
            return []
        vectors = await self._embedder.embed(list(texts), self._embed_timeout)
        _check_count(len(texts), vectors)
        return vectors

    async def _index_batch(self, batch: Sequence[FileEntry]) -> int:
        texts = [entry.embedding_text() for entry in batch]
        vectors = await self._embedder.embed(texts, self._embed_timeout)
        _check_count(len(batch), vectors)

        created_at = now_ms()
        records = [
            EmbeddingRecord(
                path=entry.path,
                embedding=vector,
                model=self._model_name,
                created_at=created_at,
            )
            for entry, vector in zip(batch, vectors, strict=True)
        ]
        return await asyncio.to_thread(self._store.put_many, records)

    def _publish(self, progress: Progress | None) -> None:
        self._progress = progress
        if self._on_progress is not None:
            self._on_progress(progress)


def _check_count(expected: int, vectors: list[list[float]]) -> None:
    if len(vectors) != expected:
        raise InternalError.unexpected(
            f"embedding count mismatch: sent {expected}, got {len(vectors)}",
            expected=expected,
            received=len(vectors),
        )
