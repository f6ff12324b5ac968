"""Top-level facade wiring config, store, lifecycle, indexing and search."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from functools import partial
from pathlib import Path
from types import TracebackType

import structlog

from pathsense.compute.context import ContextFactory, ProcessComputeContext
from pathsense.config.loader import get_store_path, load_config
from pathsense.config.models import PathSenseConfig
from pathsense.indexing.pipeline import FileEntry, IndexingPipeline, IndexingReport
from pathsense.lifecycle import LifecycleState, LifecycleStatus, ModelLifecycle, Progress
from pathsense.search.query import SearchService
from pathsense.search.vectors import SearchResult
from pathsense.store.embeddings import EmbeddingStore

log = structlog.get_logger()


class SemanticSearch:
    """Semantic file search over names and paths.

    Usage::

        async with SemanticSearch.from_config() as engine:
            await engine.initialize()
            await engine.index_files([{"path": "/docs/budget.xlsx", "name": "budget.xlsx"}])
            results = await engine.search("spreadsheet about money")

    When the model is disabled every operation returns an empty result
    instead of raising.
    """

    def __init__(
        self,
        config: PathSenseConfig,
        store: EmbeddingStore,
        *,
        context_factory: ContextFactory | None = None,
    ) -> None:
        self.config = config
        self.store = store
        if context_factory is None:
            context_factory = partial(
                ProcessComputeContext,
                config.model,
                shutdown_timeout=config.timeouts.shutdown_sec,
                log_level=config.logging.level,
            )

        self.lifecycle = ModelLifecycle(
            context_factory,
            timeouts=config.timeouts,
            model_name=config.model.name,
            enabled=config.model.enabled,
        )
        self._listeners: list[Callable[[LifecycleState], None]] = []
        self.pipeline = IndexingPipeline(
            self.lifecycle,
            store,
            batch_size=config.indexing.batch_size,
            embed_timeout=config.timeouts.embed_sec,
            model_name=config.model.name.rsplit("/", 1)[-1],
            on_progress=self._forward_progress,
        )
        self.searcher = SearchService(
            self.lifecycle,
            store,
            top_k=config.search.top_k,
            rank_timeout=config.timeouts.rank_sec,
            rank_locally=config.search.rank_locally,
        )

    @classmethod
    def from_config(
        cls,
        data_dir: Path | None = None,
        config: PathSenseConfig | None = None,
        *,
        context_factory: ContextFactory | None = None,
    ) -> SemanticSearch:
        """Build an engine from layered config; the store is opened by ``open()``."""
        config = config or load_config(data_dir)
        store = EmbeddingStore(get_store_path(config, data_dir))
        return cls(config, store, context_factory=context_factory)

    # --- Lifecycle ---

    def open(self) -> SemanticSearch:
        self.store.open()
        return self

    def close(self) -> None:
        self.lifecycle.close()
        self.store.close()

    async def __aenter__(self) -> SemanticSearch:
        return self.open()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def status(self) -> LifecycleStatus:
        return self.lifecycle.status

    @property
    def status_message(self) -> str:
        return self.lifecycle.status_message

    @property
    def progress(self) -> Progress | None:
        """Indexing progress while a job runs, otherwise model-load progress."""
        return self.pipeline.progress or self.lifecycle.progress

    @property
    def is_ready(self) -> bool:
        return self.lifecycle.is_ready

    def subscribe(self, listener: Callable[[LifecycleState], None]) -> Callable[[], None]:
        """Observe lifecycle transitions and indexing progress."""
        self._listeners.append(listener)
        unsubscribe_lifecycle = self.lifecycle.subscribe(listener)

        def unsubscribe() -> None:
            unsubscribe_lifecycle()
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def initialize(self) -> None:
        await self.lifecycle.initialize()
        if self.lifecycle.loaded_model:
            self.pipeline.model_name = self.lifecycle.loaded_model

    async def retry(self) -> None:
        await self.lifecycle.retry()

    def set_enabled(self, enabled: bool) -> None:
        self.lifecycle.set_enabled(enabled)

    # --- Operations ---

    async def index_files(
        self,
        files: Iterable[FileEntry | Mapping[str, str]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> IndexingReport:
        if not self.lifecycle.enabled:
            return IndexingReport()
        return await self.pipeline.index_files(files, cancel=cancel)

    async def index_missing(
        self,
        files: Iterable[FileEntry | Mapping[str, str]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> IndexingReport:
        if not self.lifecycle.enabled:
            return IndexingReport()
        return await self.pipeline.index_missing(files, cancel=cancel)

    async def generate_embeddings(self, texts: Sequence[str]) -> list[list[float]]:
        if not self.lifecycle.enabled:
            return []
        return await self.pipeline.generate_embeddings(texts)

    async def search(
        self,
        query: str,
        *,
        scope: str | None = None,
        top_k: int | None = None,
        supersede: bool = False,
    ) -> list[SearchResult]:
        if not self.lifecycle.enabled:
            return []
        return await self.searcher.search(query, scope=scope, top_k=top_k, supersede=supersede)

    def _forward_progress(self, progress: Progress | None) -> None:
        if not self._listeners:
            return
        state = LifecycleState(self.lifecycle.status, self.lifecycle.status_message, progress)
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                log.exception("service.listener_failed")
