"""Query path: rank stored paths against a free-text query."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol

import numpy as np
import structlog

from pathsense.core.errors import InternalError, SearchSupersededError
from pathsense.search.vectors import SearchResult, rank_paths
from pathsense.store.embeddings import EmbeddingStore

log = structlog.get_logger()


class Ranker(Protocol):
    """Compute-side operations the query path needs (``ModelLifecycle`` in production)."""

    async def embed(
        self, texts: Sequence[str], timeout: float | None = None
    ) -> list[list[float]]: ...

    async def rank(
        self,
        query: str,
        paths: Sequence[str],
        matrix: np.ndarray,
        top_k: int,
        timeout: float | None = None,
    ) -> list[tuple[str, float]]: ...


class SearchService:
    """Answers queries from the current store contents.

    Each call reads its own snapshot of the store, so searches issued while
    indexing is running see the records committed so far and never a
    partial one.
    """

    def __init__(
        self,
        ranker: Ranker,
        store: EmbeddingStore,
        *,
        top_k: int = 20,
        rank_timeout: float | None = None,
        rank_locally: bool = False,
    ) -> None:
        self._ranker = ranker
        self._store = store
        self._top_k = top_k
        self._rank_timeout = rank_timeout
        self._rank_locally = rank_locally
        self._latest: asyncio.Task[list[SearchResult]] | None = None

    async def search(
        self,
        query: str,
        *,
        scope: str | None = None,
        top_k: int | None = None,
        supersede: bool = False,
    ) -> list[SearchResult]:
        """Return up to ``top_k`` paths ranked by similarity, best first.

        Args:
            query: Free text. Blank queries return no results.
            scope: Only consider paths starting with this prefix.
            top_k: Override the configured result count.
            supersede: Cancel the previous in-flight search started with
                ``supersede=True``; it raises ``SearchSupersededError``.
        """
        if not query or not query.strip():
            return []
        k = self._top_k if top_k is None else top_k
        if k <= 0:
            return []

        if not supersede:
            return await self._run(query, scope, k)

        previous = self._latest
        if previous is not None and not previous.done():
            previous.cancel()
        task = asyncio.create_task(self._run(query, scope, k))
        self._latest = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            # Our own caller was cancelled: propagate, and stop the work
            if current is not None and current.cancelling():
                task.cancel()
                raise
            log.debug("search.superseded", query=query)
            raise SearchSupersededError.for_query(query) from None
        finally:
            if self._latest is task and task.done():
                self._latest = None

    async def _run(self, query: str, scope: str | None, k: int) -> list[SearchResult]:
        corpus = await asyncio.to_thread(self._store.load_corpus, scope)
        if len(corpus) == 0:
            log.debug("search.empty_corpus", scope=scope)
            return []

        if self._rank_locally:
            vectors = await self._ranker.embed([query], self._rank_timeout)
            if len(vectors) != 1:
                raise InternalError.unexpected("query embedding missing")
            results = rank_paths(vectors[0], corpus.paths, corpus.matrix, k)
        else:
            ranked = await self._ranker.rank(
                query, corpus.paths, corpus.matrix, k, self._rank_timeout
            )
            results = [SearchResult(path=path, score=float(score)) for path, score in ranked]
            results.sort(key=lambda r: r.score, reverse=True)

        log.debug("search.done", results=len(results), corpus=len(corpus), scope=scope)
        return results[:k]
