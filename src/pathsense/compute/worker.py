"""Compute context main loop.

Runs in its own process. Reads ``Envelope`` messages from the inbox, handles
them one at a time, and writes ``Reply``/``StatusPush`` messages to the
outbox. A ``None`` in the inbox stops the loop.

Model inference is single-flight: a request that arrives while the model is
loading simply waits in the inbox.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import numpy as np
import structlog

from pathsense.compute.messages import (
    EmbedReply,
    EmbedRequest,
    Envelope,
    ErrorReply,
    Incoming,
    InitReply,
    InitRequest,
    RankReply,
    RankRequest,
    Reply,
    ReplyBody,
    StatusPush,
    StatusReply,
    StatusRequest,
)
from pathsense.compute.runtime import DEFAULT_MODEL, EmbeddingRuntime
from pathsense.search.vectors import top_k

log = structlog.get_logger()

Post = Callable[[Incoming], None]


class ComputeWorker:
    """Dispatches requests to an ``EmbeddingRuntime``."""

    def __init__(self, runtime: EmbeddingRuntime, post: Post) -> None:
        self.runtime = runtime
        self._post = post
        self._loading = False

    def announce(self) -> None:
        """Signal that the context is ready to receive requests."""
        self._post(StatusPush(status="initialized"))

    def handle(self, envelope: Envelope) -> None:
        """Handle one envelope and post exactly one reply for it."""
        request = envelope.request
        log.debug("worker.request", id=envelope.id, kind=request.kind)
        try:
            body = self._dispatch(request)
        except Exception as e:  # noqa: BLE001
            log.exception("worker.request_failed", id=envelope.id, kind=request.kind)
            body = ErrorReply(message=str(e) or type(e).__name__)
        self._post(Reply(id=envelope.id, body=body))

    def _dispatch(self, request: Any) -> ReplyBody:
        match request:
            case InitRequest():
                return self._init(request)
            case EmbedRequest(texts=texts):
                vectors = self.runtime.embed(texts)
                return EmbedReply(embeddings=vectors.tolist())
            case RankRequest():
                return self._rank(request)
            case StatusRequest():
                return StatusReply(
                    initialized=self.runtime.is_loaded,
                    loading=self._loading,
                    model=self.runtime.model_name,
                )
            case _:
                return ErrorReply(message=f"Unknown message type: {type(request).__name__}")

    def _init(self, request: InitRequest) -> InitReply:
        if request.model_name and not self.runtime.is_loaded:
            self.runtime.model_name = request.model_name
        if self.runtime.is_loaded:
            return InitReply(success=True, model=self.runtime.short_name)

        self._loading = True
        try:
            self.runtime.load(
                on_status=lambda message, progress: self._post(
                    StatusPush(status="loading", message=message, progress=progress)
                )
            )
        except Exception as e:
            self._post(
                StatusPush(
                    status="error",
                    message=f"Failed to load model: {e or type(e).__name__}",
                )
            )
            raise
        finally:
            self._loading = False

        self._post(StatusPush(status="ready", message="Model loaded successfully"))
        return InitReply(success=True, model=self.runtime.short_name)

    def _rank(self, request: RankRequest) -> RankReply:
        if len(request.paths) != len(request.matrix):
            raise ValueError(
                f"Corpus mismatch: {len(request.paths)} paths, {len(request.matrix)} vectors"
            )
        if not request.paths:
            return RankReply(results=[])
        query_vec = self.runtime.embed_one(request.query)
        ranked = top_k(query_vec, np.asarray(request.matrix, dtype=np.float32), request.top_k)
        return RankReply(results=[(request.paths[i], score) for i, score in ranked])


def run_worker(
    inbox: Any,
    outbox: Any,
    model_name: str = DEFAULT_MODEL,
    cache_dir: str | None = None,
    threads: int | None = None,
    log_level: str = "WARNING",
) -> None:
    """Process entry point: serve envelopes until a ``None`` sentinel arrives."""
    from pathsense.core.logging import configure_logging

    configure_logging(level=log_level)

    runtime = EmbeddingRuntime(model_name, cache_dir=cache_dir, threads=threads)
    worker = ComputeWorker(runtime, outbox.put)
    worker.announce()
    log.debug("worker.started", model=model_name)

    while True:
        envelope = inbox.get()
        if envelope is None:
            break
        worker.handle(envelope)

    log.debug("worker.stopped")
