"""Isolated compute contexts.

A compute context hosts the embedding model outside the host's event loop.
The host only sees the ``ComputeContext`` protocol: start it with a message
callback, post envelopes, terminate it. ``ProcessComputeContext`` is the
production implementation (a spawned process plus a reader thread); tests
substitute an in-memory fake.
"""

from __future__ import annotations

import multiprocessing as mp
import queue
import threading
from collections.abc import Callable
from typing import Any, Protocol

import structlog

from pathsense.compute.messages import ContextExited, Envelope, Incoming
from pathsense.compute.worker import run_worker
from pathsense.config.constants import READER_POLL_SEC
from pathsense.config.models import ModelConfig

log = structlog.get_logger()

MessageHandler = Callable[[Incoming], None]


class ComputeContext(Protocol):
    """What the bridge needs from an isolated compute context."""

    def start(self, on_message: MessageHandler) -> None:
        """Start the context; *on_message* receives every incoming message."""
        ...

    def post(self, envelope: Envelope) -> None:
        """Deliver one request envelope. Must not block."""
        ...

    def terminate(self) -> None:
        """Stop the context. Synchronous; no further messages are delivered."""
        ...


ContextFactory = Callable[[], ComputeContext]


class ProcessComputeContext:
    """Compute context backed by a spawned ``multiprocessing.Process``.

    Messages from the process are read on a daemon thread and handed to
    ``on_message`` from that thread; the bridge marshals them onto its
    event loop. If the process dies without being asked to, a
    ``ContextExited`` message is delivered once.
    """

    def __init__(
        self,
        model: ModelConfig,
        *,
        shutdown_timeout: float = 5.0,
        log_level: str = "WARNING",
    ) -> None:
        self._model = model
        self._shutdown_timeout = shutdown_timeout
        self._log_level = log_level
        self._mp = mp.get_context("spawn")
        self._inbox: Any = None
        self._outbox: Any = None
        self._process: Any = None
        self._reader: threading.Thread | None = None
        self._stopping = threading.Event()

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def start(self, on_message: MessageHandler) -> None:
        if self._process is not None:
            return
        self._inbox = self._mp.Queue()
        self._outbox = self._mp.Queue()
        self._process = self._mp.Process(
            target=run_worker,
            args=(
                self._inbox,
                self._outbox,
                self._model.name,
                self._model.cache_dir,
                self._model.threads,
                self._log_level,
            ),
            name="pathsense-compute",
            daemon=True,
        )
        self._process.start()
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(self._process, on_message),
            name="pathsense-compute-reader",
            daemon=True,
        )
        self._reader.start()
        log.debug("compute.context_started", pid=self._process.pid)

    def post(self, envelope: Envelope) -> None:
        if self._inbox is None:
            raise RuntimeError("Compute context not started")
        self._inbox.put(envelope)

    def terminate(self) -> None:
        if self._process is None:
            return
        self._stopping.set()
        process = self._process
        try:
            self._inbox.put(None)
        except (OSError, ValueError):
            pass
        process.join(timeout=self._shutdown_timeout)
        if process.is_alive():
            log.warning("compute.context_kill", pid=process.pid)
            process.kill()
            process.join(timeout=1.0)

        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(timeout=READER_POLL_SEC * 5)
        for q in (self._inbox, self._outbox):
            q.close()
            q.cancel_join_thread()

        log.debug("compute.context_stopped", pid=process.pid, exitcode=process.exitcode)
        self._process = None
        self._reader = None

    def _read_loop(self, process: Any, on_message: MessageHandler) -> None:
        while not self._stopping.is_set():
            try:
                message = self._outbox.get(timeout=READER_POLL_SEC)
            except queue.Empty:
                if not process.is_alive():
                    if self._stopping.is_set():
                        return
                    log.error("compute.context_exited", exitcode=process.exitcode)
                    on_message(ContextExited(exitcode=process.exitcode))
                    return
                continue
            except (EOFError, OSError, ValueError):
                if not self._stopping.is_set():
                    on_message(ContextExited(exitcode=process.exitcode))
                return
            if self._stopping.is_set():
                return
            on_message(message)
