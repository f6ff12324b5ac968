"""Model lifecycle: provisioning the compute context and tracking its status.

States::

    idle ──initialize──▶ loading ──▶ ready
                            │
                            └──────▶ error ──initialize/retry──▶ loading
    any ──disable/close──▶ disabled ──enable──▶ idle

Load failures never raise; they land in ``error`` with a message. Only one
init request is ever in flight: concurrent ``initialize()`` callers await
the same load.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np
import structlog

from pathsense.compute.bridge import ComputeBridge
from pathsense.compute.context import ContextFactory
from pathsense.compute.messages import StatusPush, StatusReply
from pathsense.config.models import TimeoutsConfig
from pathsense.core.errors import (
    BridgeNotInitializedError,
    CallTimeoutError,
    PathSenseError,
)

log = structlog.get_logger()


class LifecycleStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    DISABLED = "disabled"


@dataclass(frozen=True, slots=True)
class Progress:
    current: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return {"current": self.current, "total": self.total}


@dataclass(frozen=True, slots=True)
class LifecycleState:
    """Point-in-time view handed to listeners."""

    status: LifecycleStatus
    message: str
    progress: Progress | None


Listener = Callable[[LifecycleState], None]

DISABLED_MESSAGE = "AI features are disabled"
INIT_TIMEOUT_MESSAGE = (
    "Model initialization timed out after {timeout:g}s. "
    "The model download may be slow; try again."
)


class ModelLifecycle:
    """Owns the compute bridge and the model status."""

    def __init__(
        self,
        context_factory: ContextFactory,
        *,
        timeouts: TimeoutsConfig | None = None,
        model_name: str | None = None,
        enabled: bool = True,
    ) -> None:
        self._context_factory = context_factory
        self._timeouts = timeouts or TimeoutsConfig()
        self._model_name = model_name
        self._bridge: ComputeBridge | None = None
        self._load_task: asyncio.Task[None] | None = None
        self._listeners: list[Listener] = []
        self._loaded_model: str | None = None
        # Bumped on teardown so a superseded load cannot touch the status
        self._epoch = 0

        self._status = LifecycleStatus.IDLE if enabled else LifecycleStatus.DISABLED
        self._message = "" if enabled else DISABLED_MESSAGE
        self._progress: Progress | None = None

    # --- Accessors ---

    @property
    def status(self) -> LifecycleStatus:
        return self._status

    @property
    def status_message(self) -> str:
        return self._message

    @property
    def progress(self) -> Progress | None:
        return self._progress

    @property
    def is_ready(self) -> bool:
        return self._status is LifecycleStatus.READY

    @property
    def enabled(self) -> bool:
        return self._status is not LifecycleStatus.DISABLED

    @property
    def loaded_model(self) -> str | None:
        """Short model name reported by the compute context once ready."""
        return self._loaded_model

    @property
    def timeouts(self) -> TimeoutsConfig:
        return self._timeouts

    def snapshot(self) -> LifecycleState:
        return LifecycleState(self._status, self._message, self._progress)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Transitions ---

    async def initialize(self) -> None:
        """Load the model. No-op while ready or disabled; joins an in-flight load."""
        if self._status in (LifecycleStatus.READY, LifecycleStatus.DISABLED):
            return
        if self._load_task is None or self._load_task.done():
            self._load_task = asyncio.create_task(self._load(), name="pathsense-model-load")
        # Shield so one cancelled caller doesn't abort the shared load
        await asyncio.shield(self._load_task)

    async def retry(self) -> None:
        """Tear down the compute context and load from scratch."""
        if self._status is LifecycleStatus.DISABLED:
            return
        self._teardown()
        self._set(LifecycleStatus.IDLE, "", None)
        await self.initialize()

    def disable(self) -> None:
        """Turn the feature off. Rejects every outstanding call before returning."""
        self._teardown()
        self._set(LifecycleStatus.DISABLED, DISABLED_MESSAGE, None)

    def enable(self) -> None:
        """Leave ``disabled``; the next ``initialize()`` provisions a fresh context."""
        if self._status is LifecycleStatus.DISABLED:
            self._set(LifecycleStatus.IDLE, "", None)

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.enable()
        else:
            self.disable()

    def close(self) -> None:
        """Shut down for good (same teardown as ``disable``)."""
        self._teardown()
        self._set(LifecycleStatus.DISABLED, "Shut down", None)

    # --- Calls ---

    def require_bridge(self, kind: str) -> ComputeBridge:
        bridge = self._bridge
        if bridge is None or not bridge.is_open:
            raise BridgeNotInitializedError.for_call(kind)
        return bridge

    async def embed(self, texts: Sequence[str], timeout: float | None = None) -> list[list[float]]:
        bridge = self.require_bridge("embed")
        return await bridge.embed(texts, timeout or self._timeouts.embed_sec)

    async def rank(
        self,
        query: str,
        paths: Sequence[str],
        matrix: np.ndarray,
        top_k: int,
        timeout: float | None = None,
    ) -> list[tuple[str, float]]:
        bridge = self.require_bridge("rank")
        return await bridge.rank(query, paths, matrix, top_k, timeout or self._timeouts.rank_sec)

    async def query_status(self) -> StatusReply:
        bridge = self.require_bridge("status")
        return await bridge.query_status(self._timeouts.status_sec)

    # --- Internals ---

    def _set(
        self,
        status: LifecycleStatus,
        message: str,
        progress: Progress | None,
    ) -> None:
        previous = self._status
        self._status = status
        self._message = message
        self._progress = progress
        if previous is not status:
            log.info("lifecycle.transition", previous=previous.value, status=status.value, message=message)
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                log.exception("lifecycle.listener_failed")

    def _teardown(self) -> None:
        bridge, self._bridge = self._bridge, None
        self._loaded_model = None
        self._load_task = None
        self._epoch += 1
        if bridge is not None:
            bridge.close()

    def _ensure_bridge(self) -> ComputeBridge:
        if self._bridge is None or not self._bridge.is_open:
            bridge = ComputeBridge(self._context_factory, on_status=self._on_push)
            bridge.open()
            self._bridge = bridge
        return self._bridge

    async def _load(self) -> None:
        epoch = self._epoch
        self._set(LifecycleStatus.LOADING, "Loading model...", None)
        try:
            bridge = self._ensure_bridge()
            reply = await bridge.init(self._timeouts.init_sec, self._model_name)
        except CallTimeoutError:
            self._fail(epoch, INIT_TIMEOUT_MESSAGE.format(timeout=self._timeouts.init_sec))
            return
        except PathSenseError as e:
            self._fail(epoch, e.message)
            return
        except Exception as e:
            # Provisioning errors (spawn failures) must not escape into callers
            log.exception("lifecycle.provision_failed")
            self._fail(epoch, f"Failed to start compute context: {e}")
            return

        if epoch != self._epoch or self._status is not LifecycleStatus.LOADING:
            return
        if not reply.success:
            self._fail(epoch, "Model initialization failed")
            return
        self._loaded_model = reply.model
        self._set(LifecycleStatus.READY, f"Model ready: {reply.model}", None)

    def _fail(self, epoch: int, message: str) -> None:
        # A disable/close/retry that raced the load wins
        if epoch != self._epoch or self._status is not LifecycleStatus.LOADING:
            return
        self._set(LifecycleStatus.ERROR, message, None)

    def _on_push(self, push: StatusPush) -> None:
        if self._status is LifecycleStatus.DISABLED:
            return
        match push.status:
            case "initialized":
                log.debug("lifecycle.context_initialized")
            case "loading":
                if self._status is LifecycleStatus.LOADING:
                    progress = Progress(*push.progress) if push.progress else self._progress
                    self._set(LifecycleStatus.LOADING, push.message or self._message, progress)
            case "ready":
                log.debug("lifecycle.context_ready", message=push.message)
            case "error":
                self._set(LifecycleStatus.ERROR, push.message or "Compute context error", None)
