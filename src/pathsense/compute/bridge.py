"""Request/response bridge to the compute context.

Every call gets a fresh correlation id (``call-1``, ``call-2``, ...) and a
pending entry holding its future and its timeout timer. Exactly one of
reply, timeout, or teardown settles the future; whichever comes later finds
the entry gone and is dropped.

Messages from the context may arrive on any thread. They are marshalled
onto the event loop that opened the bridge before touching pending state.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

import numpy as np
import structlog

from pathsense.compute.context import ComputeContext, ContextFactory
from pathsense.compute.messages import (
    ContextExited,
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
    Request,
    StatusPush,
    StatusReply,
    StatusRequest,
)
from pathsense.config.constants import CALL_ID_PREFIX
from pathsense.core.errors import (
    BridgeClosedError,
    BridgeNotInitializedError,
    CallTimeoutError,
    InternalError,
    RemoteCallError,
)
from pathsense.core.logging import clear_call_id, set_call_id

log = structlog.get_logger()

StatusHandler = Callable[[StatusPush], None]

_R = TypeVar("_R")


@dataclass(slots=True)
class PendingCall:
    future: asyncio.Future[ReplyBody]
    timer: asyncio.TimerHandle
    kind: str
    timeout: float


class ComputeBridge:
    """Correlates requests to the compute context with their replies."""

    def __init__(
        self,
        context_factory: ContextFactory,
        *,
        on_status: StatusHandler | None = None,
    ) -> None:
        self._factory = context_factory
        self._on_status = on_status
        self._context: ComputeContext | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: dict[str, PendingCall] = {}
        self._ids = itertools.count(1)
        # Bumped on every open/close so messages from a dead context are ignored
        self._generation = 0

    @property
    def is_open(self) -> bool:
        return self._context is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def open(self) -> None:
        """Start a compute context bound to the running event loop."""
        if self._context is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation
        context = self._factory()
        context.start(lambda message: self._receive(generation, message))
        self._context = context
        log.debug("bridge.opened", generation=generation)

    def close(self) -> None:
        """Tear down the context and reject every outstanding call.

        Synchronous: when this returns no pending call remains and no later
        message from the old context will be delivered.
        """
        context = self._context
        self._context = None
        self._generation += 1
        self._reject_all(lambda call_id, pending: BridgeClosedError.for_call(call_id, pending.kind))
        if context is not None:
            context.terminate()
            log.debug("bridge.closed")

    # --- Calls ---

    async def send(self, request: Request, timeout: float) -> ReplyBody:
        """Send *request* and wait for its reply body.

        Raises:
            BridgeNotInitializedError: No live context.
            CallTimeoutError: No reply within *timeout* seconds.
            RemoteCallError: The context answered with an error.
            BridgeClosedError: The bridge was closed while waiting.
        """
        context = self._context
        if context is None:
            raise BridgeNotInitializedError.for_call(request.kind)

        loop = asyncio.get_running_loop()
        call_id = f"{CALL_ID_PREFIX}-{next(self._ids)}"
        future: asyncio.Future[ReplyBody] = loop.create_future()
        timer = loop.call_later(timeout, self._on_timeout, call_id)
        self._pending[call_id] = PendingCall(future, timer, request.kind, timeout)

        set_call_id(call_id)
        log.debug("bridge.send", kind=request.kind, timeout=timeout)
        try:
            try:
                context.post(Envelope(id=call_id, request=request))
            except (OSError, ValueError, RuntimeError) as e:
                raise BridgeClosedError.for_call(call_id, request.kind) from e
            return await future
        finally:
            # Covers caller cancellation and post failures
            pending = self._pending.pop(call_id, None)
            if pending is not None:
                pending.timer.cancel()
            clear_call_id()

    async def init(self, timeout: float, model_name: str | None = None) -> InitReply:
        body = await self.send(InitRequest(model_name=model_name), timeout)
        return _expect(body, InitReply)

    async def embed(self, texts: Sequence[str], timeout: float) -> list[list[float]]:
        body = await self.send(EmbedRequest(texts=tuple(texts)), timeout)
        return _expect(body, EmbedReply).embeddings

    async def rank(
        self,
        query: str,
        paths: Sequence[str],
        matrix: np.ndarray,
        top_k: int,
        timeout: float,
    ) -> list[tuple[str, float]]:
        request = RankRequest(query=query, paths=tuple(paths), matrix=matrix, top_k=top_k)
        body = await self.send(request, timeout)
        return _expect(body, RankReply).results

    async def query_status(self, timeout: float) -> StatusReply:
        body = await self.send(StatusRequest(), timeout)
        return _expect(body, StatusReply)

    # --- Incoming ---

    def _receive(self, generation: int, message: Incoming) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._dispatch, generation, message)
        except RuntimeError:
            # Loop shut down between the check and the call
            pass

    def _dispatch(self, generation: int, message: Incoming) -> None:
        if generation != self._generation:
            log.debug("bridge.stale_message", type=type(message).__name__)
            return
        match message:
            case Reply():
                self._on_reply(message)
            case StatusPush():
                if self._on_status is not None:
                    self._on_status(message)
            case ContextExited(exitcode=exitcode):
                self._on_exited(exitcode)
            case _:
                log.warning("bridge.unknown_message", type=type(message).__name__)

    def _on_reply(self, reply: Reply) -> None:
        pending = self._pending.pop(reply.id, None)
        if pending is None:
            log.debug("bridge.late_reply", call_id=reply.id)
            return
        pending.timer.cancel()
        if pending.future.done():
            return
        if isinstance(reply.body, ErrorReply):
            pending.future.set_exception(
                RemoteCallError.reported(reply.id, pending.kind, reply.body.message)
            )
        else:
            pending.future.set_result(reply.body)

    def _on_timeout(self, call_id: str) -> None:
        pending = self._pending.pop(call_id, None)
        if pending is None or pending.future.done():
            return
        log.warning("bridge.call_timeout", call_id=call_id, kind=pending.kind, timeout=pending.timeout)
        pending.future.set_exception(CallTimeoutError.after(call_id, pending.kind, pending.timeout))

    def _on_exited(self, exitcode: int | None) -> None:
        message = f"Compute context exited unexpectedly (exit code {exitcode})"
        log.error("bridge.context_exited", exitcode=exitcode, pending=len(self._pending))
        context = self._context
        self._context = None
        self._generation += 1
        self._reject_all(
            lambda call_id, pending: RemoteCallError.reported(call_id, pending.kind, message)
        )
        if context is not None:
            context.terminate()
        if self._on_status is not None:
            self._on_status(StatusPush(status="error", message=message))

    def _reject_all(self, make_error: Callable[[str, PendingCall], Exception]) -> None:
        pending_calls, self._pending = self._pending, {}
        for call_id, pending in pending_calls.items():
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_exception(make_error(call_id, pending))


def _expect(body: ReplyBody, reply_type: type[_R]) -> _R:
    if not isinstance(body, reply_type):
        raise InternalError.unexpected(
            f"expected {reply_type.__name__}, got {type(body).__name__}"
        )
    return body
