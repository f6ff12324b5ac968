"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides an in-memory compute context so no test spawns a process or loads
a real model.
"""

import re
import sys
import zlib
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local pathsense package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from pathsense.compute.messages import (  # noqa: E402
    ContextExited,
    EmbedReply,
    EmbedRequest,
    Envelope,
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
from pathsense.search.vectors import top_k  # noqa: E402

FAKE_DIM = 32
FAKE_MODEL = "fake-model"

Responder = Callable[[Envelope], ReplyBody | None]


def fake_embed(text: str) -> list[float]:
    """Deterministic bag-of-words vector: texts sharing words point the same way."""
    vec = np.zeros(FAKE_DIM, dtype=np.float32)
    for token in re.findall(r"[a-z0-9]+", text.lower()):
        vec[zlib.crc32(token.encode()) % FAKE_DIM] += 1.0
    norm = np.linalg.norm(vec)
    if norm > 0:
        vec /= norm
    return vec.tolist()


def default_responder(envelope: Envelope) -> ReplyBody | None:
    """Answer every request the way a healthy compute context would."""
    request = envelope.request
    match request:
        case InitRequest():
            return InitReply(success=True, model=FAKE_MODEL)
        case EmbedRequest(texts=texts):
            return EmbedReply(embeddings=[fake_embed(t) for t in texts])
        case RankRequest():
            ranked = top_k(fake_embed(request.query), request.matrix, request.top_k)
            return RankReply(results=[(request.paths[i], score) for i, score in ranked])
        case StatusRequest():
            return StatusReply(initialized=True, loading=False, model=FAKE_MODEL)
    return None


class FakeComputeContext:
    """In-memory ``ComputeContext``.

    Records posted envelopes. With a responder, replies immediately;
    without one, tests deliver replies themselves, in any order.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        self.responder = responder
        self.posted: list[Envelope] = []
        self.started = False
        self.terminated = False
        self._on_message: Callable[[Incoming], None] | None = None

    def start(self, on_message: Callable[[Incoming], None]) -> None:
        self.started = True
        self._on_message = on_message

    def post(self, envelope: Envelope) -> None:
        self.posted.append(envelope)
        if self.responder is not None:
            body = self.responder(envelope)
            if body is not None:
                self.deliver(Reply(id=envelope.id, body=body))

    def terminate(self) -> None:
        self.terminated = True

    # --- Test controls ---

    def deliver(self, message: Incoming) -> None:
        assert self._on_message is not None, "context not started"
        self._on_message(message)

    def reply(self, envelope: Envelope, body: ReplyBody) -> None:
        self.deliver(Reply(id=envelope.id, body=body))

    def push(
        self,
        status: str,
        message: str = "",
        progress: tuple[int, int] | None = None,
    ) -> None:
        self.deliver(StatusPush(status=status, message=message, progress=progress))  # type: ignore[arg-type]

    def crash(self, exitcode: int = 1) -> None:
        self.deliver(ContextExited(exitcode=exitcode))

    def requests_of(self, kind: str) -> list[Envelope]:
        return [e for e in self.posted if e.request.kind == kind]


@pytest.fixture
def fake_contexts() -> list[FakeComputeContext]:
    """Every fake context created by the factory fixtures, in creation order."""
    return []


@pytest.fixture
def context_factory(fake_contexts: list[FakeComputeContext]) -> Callable[[], FakeComputeContext]:
    """Factory for contexts that answer every request."""

    def factory() -> FakeComputeContext:
        context = FakeComputeContext(default_responder)
        fake_contexts.append(context)
        return context

    return factory


@pytest.fixture
def manual_context_factory(
    fake_contexts: list[FakeComputeContext],
) -> Callable[[], FakeComputeContext]:
    """Factory for contexts that never answer on their own."""

    def factory() -> FakeComputeContext:
        context = FakeComputeContext()
        fake_contexts.append(context)
        return context

    return factory


@pytest.fixture
def embed_text() -> Callable[[str], list[float]]:
    """The fake embedding function used by the responding contexts."""
    return fake_embed
