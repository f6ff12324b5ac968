"""Typed messages exchanged with the compute context.

Host → context: ``Envelope(id, request)`` where request is one of
``InitRequest``, ``EmbedRequest``, ``RankRequest``, ``StatusRequest``.

Context → host:
  - ``Reply(id, body)`` answers one envelope; body is the matching reply
    type or ``ErrorReply``.
  - ``StatusPush`` carries lifecycle updates and has no id.
  - ``ContextExited`` is synthesized host-side when the process dies.

Every message is a frozen dataclass so it pickles across the process
boundary and the payload shape is fixed per message type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import numpy as np

PushStatus = Literal["initialized", "loading", "ready", "error"]


# --- Requests ---


@dataclass(frozen=True, slots=True)
class InitRequest:
    """Load the embedding model (no-op if already loaded)."""

    kind = "init"

    model_name: str | None = None


@dataclass(frozen=True, slots=True)
class EmbedRequest:
    """Embed each text into one vector."""

    kind = "embed"

    texts: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RankRequest:
    """Embed *query* and rank *paths* (rows of *matrix*) by similarity."""

    kind = "rank"

    query: str
    paths: tuple[str, ...]
    matrix: np.ndarray = field(repr=False)
    top_k: int = 20


@dataclass(frozen=True, slots=True)
class StatusRequest:
    """Ask the context for its model state."""

    kind = "status"


Request = InitRequest | EmbedRequest | RankRequest | StatusRequest


@dataclass(frozen=True, slots=True)
class Envelope:
    id: str
    request: Request


# --- Replies ---


@dataclass(frozen=True, slots=True)
class InitReply:
    success: bool
    model: str


@dataclass(frozen=True, slots=True)
class EmbedReply:
    embeddings: list[list[float]]


@dataclass(frozen=True, slots=True)
class RankReply:
    results: list[tuple[str, float]]


@dataclass(frozen=True, slots=True)
class StatusReply:
    initialized: bool
    loading: bool
    model: str


@dataclass(frozen=True, slots=True)
class ErrorReply:
    message: str


ReplyBody = InitReply | EmbedReply | RankReply | StatusReply | ErrorReply


@dataclass(frozen=True, slots=True)
class Reply:
    id: str
    body: ReplyBody


# --- Out-of-band ---


@dataclass(frozen=True, slots=True)
class StatusPush:
    """Lifecycle update pushed by the context without a call id."""

    status: PushStatus
    message: str = ""
    progress: tuple[int, int] | None = None


@dataclass(frozen=True, slots=True)
class ContextExited:
    """The compute process terminated on its own."""

    exitcode: int | None


Incoming = Reply | StatusPush | ContextExited
