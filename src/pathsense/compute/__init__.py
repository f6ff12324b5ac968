"""Isolated compute context and the bridge that talks to it."""

from pathsense.compute.bridge import ComputeBridge, PendingCall
from pathsense.compute.context import ComputeContext, ContextFactory, ProcessComputeContext
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
    StatusPush,
    StatusReply,
    StatusRequest,
)
from pathsense.compute.runtime import DEFAULT_MODEL, EmbeddingRuntime
from pathsense.compute.worker import ComputeWorker, run_worker

__all__ = [
    "ComputeBridge",
    "ComputeContext",
    "ComputeWorker",
    "ContextExited",
    "ContextFactory",
    "DEFAULT_MODEL",
    "EmbedReply",
    "EmbedRequest",
    "EmbeddingRuntime",
    "Envelope",
    "ErrorReply",
    "Incoming",
    "InitReply",
    "InitRequest",
    "PendingCall",
    "ProcessComputeContext",
    "RankReply",
    "RankRequest",
    "Reply",
    "StatusPush",
    "StatusReply",
    "StatusRequest",
    "run_worker",
]
