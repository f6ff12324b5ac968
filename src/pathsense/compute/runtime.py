"""Embedding model runtime hosted inside the compute context.

Wraps fastembed's ``TextEmbedding`` (ONNX). The model is loaded lazily on
the first ``load()`` and kept for the life of the process. Vectors are
mean-pooled by the model and L2-normalized here.
"""

from __future__ import annotations

import gc
import os
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import structlog

log = structlog.get_logger()

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

# Short strings only (file names and paths); caps attention cost
EMBED_MAX_LENGTH = 128

# Fixed number of load steps reported as progress
LOAD_STEPS = 2

StatusCallback = Callable[[str, tuple[int, int] | None], None]


def _detect_providers() -> list[str]:
    """Detect ONNX Runtime execution providers (GPU-aware)."""
    try:
        import onnxruntime as ort

        available = ort.get_available_providers()
        if "CUDAExecutionProvider" in available:
            return ["CUDAExecutionProvider", "CPUExecutionProvider"]
    except ImportError:
        pass
    return ["CPUExecutionProvider"]


def _short_name(model_name: str) -> str:
    return model_name.rsplit("/", 1)[-1]


class EmbeddingRuntime:
    """Lazy fastembed model with normalized batch embedding."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        *,
        cache_dir: str | None = None,
        threads: int | None = None,
    ) -> None:
        self.model_name = model_name
        self._cache_dir = cache_dir
        self._threads = threads
        self._model: Any = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def short_name(self) -> str:
        """Model id without the publisher prefix (stored with each record)."""
        return _short_name(self.model_name)

    def load(self, on_status: StatusCallback | None = None) -> None:
        """Load the model, reporting each step through *on_status*."""
        if self._model is not None:
            return

        from fastembed import TextEmbedding

        def report(message: str, step: int) -> None:
            if on_status is not None:
                on_status(message, (step, LOAD_STEPS))

        report(f"Downloading model: {self.model_name}...", 0)

        # Free memory before loading the ONNX model
        gc.collect()

        providers = _detect_providers()
        threads = self._threads or max(1, (os.cpu_count() or 2) // 2)
        kwargs: dict[str, Any] = {
            "model_name": self.model_name,
            "providers": providers,
            "threads": threads,
            "max_length": EMBED_MAX_LENGTH,
        }
        if self._cache_dir:
            kwargs["cache_dir"] = self._cache_dir

        model = TextEmbedding(**kwargs)
        report("Initializing model...", 1)

        # Warm-up run so the first real batch doesn't pay session setup
        list(model.embed(["warmup"], batch_size=1))
        self._model = model
        report("Model loaded successfully", LOAD_STEPS)

        log.info(
            "runtime.model_loaded",
            model=self.model_name,
            providers=providers,
            threads=threads,
        )

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Embed texts, return an L2-normalized float32 matrix (one row per text)."""
        if self._model is None:
            raise RuntimeError("Model not initialized")
        if not texts:
            return np.empty((0, 0), dtype=np.float32)

        vecs = list(self._model.embed(list(texts), batch_size=len(texts)))
        matrix = np.array(vecs, dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms = np.where(norms > 0, norms, 1.0)
        return matrix / norms

    def embed_one(self, text: str) -> np.ndarray:
        return self.embed([text])[0]
