"""Vector similarity scoring.

Pure functions over numpy arrays. Shared by the host-side query path
(local ranking) and the compute worker (remote ranking).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

FloatArray = npt.NDArray[np.float32]


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One ranked path."""

    path: str
    score: float

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "score": self.score}


def cosine_similarity(a: Sequence[float] | FloatArray, b: Sequence[float] | FloatArray) -> float:
    """Dot product over the product of magnitudes.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64).ravel()
    vb = np.asarray(b, dtype=np.float64).ravel()
    if va.shape != vb.shape:
        raise ValueError(f"Vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def similarity_scores(query: Sequence[float] | FloatArray, matrix: FloatArray) -> FloatArray:
    """Cosine similarity of *query* against every row of *matrix*.

    Zero rows (and a zero query) score 0.0.
    """
    q = np.asarray(query, dtype=np.float32).ravel()
    m = np.asarray(matrix, dtype=np.float32)
    if m.ndim != 2 or m.shape[0] == 0:
        return np.zeros(0, dtype=np.float32)
    if m.shape[1] != q.shape[0]:
        raise ValueError(f"Vector length mismatch: {q.shape[0]} != {m.shape[1]}")

    q_norm = float(np.linalg.norm(q))
    if q_norm == 0.0:
        return np.zeros(m.shape[0], dtype=np.float32)

    row_norms = np.linalg.norm(m, axis=1)
    dots = m @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(row_norms > 0, dots / (row_norms * q_norm), 0.0)
    return scores.astype(np.float32)


def top_k(
    query: Sequence[float] | FloatArray,
    vectors: FloatArray | Sequence[Sequence[float]],
    k: int,
) -> list[tuple[int, float]]:
    """Return ``[(index, score), ...]`` for the *k* best rows, best first.

    Ties keep insertion order (stable sort). Never returns more than
    ``min(k, len(vectors))`` entries.
    """
    if k <= 0:
        return []
    matrix = np.asarray(vectors, dtype=np.float32)
    if matrix.size == 0:
        return []
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)

    scores = similarity_scores(query, matrix)
    # Stable sort on the negated scores keeps the original order for ties
    order = np.argsort(-scores, kind="stable")[:k]
    return [(int(i), float(scores[i])) for i in order]


def rank_paths(
    query: Sequence[float] | FloatArray,
    paths: Sequence[str],
    matrix: FloatArray,
    k: int,
) -> list[SearchResult]:
    """Rank *paths* (parallel to *matrix* rows) against *query*."""
    if len(paths) != len(matrix):
        raise ValueError(f"{len(paths)} paths for {len(matrix)} vectors")
    return [SearchResult(path=paths[i], score=score) for i, score in top_k(query, matrix, k)]
