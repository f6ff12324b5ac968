"""Similarity math and the query path."""

from pathsense.search.query import Ranker, SearchService
from pathsense.search.vectors import (
    SearchResult,
    cosine_similarity,
    rank_paths,
    similarity_scores,
    top_k,
)

__all__ = [
    "Ranker",
    "SearchResult",
    "SearchService",
    "cosine_similarity",
    "rank_paths",
    "similarity_scores",
    "top_k",
]
