"""Persistent embedding storage."""

from pathsense.store.db import Database
from pathsense.store.embeddings import (
    Corpus,
    EmbeddingRecord,
    EmbeddingStore,
    StoreStats,
    now_ms,
)
from pathsense.store.models import EmbeddingRow

__all__ = [
    "Corpus",
    "Database",
    "EmbeddingRecord",
    "EmbeddingRow",
    "EmbeddingStore",
    "StoreStats",
    "now_ms",
]
