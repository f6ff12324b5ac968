"""Batch indexing of file names and paths."""

from pathsense.indexing.pipeline import (
    Embedder,
    FileEntry,
    IndexingPipeline,
    IndexingReport,
    batched,
)

__all__ = [
    "Embedder",
    "FileEntry",
    "IndexingPipeline",
    "IndexingReport",
    "batched",
]
