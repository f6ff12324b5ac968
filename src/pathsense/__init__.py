"""PathSense - on-device semantic search over file names and paths."""

from pathsense.indexing.pipeline import FileEntry, IndexingReport
from pathsense.lifecycle import LifecycleStatus, Progress
from pathsense.search.vectors import SearchResult
from pathsense.service import SemanticSearch

__version__ = "0.1.0"

__all__ = [
    "FileEntry",
    "IndexingReport",
    "LifecycleStatus",
    "Progress",
    "SearchResult",
    "SemanticSearch",
]
