"""Config module exports."""

from pathsense.config.loader import (
    PathSenseSettings,
    get_store_path,
    load_config,
    resolve_data_dir,
)
from pathsense.config.models import (
    IndexingConfig,
    LoggingConfig,
    ModelConfig,
    PathSenseConfig,
    SearchConfig,
    StoreConfig,
    TimeoutsConfig,
)

__all__ = [
    "load_config",
    "get_store_path",
    "resolve_data_dir",
    "PathSenseConfig",
    "PathSenseSettings",
    "IndexingConfig",
    "LoggingConfig",
    "ModelConfig",
    "SearchConfig",
    "StoreConfig",
    "TimeoutsConfig",
]
