"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (PATHSENSE__SECTION__KEY)
3. Data-dir YAML (<data_dir>/config.yaml)
4. Global YAML (~/.config/pathsense/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    PATHSENSE__<SECTION>__<KEY>=<VALUE>

Examples:
    PATHSENSE__LOGGING__LEVEL=DEBUG
    PATHSENSE__MODEL__ENABLED=false
    PATHSENSE__INDEXING__BATCH_SIZE=32
    PATHSENSE__TIMEOUTS__RANK_SEC=10
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from pathsense.config.constants import BATCH_SIZE_MAX, SEARCH_MAX_TOP_K

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        PATHSENSE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every compute call.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ModelConfig(BaseModel):
    """Embedding model configuration.

    Env vars:
        PATHSENSE__MODEL__ENABLED: Provision the compute context at all
        PATHSENSE__MODEL__NAME: fastembed model identifier
        PATHSENSE__MODEL__CACHE_DIR: Model download cache
        PATHSENSE__MODEL__THREADS: ONNX runtime threads inside the compute process
    """

    enabled: bool = Field(
        default=True,
        description="Feature toggle. When false no compute context is started "
        "and every operation returns empty results.",
    )
    name: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Embedding model. Changing it does not re-embed stored paths; "
        "records keep the model that produced them.",
    )
    cache_dir: str | None = Field(
        default=None,
        description="Model cache directory. Default: fastembed's cache location.",
    )
    threads: int | None = Field(
        default=None,
        description="ONNX runtime threads. Default: half the CPU count.",
    )


class IndexingConfig(BaseModel):
    """Batch indexing configuration.

    Env vars:
        PATHSENSE__INDEXING__BATCH_SIZE: Files per embed call
    """

    batch_size: int = Field(
        default=10,
        description="Files per embed call. Batches run one at a time.",
    )

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not (1 <= v <= BATCH_SIZE_MAX):
            raise ValueError(f"batch_size must be 1-{BATCH_SIZE_MAX}, got {v}")
        return v


class SearchConfig(BaseModel):
    """Query path configuration.

    Env vars:
        PATHSENSE__SEARCH__TOP_K: Results per query
        PATHSENSE__SEARCH__RANK_LOCALLY: Rank in the host process instead of the compute context
    """

    top_k: int = Field(default=20, description="Results per query.")
    rank_locally: bool = Field(
        default=False,
        description="Embed the query remotely but rank in the host process. "
        "Avoids shipping the corpus to the compute context on every query.",
    )

    @field_validator("top_k")
    @classmethod
    def validate_top_k(cls, v: int) -> int:
        if not (1 <= v <= SEARCH_MAX_TOP_K):
            raise ValueError(f"top_k must be 1-{SEARCH_MAX_TOP_K}, got {v}")
        return v


class TimeoutsConfig(BaseModel):
    """Per-call timeouts for compute calls.

    Env vars:
        PATHSENSE__TIMEOUTS__INIT_SEC: Model load (cold cache downloads the model)
        PATHSENSE__TIMEOUTS__EMBED_SEC: One indexing batch
        PATHSENSE__TIMEOUTS__RANK_SEC: One search
    """

    init_sec: float = Field(
        default=600.0,
        description="Model load timeout. Downloads on a slow connection can take minutes.",
    )
    embed_sec: float = Field(default=60.0, description="Timeout for one embedding batch.")
    rank_sec: float = Field(default=30.0, description="Timeout for one ranking request.")
    status_sec: float = Field(default=5.0, description="Timeout for a status query.")
    shutdown_sec: float = Field(
        default=5.0,
        description="Wait for the compute process to exit before killing it.",
    )

    @field_validator("init_sec", "embed_sec", "rank_sec", "status_sec", "shutdown_sec")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class StoreConfig(BaseModel):
    """Embedding store configuration.

    Env vars:
        PATHSENSE__STORE__PATH: SQLite file location
    """

    path: str | None = Field(
        default=None,
        description="SQLite database path. Default: <data_dir>/embeddings.db.",
    )


class PathSenseConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
