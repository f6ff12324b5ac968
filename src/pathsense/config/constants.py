"""Configuration constants.

Values here are NOT user-configurable: hard caps, wire-format versions and
implementation details. For configurable values, see models.py.
"""

# =============================================================================
# Limits
# =============================================================================

SEARCH_MAX_TOP_K = 200
"""Maximum results for a single search."""

BATCH_SIZE_MAX = 256
"""Maximum files per embedding call."""

# =============================================================================
# Storage
# =============================================================================

DATA_DIR_NAME = ".pathsense"
"""Default data directory (under the user's home)."""

STORE_FILENAME = "embeddings.db"
"""SQLite file holding the embeddings table."""

CONFIG_FILENAME = "config.yaml"
"""Per-data-dir YAML config."""

# =============================================================================
# Compute context
# =============================================================================

CALL_ID_PREFIX = "call"
"""Correlation ids look like ``call-17``."""

READER_POLL_SEC = 0.2
"""How often the host reader thread checks whether the compute process is alive."""
