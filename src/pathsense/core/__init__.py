"""Core module exports."""

from pathsense.core.errors import (
    BridgeClosedError,
    BridgeError,
    BridgeNotInitializedError,
    CallTimeoutError,
    ConfigError,
    ErrorCode,
    InternalError,
    PathSenseError,
    RemoteCallError,
    SearchSupersededError,
    StoreError,
)
from pathsense.core.logging import (
    clear_call_id,
    configure_logging,
    get_call_id,
    get_logger,
    set_call_id,
)

__all__ = [
    # Errors
    "BridgeClosedError",
    "BridgeError",
    "BridgeNotInitializedError",
    "CallTimeoutError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "PathSenseError",
    "RemoteCallError",
    "SearchSupersededError",
    "StoreError",
    # Logging
    "clear_call_id",
    "configure_logging",
    "get_call_id",
    "get_logger",
    "set_call_id",
]
