"""PathSense error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Compute (bridge, calls, search)
- 4xxx: Store
- 9xxx: Internal

Lifecycle-level failures (model load) are not raised; they are recovered
into the lifecycle status. Everything below is raised to the immediate
caller of the failing operation.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Compute (3xxx)
    BRIDGE_NOT_INITIALIZED = 3001
    BRIDGE_CLOSED = 3002
    CALL_TIMEOUT = 3003
    REMOTE_ERROR = 3004
    SEARCH_SUPERSEDED = 3005

    # Store (4xxx)
    STORE_NOT_OPEN = 4001
    STORE_WRITE_FAILED = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class PathSenseError(Exception):
    """Base error with structured context for JSON output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CALL_TIMEOUT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(PathSenseError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class BridgeError(PathSenseError):
    """Failures of a single call through the compute bridge."""


class BridgeNotInitializedError(BridgeError):
    """Call attempted before the bridge has a live compute context."""

    @classmethod
    def for_call(cls, kind: str) -> "BridgeNotInitializedError":
        return cls(
            code=ErrorCode.BRIDGE_NOT_INITIALIZED,
            message=f"Compute context not initialized (operation: {kind})",
            details={"operation": kind},
        )


class BridgeClosedError(BridgeError):
    """Bridge was torn down while the call was outstanding."""

    @classmethod
    def for_call(cls, call_id: str, kind: str) -> "BridgeClosedError":
        return cls(
            code=ErrorCode.BRIDGE_CLOSED,
            message=f"Compute context was shut down before {kind} call completed",
            details={"call_id": call_id, "operation": kind},
        )


class CallTimeoutError(BridgeError):
    """A specific call exceeded its allotted time."""

    @classmethod
    def after(cls, call_id: str, kind: str, timeout: float) -> "CallTimeoutError":
        return cls(
            code=ErrorCode.CALL_TIMEOUT,
            message=f"Compute call timed out after {timeout:g}s for operation: {kind}",
            retryable=True,
            details={"call_id": call_id, "operation": kind, "timeout_sec": timeout},
        )


class RemoteCallError(BridgeError):
    """The compute context reported a failure for a specific call."""

    @classmethod
    def reported(cls, call_id: str, kind: str, message: str) -> "RemoteCallError":
        return cls(
            code=ErrorCode.REMOTE_ERROR,
            message=message or "Compute context error",
            details={"call_id": call_id, "operation": kind},
        )


class SearchSupersededError(PathSenseError):
    """A newer search replaced this one before it finished."""

    @classmethod
    def for_query(cls, query: str) -> "SearchSupersededError":
        return cls(
            code=ErrorCode.SEARCH_SUPERSEDED,
            message="Search superseded by a newer query",
            details={"query": query},
        )


class StoreError(PathSenseError):
    """Embedding store errors."""

    @classmethod
    def not_open(cls, path: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_NOT_OPEN,
            message=f"Embedding store is not open: {path}",
            details={"path": path},
        )

    @classmethod
    def write_failed(cls, path: str, rows: int, reason: str) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_WRITE_FAILED,
            message=f"Failed to write {rows} embeddings to {path}: {reason}",
            retryable=True,
            details={"path": path, "rows": rows, "reason": reason},
        )


class InternalError(PathSenseError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
