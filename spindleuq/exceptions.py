"""
Engine Exceptions Module.

Centralized exception definitions with error codes.

None of these cross the public store boundary: they are raised by the
storage and deserialization layers and caught by the stores, which log
them and fall back to a safe in-memory state. Callers branch on
``UncertaintyResult.valid`` and the boolean returned by ``import_()``.
"""

from enum import StrEnum
from typing import Any, Optional


# ============================================================================
# ERROR CODES
# ============================================================================


class ErrorCode(StrEnum):
    """Engine error codes."""

    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"

    # Storage errors (5xxx)
    STORAGE_READ_FAILED = "E5000"
    STORAGE_WRITE_FAILED = "E5001"

    # Data errors (6xxx)
    MALFORMED_PERSISTED_DATA = "E6000"
    IMPORT_REJECTED = "E6001"


# ============================================================================
# BASE EXCEPTION
# ============================================================================


class UncertaintyEngineError(Exception):
    """Base exception for the uncertainty engine."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form for log context."""
        return {
            "code": str(self.code),
            "message": self.message,
            "details": self.details,
        }


# ============================================================================
# SPECIFIC EXCEPTIONS
# ============================================================================


class StorageError(UncertaintyEngineError):
    """The key-value medium rejected a read or write."""

    def __init__(
        self,
        message: str,
        key: str,
        write: bool = True,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.STORAGE_WRITE_FAILED if write else ErrorCode.STORAGE_READ_FAILED,
            details={"key": key, **(details or {})},
        )
        self.key = key


class MalformedPersistedDataError(UncertaintyEngineError):
    """A persisted blob failed to parse or has an unexpected shape."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            message=f"Malformed data under '{key}': {reason}",
            code=ErrorCode.MALFORMED_PERSISTED_DATA,
            details={"key": key, "reason": reason},
        )
        self.key = key


class ImportRejectedError(UncertaintyEngineError):
    """An imported defaults document was not accepted."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Defaults import rejected: {reason}",
            code=ErrorCode.IMPORT_REJECTED,
            details={"reason": reason},
        )
