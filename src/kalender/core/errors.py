"""
Error types for Kalender

Structured errors with stable codes so the CLI and any other front end can
show a readable message and act on the error class.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Stable error codes"""

    # Validation (1000-1999)
    VALIDATION_FAILED = "KZ1001"
    EMPTY_TITLE = "KZ1002"
    PRIORITY_OUT_OF_RANGE = "KZ1003"
    INVALID_TIMESTAMP = "KZ1004"

    # Lookup (2000-2999)
    EVENT_NOT_FOUND = "KZ2001"

    # Storage (3000-3999)
    STORAGE_IO_FAILED = "KZ3001"
    STORE_FILE_CORRUPT = "KZ3002"
    CSV_ROW_INVALID = "KZ3010"


class KalenderError(Exception):
    """Base exception carrying an error code and context data"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.data = data or {}
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for display or logging"""
        return {
            "code": self.code.value,
            "error": type(self).__name__,
            "message": self.message,
            "data": self.data,
        }


class ValidationError(KalenderError):
    """Event fields were rejected"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, code, data, cause)


class EventNotFoundError(KalenderError):
    """No event with the given identity exists in the store"""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(
            f"Event {event_id} not found",
            ErrorCode.EVENT_NOT_FOUND,
            data={"event_id": event_id},
        )


class StorageError(KalenderError):
    """A whole-file read or write failed"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_IO_FAILED,
        cause: Optional[BaseException] = None,
    ):
        self.path = path
        super().__init__(message, code, data={"path": path}, cause=cause)


class CorruptStoreError(StorageError):
    """The store file exists but could not be decoded"""

    def __init__(
        self,
        path: str,
        backup_path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.backup_path = backup_path
        message = f"Store file {path} could not be read"
        if backup_path:
            message += f" (moved aside to {backup_path})"
        super().__init__(message, path=path, code=ErrorCode.STORE_FILE_CORRUPT, cause=cause)
        self.data["backup_path"] = backup_path


class CSVRowError(KalenderError):
    """A single CSV line could not be turned into an event"""

    def __init__(self, line_number: int, reason: str, cause: Optional[BaseException] = None):
        self.line_number = line_number
        self.reason = reason
        super().__init__(
            f"Line {line_number}: {reason}",
            ErrorCode.CSV_ROW_INVALID,
            data={"line_number": line_number},
            cause=cause,
        )
