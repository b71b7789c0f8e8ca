from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    PATH_ESCAPES_ROOT = 'path_escapes_root'
    NOT_FOUND = 'not_found'
    ALREADY_EXISTS = 'already_exists'
    IO_FAILURE = 'io_failure'
    INVALID_NAME = 'invalid_name'
    TARGET_MISSING = 'target_missing'
    MISSING_FILE_NAME = 'missing_file_name'
    PROBE_UNAVAILABLE = 'probe_unavailable'
    MALFORMED_REQUEST = 'malformed_request'


class FileServiceError(Exception):
    kind = ErrorKind.IO_FAILURE


class PathEscapesRoot(FileServiceError, PermissionError):
    kind = ErrorKind.PATH_ESCAPES_ROOT

    def __init__(self, message: str = 'Path traversal detected'):
        super().__init__(message)


class InvalidName(FileServiceError, ValueError):
    kind = ErrorKind.INVALID_NAME


class TargetMissing(FileServiceError):
    kind = ErrorKind.TARGET_MISSING


class ProbeUnavailable(FileServiceError):
    kind = ErrorKind.PROBE_UNAVAILABLE


class MalformedUpload(FileServiceError, ValueError):
    kind = ErrorKind.MALFORMED_REQUEST


@dataclass(frozen=True)
class OperationResult:
    succeeded: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    data: Optional[Any] = None

    @classmethod
    def ok(cls, message: str | None = None, data: Any = None) -> OperationResult:
        return cls(True, message, None, data)

    @classmethod
    def failed(cls, message: str | None, error: ErrorKind = ErrorKind.IO_FAILURE, data: Any = None) -> OperationResult:
        return cls(False, message, error, data)
