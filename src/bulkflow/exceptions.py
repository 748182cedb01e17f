"""Error taxonomy shared by command execution and bulk ingest."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .bulk.bulk_models import BulkOperationStatus, PipelineStage

__all__ = [
    "BulkflowError",
    "DataSourceError",
    "PathError",
    "FileSystemError",
    "DataSourceSizeError",
    "TransportError",
    "RemoteServiceError",
    "PipelineStageError",
    "JobPollTimeoutError",
    "JobStateError",
    "ResultAlreadyFinalizedError",
]


class BulkflowError(Exception):
    """Base class for application specific errors."""


class DataSourceError(BulkflowError):
    """Base class for local data source problems."""


class PathError(DataSourceError):
    """Raised when the data source path is empty, missing or unreadable."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class FileSystemError(DataSourceError):
    """Raised when an otherwise valid path cannot be stat'ed or read."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class DataSourceSizeError(DataSourceError):
    """Raised when the data source exceeds the upload ceiling."""

    def __init__(self, message: str, *, path: str, size_bytes: int, limit_bytes: int) -> None:
        super().__init__(message)
        self.path = path
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class TransportError(BulkflowError):
    """Raised when a process or connection fails below the application layer."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        signal: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.signal = signal
        self.stdout = stdout
        self.stderr = stderr


class RemoteServiceError(BulkflowError):
    """Raised when the remote service reports a failure in a well-formed reply."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        payload: Mapping[str, Any] | list[Any] | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload
        self.stdout = stdout
        self.stderr = stderr


class PipelineStageError(BulkflowError):
    """Raised when a named bulk ingest stage fails.

    The underlying error is available as ``__cause__``. ``status`` holds
    whatever progress was recorded before the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        stage: "PipelineStage",
        status: "BulkOperationStatus | None" = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.status = status


class JobPollTimeoutError(PipelineStageError):
    """Raised when a job is still in flight after the polling deadline."""


class JobStateError(PipelineStageError):
    """Raised when the service reports the job as Failed or Aborted."""


class ResultAlreadyFinalizedError(RuntimeError):
    """Raised when a finished command result is transitioned again."""
