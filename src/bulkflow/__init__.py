"""bulkflow: Bulk API 2.0 ingest jobs and CLI command execution.

The package is split into :mod:`.commands` (run and classify external CLI
commands), :mod:`.bulk` (the ingest job pipeline) and :mod:`.core`
(settings and wiring).
"""

from .exceptions import (
    BulkflowError,
    DataSourceSizeError,
    FileSystemError,
    JobPollTimeoutError,
    JobStateError,
    PathError,
    PipelineStageError,
    RemoteServiceError,
    TransportError,
)
from .results import CommandResult, ResultKind, ResultState

__all__ = [
    "BulkflowError",
    "CommandResult",
    "DataSourceSizeError",
    "FileSystemError",
    "JobPollTimeoutError",
    "JobStateError",
    "PathError",
    "PipelineStageError",
    "RemoteServiceError",
    "ResultKind",
    "ResultState",
    "TransportError",
]
