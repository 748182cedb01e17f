"""Request, response and status structures for Bulk API 2.0 ingest jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class JobState(StrEnum):
    """Server-owned states of an ingest job."""

    OPEN = "Open"
    UPLOAD_COMPLETE = "UploadComplete"
    IN_PROGRESS = "InProgress"
    JOB_COMPLETE = "JobComplete"
    FAILED = "Failed"
    ABORTED = "Aborted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATES


TERMINAL_JOB_STATES = frozenset({JobState.JOB_COMPLETE, JobState.FAILED, JobState.ABORTED})


class UploadStatus(StrEnum):
    NOT_STARTED = "NOT_STARTED"
    WORKING = "WORKING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class PipelineStage(StrEnum):
    """Linear stages of one bulk ingest run."""

    VALIDATE = "validate"
    CREATE_JOB = "create_job"
    UPLOAD = "upload"
    CLOSE = "close"
    POLL = "poll"
    DOWNLOAD_SUCCESS = "download_success"
    DOWNLOAD_FAILURE = "download_failure"
    DONE = "done"


Operation = Literal["insert", "delete", "update", "upsert"]
ColumnDelimiter = Literal["BACKQUOTE", "CARET", "COMMA", "PIPE", "SEMICOLON", "TAB"]
LineEnding = Literal["LF", "CRLF"]


class JobCreateRequest(BaseModel):
    """Body of ``POST /jobs/ingest``."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    object: str = Field(..., min_length=1, description="Target record type name.")
    operation: Operation = "insert"
    external_id_field_name: str | None = Field(default=None, alias="externalIdFieldName")
    content_type: Literal["CSV"] = Field(default="CSV", alias="contentType")
    column_delimiter: ColumnDelimiter | None = Field(default=None, alias="columnDelimiter")
    line_ending: LineEnding | None = Field(default=None, alias="lineEnding")

    @model_validator(mode="after")
    def _require_external_id_for_upsert(self) -> "JobCreateRequest":
        if self.operation == "upsert" and not self.external_id_field_name:
            raise ValueError("externalIdFieldName is required for upsert operations")
        return self

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class JobDescriptor(BaseModel):
    """Job snapshot returned by the service (create, close and info calls)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    state: JobState
    object: str | None = None
    operation: str | None = None
    content_url: str | None = Field(default=None, alias="contentUrl")
    api_version: float | None = Field(default=None, alias="apiVersion")
    line_ending: str | None = Field(default=None, alias="lineEnding")
    column_delimiter: str | None = Field(default=None, alias="columnDelimiter")


class JobInfo(JobDescriptor):
    """Response of ``GET /jobs/ingest/{id}`` including processing counters."""

    number_records_processed: int = Field(default=0, alias="numberRecordsProcessed")
    number_records_failed: int = Field(default=0, alias="numberRecordsFailed")
    retries: int = 0
    total_processing_time: int = Field(default=0, alias="totalProcessingTime")
    api_active_processing_time: int = Field(default=0, alias="apiActiveProcessingTime")
    apex_processing_time: int = Field(default=0, alias="apexProcessingTime")
    error_message: str | None = Field(default=None, alias="errorMessage")


@dataclass(slots=True)
class SuccessfulRecord:
    """One row of the successful results set."""

    record_id: str
    created: bool
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class FailedRecord:
    """One row of the failed results set."""

    record_id: str | None
    error_code: str
    error_message: str
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class BulkOperationStatus:
    """Everything known about one ingest attempt, filled in stage by stage."""

    data_source_path: Path
    data_source_size: int
    stage: PipelineStage = PipelineStage.VALIDATE
    upload_status: UploadStatus = UploadStatus.NOT_STARTED
    initial_job_status: JobDescriptor | None = None
    current_job_status: JobInfo | None = None
    successful_results: list[SuccessfulRecord] | None = None
    failed_results: list[FailedRecord] | None = None
    successful_results_error: Exception | None = None
    failed_results_error: Exception | None = None

    @property
    def successful_results_path(self) -> Path:
        return Path(f"{self.data_source_path}.successfulResults")

    @property
    def failed_results_path(self) -> Path:
        return Path(f"{self.data_source_path}.failedResults")

    @property
    def job_id(self) -> str | None:
        return self.initial_job_status.id if self.initial_job_status else None

    @property
    def has_download_errors(self) -> bool:
        return self.successful_results_error is not None or self.failed_results_error is not None
