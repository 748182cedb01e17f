"""Bulk API 2.0 ingest pipeline."""

from .bulk_api_client import BulkApiClient, BulkTransport
from .bulk_ingest_service import BulkIngestService
from .bulk_models import (
    BulkOperationStatus,
    FailedRecord,
    JobCreateRequest,
    JobDescriptor,
    JobInfo,
    JobState,
    PipelineStage,
    SuccessfulRecord,
    UploadStatus,
)
from .job_monitor import JobMonitor
from .validation import MAX_DATA_SOURCE_BYTES, DataSourceInfo, validate_data_source

__all__ = [
    "MAX_DATA_SOURCE_BYTES",
    "BulkApiClient",
    "BulkIngestService",
    "BulkOperationStatus",
    "BulkTransport",
    "DataSourceInfo",
    "FailedRecord",
    "JobCreateRequest",
    "JobDescriptor",
    "JobInfo",
    "JobMonitor",
    "JobState",
    "PipelineStage",
    "SuccessfulRecord",
    "UploadStatus",
    "validate_data_source",
]
