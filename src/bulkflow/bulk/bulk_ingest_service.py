"""Orchestrates one Bulk API 2.0 ingest job from validation to results."""

from __future__ import annotations

import csv
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from ..exceptions import (
    BulkflowError,
    DataSourceError,
    JobPollTimeoutError,
    JobStateError,
    PipelineStageError,
)
from .bulk_api_client import BulkTransport
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
from .results_csv import parse_failed_results, parse_successful_results, write_results
from .validation import DataSourceInfo, read_data_source, validate_data_source

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class BulkIngestService:
    """Drive VALIDATE → CREATE_JOB → UPLOAD → CLOSE → POLL → DOWNLOAD → DONE.

    Any stage failure raises :class:`PipelineStageError` chained to the
    underlying error and carrying the partial :class:`BulkOperationStatus`.
    The two result downloads are the exception: their failures are stored
    on the status and the run still completes.
    """

    transport: BulkTransport
    poll_interval_seconds: float = 10.0
    poll_timeout_seconds: float = 600.0
    abort_on_timeout: bool = False
    monitor_factory: Callable[[BulkTransport], JobMonitor] | None = None
    log: structlog.stdlib.BoundLogger = field(default_factory=lambda: logger)

    async def insert(
        self,
        job_request: JobCreateRequest,
        data_source_path: str | os.PathLike[str],
    ) -> BulkOperationStatus:
        """Insert every row of ``data_source_path`` into ``job_request.object``."""

        insert_request = job_request.model_copy(
            update={"operation": "insert", "external_id_field_name": None}
        )
        return await self.run(insert_request, data_source_path)

    async def run(
        self,
        job_request: JobCreateRequest,
        data_source_path: str | os.PathLike[str],
    ) -> BulkOperationStatus:
        base_message = f"Bulk {job_request.operation} of {job_request.object} records failed."
        log = self.log.bind(object=job_request.object, operation=job_request.operation)

        try:
            info = validate_data_source(data_source_path)
        except DataSourceError as exc:
            raise PipelineStageError(
                f"{base_message} The data source file provided is invalid for Bulk API 2.0 "
                f"operations. {exc}",
                stage=PipelineStage.VALIDATE,
            ) from exc

        status = BulkOperationStatus(data_source_path=info.path, data_source_size=info.size_bytes)
        log = log.bind(data_source=str(info.path))
        log.info("bulk.ingest.validated", size_bytes=info.size_bytes)

        job = await self._stage(
            status,
            PipelineStage.CREATE_JOB,
            f"{base_message} Bulk job to ingest data could not be created.",
            self.transport.create_job(job_request),
        )
        status.initial_job_status = job
        job_id = job.id
        log = log.bind(job_id=job_id)
        log.info("bulk.ingest.job_created", state=job.state.value)

        await self._upload(status, job, info, base_message)
        log.info("bulk.ingest.uploaded", size_bytes=info.size_bytes)

        await self._stage(
            status,
            PipelineStage.CLOSE,
            f"{base_message} Could not close the bulk data load job. "
            "You may want to try and close the job manually via the Setup UI in your org.",
            self.transport.close_job(job_id),
        )
        log.info("bulk.ingest.closed")

        final = await self._poll(status, job_id, base_message)
        log.info(
            "bulk.ingest.job_finished",
            state=final.state.value,
            records_processed=final.number_records_processed,
            records_failed=final.number_records_failed,
        )

        status.stage = PipelineStage.DOWNLOAD_SUCCESS
        try:
            status.successful_results = await self.download_successful_results(
                job_id, status
            )
        except (BulkflowError, ValueError, csv.Error) as exc:
            status.successful_results_error = exc
            log.warning("bulk.ingest.download_failed", results="successful", error=str(exc))

        status.stage = PipelineStage.DOWNLOAD_FAILURE
        try:
            status.failed_results = await self.download_failed_results(job_id, status)
        except (BulkflowError, ValueError, csv.Error) as exc:
            status.failed_results_error = exc
            log.warning("bulk.ingest.download_failed", results="failed", error=str(exc))

        status.stage = PipelineStage.DONE
        log.info(
            "bulk.ingest.done",
            successful=len(status.successful_results or []),
            failed=len(status.failed_results or []),
            download_errors=status.has_download_errors,
        )
        return status

    async def download_successful_results(
        self, job_id: str, status: BulkOperationStatus
    ) -> list[SuccessfulRecord]:
        body = await self.transport.get_successful_results(job_id)
        write_results(body, status.successful_results_path)
        return parse_successful_results(body)

    async def download_failed_results(
        self, job_id: str, status: BulkOperationStatus
    ) -> list[FailedRecord]:
        body = await self.transport.get_failed_results(job_id)
        write_results(body, status.failed_results_path)
        return parse_failed_results(body)

    async def _stage(
        self,
        status: BulkOperationStatus,
        stage: PipelineStage,
        message: str,
        operation: Awaitable[T],
    ) -> T:
        status.stage = stage
        try:
            return await operation
        except (BulkflowError, ValueError) as exc:
            self.log.error("bulk.ingest.stage_failed", stage=stage.value, error=str(exc))
            raise PipelineStageError(f"{message} {exc}", stage=stage, status=status) from exc

    async def _upload(
        self,
        status: BulkOperationStatus,
        job: JobDescriptor,
        info: DataSourceInfo,
        base_message: str,
    ) -> None:
        content_url = job.content_url
        status.stage = PipelineStage.UPLOAD
        status.upload_status = UploadStatus.WORKING
        try:
            if not content_url:
                raise ValueError("job descriptor did not include a contentUrl")
            payload = read_data_source(
                validate_data_source(info.path, max_bytes=info.limit_bytes)
            )
            await self.transport.upload_job_data(content_url, payload)
        except (BulkflowError, ValueError) as exc:
            status.upload_status = UploadStatus.FAILED
            self.log.error("bulk.ingest.stage_failed", stage=PipelineStage.UPLOAD.value, error=str(exc))
            raise PipelineStageError(
                f"{base_message} The data source file could not be uploaded. {exc}",
                stage=PipelineStage.UPLOAD,
                status=status,
            ) from exc
        status.upload_status = UploadStatus.COMPLETE

    async def _poll(
        self, status: BulkOperationStatus, job_id: str, base_message: str
    ) -> JobInfo:
        status.stage = PipelineStage.POLL
        monitor = self._monitor()

        def record(job_info: JobInfo) -> None:
            status.current_job_status = job_info

        try:
            final = await monitor.wait_for_terminal(job_id, on_status=record)
        except JobPollTimeoutError as exc:
            exc.status = status
            if self.abort_on_timeout:
                await self._abort_quietly(job_id)
            raise
        except (BulkflowError, ValueError) as exc:
            raise PipelineStageError(
                f"{base_message} Monitoring failed for Job ID '{job_id}'. {exc}",
                stage=PipelineStage.POLL,
                status=status,
            ) from exc

        if final.state in (JobState.FAILED, JobState.ABORTED):
            detail = f" {final.error_message}" if final.error_message else ""
            raise JobStateError(
                f"{base_message} Job ID '{job_id}' finished in state {final.state.value}.{detail}",
                stage=PipelineStage.POLL,
                status=status,
            )
        return final

    def _monitor(self) -> JobMonitor:
        if self.monitor_factory is not None:
            return self.monitor_factory(self.transport)
        return JobMonitor(
            transport=self.transport,
            poll_interval_seconds=self.poll_interval_seconds,
            poll_timeout_seconds=self.poll_timeout_seconds,
        )

    async def _abort_quietly(self, job_id: str) -> None:
        try:
            await self.transport.abort_job(job_id)
        except (BulkflowError, ValueError) as exc:
            self.log.warning("bulk.ingest.abort_failed", job_id=job_id, error=str(exc))
        else:
            self.log.info("bulk.ingest.aborted", job_id=job_id)
