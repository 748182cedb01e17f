from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytest

from src.bulkflow.bulk.bulk_ingest_service import BulkIngestService
from src.bulkflow.bulk.bulk_models import (
    JobCreateRequest,
    JobState,
    PipelineStage,
    UploadStatus,
)
from src.bulkflow.bulk.validation import MAX_DATA_SOURCE_BYTES
from src.bulkflow.exceptions import (
    DataSourceSizeError,
    JobPollTimeoutError,
    JobStateError,
    PathError,
    PipelineStageError,
    RemoteServiceError,
    TransportError,
)
from tests.mocks.bulk_service import MockBulkConfig, MockBulkScenario, MockBulkService


def write_accounts(path: Path, rows: int) -> Path:
    lines = ["Name,Industry"] + [f"Account {index},Energy" for index in range(rows)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def job_request() -> JobCreateRequest:
    return JobCreateRequest(object="Account", operation="upsert", externalIdFieldName="Ext_Id__c")


def make_service(mock: MockBulkService, **kwargs) -> BulkIngestService:
    kwargs.setdefault("poll_interval_seconds", 0)
    kwargs.setdefault("poll_timeout_seconds", 5)
    return BulkIngestService(transport=mock, **kwargs)


@pytest.mark.asyncio
async def test_insert_round_trip(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=10)
    mock = MockBulkService()

    status = await make_service(mock).insert(job_request, source)

    assert status.stage is PipelineStage.DONE
    assert status.data_source_size == source.stat().st_size
    assert status.upload_status is UploadStatus.COMPLETE
    assert status.initial_job_status is not None
    assert status.initial_job_status.operation == "insert"
    assert status.current_job_status is not None
    assert status.current_job_status.state is JobState.JOB_COMPLETE
    assert status.current_job_status.number_records_processed == 10
    assert len(status.successful_results or []) == 10
    assert status.failed_results == []
    assert not status.has_download_errors

    assert status.successful_results_path == Path(f"{source}.successfulResults")
    assert status.failed_results_path == Path(f"{source}.failedResults")
    success_lines = status.successful_results_path.read_text(encoding="utf-8").splitlines()
    failed_lines = status.failed_results_path.read_text(encoding="utf-8").splitlines()
    assert len(success_lines) - 1 == 10
    assert len(failed_lines) - 1 == 0
    assert status.successful_results[0].created is True
    assert status.successful_results[0].fields["Name"] == "Account 0"


@pytest.mark.asyncio
async def test_insert_forces_insert_operation(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService()

    await make_service(mock).insert(job_request, source)

    created = next(iter(mock._jobs.values()))
    assert created.request.operation == "insert"
    assert job_request.operation == "upsert"


@pytest.mark.asyncio
async def test_stages_run_in_order(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=3)
    mock = MockBulkService(config=MockBulkConfig(polls_until_complete=3))

    await make_service(mock).insert(job_request, source)

    names = [event.split(":", 1)[0] for event in mock.events]
    assert names == [
        "create_job",
        "upload_job_data",
        "close_job",
        "get_job_info",
        "get_job_info",
        "get_job_info",
        "get_successful_results",
        "get_failed_results",
    ]


@pytest.mark.asyncio
async def test_oversized_file_creates_no_job(tmp_path: Path, job_request: JobCreateRequest):
    source = tmp_path / "big.csv"
    source.write_bytes(b"a" * (MAX_DATA_SOURCE_BYTES + 1))
    mock = MockBulkService()

    with pytest.raises(PipelineStageError) as excinfo:
        await make_service(mock).insert(job_request, source)

    assert excinfo.value.stage is PipelineStage.VALIDATE
    assert isinstance(excinfo.value.__cause__, DataSourceSizeError)
    assert mock.calls("create_job") == 0


@pytest.mark.asyncio
async def test_missing_file_creates_no_job(tmp_path: Path, job_request: JobCreateRequest):
    mock = MockBulkService()

    with pytest.raises(PipelineStageError) as excinfo:
        await make_service(mock).insert(job_request, tmp_path / "missing.csv")

    assert isinstance(excinfo.value.__cause__, PathError)
    assert mock.events == []


@pytest.mark.asyncio
async def test_empty_file_still_runs_pipeline(tmp_path: Path, job_request: JobCreateRequest):
    source = tmp_path / "empty.csv"
    source.write_bytes(b"")
    mock = MockBulkService()

    status = await make_service(mock).insert(job_request, source)

    assert mock.calls("create_job") == 1
    assert status.data_source_size == 0
    assert status.current_job_status.number_records_processed == 0
    assert status.successful_results == []
    assert status.failed_results == []
    assert status.successful_results_path.exists()
    assert status.failed_results_path.exists()


@pytest.mark.asyncio
async def test_failed_rows_are_split(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=5)
    mock = MockBulkService(config=MockBulkConfig(failed_rows=2))

    status = await make_service(mock).insert(job_request, source)

    assert len(status.successful_results) == 3
    assert len(status.failed_results) == 2
    failure = status.failed_results[0]
    assert failure.error_code == "REQUIRED_FIELD_MISSING"
    assert failure.error_message == "Required fields are missing: [Name]"
    assert failure.record_id is None


@pytest.mark.asyncio
async def test_failed_results_download_error_keeps_successes(
    tmp_path: Path, job_request: JobCreateRequest
):
    source = write_accounts(tmp_path / "accounts.csv", rows=4)
    mock = MockBulkService(config=MockBulkConfig(fail_failed_download=True))

    status = await make_service(mock).insert(job_request, source)

    assert status.stage is PipelineStage.DONE
    assert len(status.successful_results) == 4
    assert status.failed_results is None
    assert isinstance(status.failed_results_error, RemoteServiceError)
    assert status.successful_results_error is None
    assert status.has_download_errors


@pytest.mark.asyncio
async def test_successful_results_error_does_not_skip_failed_download(
    tmp_path: Path, job_request: JobCreateRequest
):
    source = write_accounts(tmp_path / "accounts.csv", rows=2)
    mock = MockBulkService(config=MockBulkConfig(fail_successful_download=True))

    status = await make_service(mock).insert(job_request, source)

    assert mock.calls("get_failed_results") == 1
    assert status.successful_results is None
    assert isinstance(status.successful_results_error, RemoteServiceError)
    assert status.failed_results == []


@pytest.mark.asyncio
async def test_create_failure_names_stage(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(config=MockBulkConfig(fail_create=True))

    with pytest.raises(PipelineStageError) as excinfo:
        await make_service(mock).insert(job_request, source)

    error = excinfo.value
    assert error.stage is PipelineStage.CREATE_JOB
    assert "could not be created" in str(error)
    assert isinstance(error.__cause__, RemoteServiceError)
    assert error.status is not None
    assert error.status.initial_job_status is None


@pytest.mark.asyncio
async def test_upload_failure_marks_upload_failed(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(config=MockBulkConfig(fail_upload=True))

    with pytest.raises(PipelineStageError) as excinfo:
        await make_service(mock).insert(job_request, source)

    assert excinfo.value.stage is PipelineStage.UPLOAD
    assert excinfo.value.status.upload_status is UploadStatus.FAILED
    assert excinfo.value.status.initial_job_status is not None
    assert mock.calls("close_job") == 0


@pytest.mark.asyncio
async def test_close_failure_suggests_manual_close(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(config=MockBulkConfig(fail_close=True))

    with pytest.raises(PipelineStageError) as excinfo:
        await make_service(mock).insert(job_request, source)

    assert excinfo.value.stage is PipelineStage.CLOSE
    assert "close the job manually" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, TransportError)
    assert mock.calls("get_job_info") == 0


@pytest.mark.asyncio
async def test_poll_timeout_is_bounded(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(config=MockBulkConfig(scenario=MockBulkScenario.STUCK))
    service = make_service(mock, poll_interval_seconds=0.05, poll_timeout_seconds=0.2)

    started = time.monotonic()
    with pytest.raises(JobPollTimeoutError) as excinfo:
        await asyncio.wait_for(service.insert(job_request, source), timeout=5)
    elapsed = time.monotonic() - started

    assert elapsed <= 0.2 + 0.05 + 0.5
    assert excinfo.value.stage is PipelineStage.POLL
    assert excinfo.value.status.current_job_status.state is JobState.IN_PROGRESS
    assert mock.calls("get_successful_results") == 0
    assert mock.calls("abort_job") == 0


@pytest.mark.asyncio
async def test_poll_timeout_can_abort_job(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(config=MockBulkConfig(scenario=MockBulkScenario.STUCK))
    service = make_service(
        mock, poll_interval_seconds=0.01, poll_timeout_seconds=0.05, abort_on_timeout=True
    )

    with pytest.raises(JobPollTimeoutError):
        await service.insert(job_request, source)

    assert mock.calls("abort_job") == 1


@pytest.mark.asyncio
async def test_failed_job_state_is_distinct_from_timeout(
    tmp_path: Path, job_request: JobCreateRequest
):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(config=MockBulkConfig(scenario=MockBulkScenario.JOB_FAILED))

    with pytest.raises(JobStateError) as excinfo:
        await make_service(mock).insert(job_request, source)

    assert not isinstance(excinfo.value, JobPollTimeoutError)
    assert excinfo.value.status.current_job_status.state is JobState.FAILED
    assert "InvalidBatch" in str(excinfo.value)


@pytest.mark.asyncio
async def test_failed_abort_does_not_mask_timeout(tmp_path: Path, job_request: JobCreateRequest):
    source = write_accounts(tmp_path / "accounts.csv", rows=1)
    mock = MockBulkService(
        config=MockBulkConfig(scenario=MockBulkScenario.STUCK, fail_abort=True)
    )
    service = make_service(
        mock, poll_interval_seconds=0.01, poll_timeout_seconds=0.05, abort_on_timeout=True
    )

    with pytest.raises(JobPollTimeoutError) as excinfo:
        await service.insert(job_request, source)

    assert mock.calls("abort_job") == 1
    assert excinfo.value.status.current_job_status.state is JobState.IN_PROGRESS
