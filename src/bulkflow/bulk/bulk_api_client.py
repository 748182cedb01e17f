"""HTTP transport for the Bulk API 2.0 ingest endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlparse

import httpx
import structlog

from ..exceptions import RemoteServiceError, TransportError
from .bulk_models import JobCreateRequest, JobDescriptor, JobInfo, JobState

logger = structlog.get_logger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json; charset=UTF-8",
    "Accept": "application/json",
}


class BulkTransport(Protocol):
    """Operations the ingest orchestrator needs from the remote service."""

    async def create_job(self, request: JobCreateRequest) -> JobDescriptor: ...

    async def upload_job_data(self, content_url: str, payload: bytes) -> None: ...

    async def close_job(self, job_id: str) -> JobDescriptor: ...

    async def abort_job(self, job_id: str) -> JobDescriptor: ...

    async def get_job_info(self, job_id: str) -> JobInfo: ...

    async def get_successful_results(self, job_id: str) -> str: ...

    async def get_failed_results(self, job_id: str) -> str: ...


@dataclass(slots=True)
class BulkApiClient:
    """Call the ingest endpoints of one org using an existing access token."""

    instance_url: str
    access_token: str
    api_version: str = "59.0"
    timeout_seconds: float = 30.0
    http_client: httpx.AsyncClient | None = None
    _owns_client: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        parsed = urlparse(self.instance_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("instance_url must include scheme and host")
        if not self.access_token:
            raise ValueError("access_token is required")
        self.instance_url = self.instance_url.rstrip("/")
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout_seconds)
            self._owns_client = True

    @property
    def base_url(self) -> str:
        return f"{self.instance_url}/services/data/v{self.api_version}"

    async def aclose(self) -> None:
        if self._owns_client and self.http_client is not None:
            await self.http_client.aclose()

    async def __aenter__(self) -> "BulkApiClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # ingest endpoints
    # ------------------------------------------------------------------
    async def create_job(self, request: JobCreateRequest) -> JobDescriptor:
        response = await self._request(
            "POST", "/jobs/ingest", headers=JSON_HEADERS, json=request.to_payload()
        )
        self._expect(response, {200, 201}, "create job")
        job = JobDescriptor.model_validate(response.json())
        logger.info("bulk.job.created", job_id=job.id, object=request.object, operation=request.operation)
        return job

    async def upload_job_data(self, content_url: str, payload: bytes) -> None:
        if not content_url:
            raise ValueError("content_url is required")
        response = await self._request(
            "PUT",
            self._resolve(content_url),
            headers={"Content-Type": "text/csv", "Accept": "application/json"},
            content=payload,
        )
        self._expect(response, {201}, "upload job data")
        logger.info("bulk.job.uploaded", content_url=content_url, size_bytes=len(payload))

    async def close_job(self, job_id: str) -> JobDescriptor:
        return await self._set_state(job_id, JobState.UPLOAD_COMPLETE)

    async def abort_job(self, job_id: str) -> JobDescriptor:
        return await self._set_state(job_id, JobState.ABORTED)

    async def get_job_info(self, job_id: str) -> JobInfo:
        response = await self._request("GET", f"/jobs/ingest/{job_id}", headers=JSON_HEADERS)
        self._expect(response, {200}, "get job info")
        return JobInfo.model_validate(response.json())

    async def get_successful_results(self, job_id: str) -> str:
        return await self._download(f"/jobs/ingest/{job_id}/successfulResults/")

    async def get_failed_results(self, job_id: str) -> str:
        return await self._download(f"/jobs/ingest/{job_id}/failedResults/")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _set_state(self, job_id: str, state: JobState) -> JobDescriptor:
        response = await self._request(
            "PATCH",
            f"/jobs/ingest/{job_id}",
            headers=JSON_HEADERS,
            json={"state": state.value},
        )
        self._expect(response, {200}, f"set job state to {state.value}")
        job = JobDescriptor.model_validate(response.json())
        logger.info("bulk.job.state_changed", job_id=job_id, requested=state.value, state=job.state.value)
        return job

    async def _download(self, path: str) -> str:
        response = await self._request(
            "GET",
            path,
            headers={"Content-Type": "application/json; charset=UTF-8", "Accept": "text/csv"},
        )
        self._expect(response, {200}, f"download {path}")
        return response.text

    def _resolve(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if path.startswith("/services/"):
            return f"{self.instance_url}{path}"
        if path.startswith("services/"):
            return f"{self.instance_url}/{path}"
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self.http_client
        if client is None:
            raise RuntimeError("BulkApiClient has no HTTP client")
        url = self._resolve(path)
        headers = {"Authorization": f"Bearer {self.access_token}", **kwargs.pop("headers", {})}
        try:
            return await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("bulk.http.transport_failed", method=method, url=url, error=str(exc))
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _expect(response: httpx.Response, expected: set[int], action: str) -> None:
        if response.status_code in expected:
            return
        payload: Any = None
        message = response.text
        try:
            payload = response.json()
        except ValueError:
            payload = None
        # the service answers errors as [{"errorCode": ..., "message": ...}]
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            first = payload[0]
            message = f"{first.get('errorCode', 'UNKNOWN')}: {first.get('message', '')}"
        raise RemoteServiceError(
            f"Could not {action} (HTTP {response.status_code}). {message}".strip(),
            status=response.status_code,
            payload=payload if isinstance(payload, (dict, list)) else None,
        )
