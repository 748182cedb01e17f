"""Poll an ingest job until it reaches a terminal state."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..exceptions import JobPollTimeoutError, TransportError
from .bulk_api_client import BulkTransport
from .bulk_models import JobInfo, PipelineStage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JobMonitor:
    """Fetch job info every ``poll_interval_seconds`` until terminal.

    ``poll_timeout_seconds`` bounds the total wall-clock time spent polling,
    including the status requests themselves. Up to ``max_transient_errors``
    consecutive :class:`TransportError` failures are absorbed and retried on
    the next tick.
    """

    transport: BulkTransport
    poll_interval_seconds: float = 10.0
    poll_timeout_seconds: float = 600.0
    max_transient_errors: int = 3
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    log: logging.Logger = field(default_factory=lambda: logger)

    def __post_init__(self) -> None:
        if self.poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds must not be negative")
        if self.poll_timeout_seconds <= 0:
            raise ValueError("poll_timeout_seconds must be positive")

    async def wait_for_terminal(
        self,
        job_id: str,
        on_status: Callable[[JobInfo], None] | None = None,
    ) -> JobInfo:
        deadline = self.clock() + self.poll_timeout_seconds
        attempt = 0
        transient_errors = 0
        last: JobInfo | None = None

        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                raise self._timeout(job_id, last)

            attempt += 1
            try:
                async with asyncio.timeout(remaining):
                    info = await self.transport.get_job_info(job_id)
            except TimeoutError as exc:
                raise self._timeout(job_id, last) from exc
            except TransportError:
                transient_errors += 1
                if transient_errors > self.max_transient_errors:
                    raise
                self.log.warning(
                    "bulk.job.poll.transient_error",
                    extra={"job_id": job_id, "attempt": attempt, "errors": transient_errors},
                )
            else:
                transient_errors = 0
                last = info
                if on_status is not None:
                    on_status(info)
                self.log.info(
                    "bulk.job.poll",
                    extra={
                        "job_id": job_id,
                        "attempt": attempt,
                        "state": info.state.value,
                        "records_processed": info.number_records_processed,
                        "records_failed": info.number_records_failed,
                    },
                )
                if info.state.is_terminal:
                    return info

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise self._timeout(job_id, last)
            await self.sleep(min(self.poll_interval_seconds, remaining))

    def _timeout(self, job_id: str, last: JobInfo | None) -> JobPollTimeoutError:
        state = last.state.value if last is not None else "unknown"
        self.log.warning(
            "bulk.job.poll.timeout",
            extra={"job_id": job_id, "last_state": state, "timeout_seconds": self.poll_timeout_seconds},
        )
        return JobPollTimeoutError(
            f"Job '{job_id}' still {state} after {self.poll_timeout_seconds:g}s of polling",
            stage=PipelineStage.POLL,
        )
