"""Uniform outcome record for shelled and utility operations."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Union

from .exceptions import ResultAlreadyFinalizedError

logger = logging.getLogger(__name__)

__all__ = ["CommandResult", "ResultKind", "ResultState"]


class ResultState(StrEnum):
    """Lifecycle states of a :class:`CommandResult`."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ResultKind(StrEnum):
    """Tag describing which layer produced the result."""

    COMMAND = "COMMAND"
    EXECUTOR = "EXECUTOR"
    UTILITY = "UTILITY"
    UNKNOWN = "UNKNOWN"


Cause = Union["CommandResult", BaseException]


@dataclass(slots=True, eq=False)
class CommandResult:
    """Outcome of one operation.

    A result is created ``PENDING`` and moves to ``SUCCESS`` or ``ERROR``
    exactly once. The optional ``cause`` points at the result or exception
    that triggered this one and is owned by this result alone.
    """

    name: str
    kind: ResultKind = ResultKind.UNKNOWN
    cause: Cause | None = None
    _state: ResultState = field(default=ResultState.PENDING, init=False)
    _detail: Mapping[str, Any] = field(default_factory=dict, init=False)
    _error: BaseException | None = field(default=None, init=False)
    _started_at: float = field(default_factory=time.monotonic, init=False)
    _finished_at: float | None = field(default=None, init=False)

    @classmethod
    def create(
        cls,
        name: str,
        kind: ResultKind = ResultKind.UNKNOWN,
        *,
        cause: Cause | None = None,
    ) -> "CommandResult":
        return cls(name=name, kind=kind, cause=cause)

    @property
    def state(self) -> ResultState:
        return self._state

    @property
    def detail(self) -> Mapping[str, Any]:
        return self._detail

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def is_success(self) -> bool:
        return self._state is ResultState.SUCCESS

    @property
    def is_error(self) -> bool:
        return self._state is ResultState.ERROR

    @property
    def duration(self) -> float:
        """Seconds between creation and transition (or now, while pending)."""

        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self._started_at

    def mark_success(self, detail: Mapping[str, Any] | None = None) -> "CommandResult":
        self._finish(ResultState.SUCCESS, detail, None)
        return self

    def mark_error(
        self,
        error: BaseException,
        detail: Mapping[str, Any] | None = None,
    ) -> "CommandResult":
        if not isinstance(error, BaseException):
            raise TypeError(f"mark_error expects an exception, got {type(error).__name__}")
        self._finish(ResultState.ERROR, detail, error)
        return self

    def raise_for_error(self) -> "CommandResult":
        """Re-raise the stored error, otherwise return ``self``."""

        if self._state is ResultState.PENDING:
            raise RuntimeError(f"Result '{self.name}' is still pending")
        if self._error is not None:
            raise self._error
        return self

    def causes(self) -> Iterator[Cause]:
        """Yield the causal chain, nearest cause first."""

        current = self.cause
        while current is not None:
            yield current
            if isinstance(current, CommandResult):
                current = current.cause
            else:
                current = current.__cause__

    def _finish(
        self,
        state: ResultState,
        detail: Mapping[str, Any] | None,
        error: BaseException | None,
    ) -> None:
        if self._state is not ResultState.PENDING:
            raise ResultAlreadyFinalizedError(
                f"Result '{self.name}' already finished as {self._state}"
            )
        self._detail = MappingProxyType(dict(detail or {}))
        self._error = error
        self._state = state
        self._finished_at = time.monotonic()
        logger.debug(
            "command.result.finalized",
            extra={
                "result_name": self.name,
                "result_kind": str(self.kind),
                "result_state": str(state),
                "duration_seconds": round(self.duration, 3),
            },
        )
