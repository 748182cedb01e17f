from __future__ import annotations

import pytest

from src.bulkflow.exceptions import ResultAlreadyFinalizedError, TransportError
from src.bulkflow.results import CommandResult, ResultKind, ResultState


def test_new_result_is_pending():
    result = CommandResult.create("sf org display", ResultKind.COMMAND)

    assert result.state is ResultState.PENDING
    assert not result.is_success
    assert not result.is_error
    assert result.duration >= 0


def test_success_is_final():
    result = CommandResult.create("step").mark_success({"records": 3})

    assert result.is_success
    assert result.detail["records"] == 3
    with pytest.raises(ResultAlreadyFinalizedError):
        result.mark_error(RuntimeError("late"))
    with pytest.raises(ResultAlreadyFinalizedError):
        result.mark_success()
    assert result.is_success
    assert result.error is None
    assert result.detail["records"] == 3
    assert result.raise_for_error() is result


def test_error_is_final():
    error = TransportError("exit 1", exit_code=1)
    result = CommandResult.create("step", ResultKind.EXECUTOR).mark_error(error)

    assert result.is_error
    assert result.error is error
    with pytest.raises(ResultAlreadyFinalizedError):
        result.mark_success()
    with pytest.raises(ResultAlreadyFinalizedError):
        result.mark_error(ValueError("late"), {"stdout": "late"})
    assert result.is_error
    assert result.error is error
    assert dict(result.detail) == {}


def test_duration_freezes_on_transition():
    result = CommandResult.create("step").mark_success()

    first = result.duration
    assert result.duration == first


def test_detail_is_read_only_and_detached():
    payload = {"stdout": "{}"}
    result = CommandResult.create("step").mark_success(payload)
    payload["stdout"] = "changed"

    assert result.detail["stdout"] == "{}"
    with pytest.raises(TypeError):
        result.detail["stdout"] = "mutated"  # type: ignore[index]


def test_mark_error_requires_exception():
    result = CommandResult.create("step")

    with pytest.raises(TypeError):
        result.mark_error("not an exception")  # type: ignore[arg-type]
    assert result.state is ResultState.PENDING


def test_raise_for_error():
    error = ValueError("bad")
    failed = CommandResult.create("failed").mark_error(error)
    ok = CommandResult.create("ok").mark_success()

    with pytest.raises(ValueError):
        failed.raise_for_error()
    assert ok.raise_for_error() is ok
    with pytest.raises(RuntimeError):
        CommandResult.create("pending").raise_for_error()


def test_causes_walk_results_then_exceptions():
    root = OSError("spawn failed")
    wrapped = TransportError("could not start")
    wrapped.__cause__ = root
    inner = CommandResult.create("executor", ResultKind.EXECUTOR, cause=wrapped)
    outer = CommandResult.create("utility", ResultKind.UTILITY, cause=inner)

    assert list(outer.causes()) == [inner, wrapped, root]
    assert list(CommandResult.create("alone").causes()) == []
