"""Classify finished commands into success, transport or remote failures.

The CLI prints a JSON envelope (``{"status": 0, "result": ...}``), sometimes
preceded by spinner noise. Decoding is a two-step tagged variant: the text
between the first ``{`` and the last ``}`` is parsed and validated as a
:class:`CliEnvelope`; anything that does not fit becomes
:class:`OpaqueOutput`. Success requires both a zero exit code *and* an
envelope without an error status.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, StrictInt, ValidationError

from ..exceptions import RemoteServiceError, TransportError
from .command_models import CommandOutcome, CommandOutput

__all__ = [
    "CliEnvelope",
    "OpaqueOutput",
    "Classification",
    "decode_output",
    "extract_json",
    "classify",
]


class CliEnvelope(BaseModel):
    """Structured JSON envelope printed by the CLI."""

    model_config = ConfigDict(extra="allow")

    status: StrictInt = 0
    name: str | None = None
    message: str | None = None
    result: Any = None
    warnings: list[Any] = []
    stack: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status != 0


@dataclass(frozen=True, slots=True)
class OpaqueOutput:
    """Output that could not be decoded into an envelope."""

    raw: str
    reason: str


DecodedOutput = Union[CliEnvelope, OpaqueOutput]


@dataclass(frozen=True, slots=True)
class Classification:
    outcome: CommandOutcome
    decoded: DecodedOutput
    error: TransportError | RemoteServiceError | None = None

    @property
    def envelope(self) -> CliEnvelope | None:
        return self.decoded if isinstance(self.decoded, CliEnvelope) else None


def extract_json(buffer: str) -> Any:
    """Parse the substring between the first ``{`` and the last ``}``.

    Raises :class:`ValueError` when no such substring exists or it is not JSON.
    """

    start = buffer.find("{")
    end = buffer.rfind("}")
    if start == -1 or end < start:
        raise ValueError("no JSON object found in output")
    return json.loads(buffer[start : end + 1])


def decode_output(buffer: str) -> DecodedOutput:
    try:
        parsed = extract_json(buffer)
    except ValueError as exc:
        return OpaqueOutput(raw=buffer, reason=str(exc))
    if not isinstance(parsed, dict):
        return OpaqueOutput(raw=buffer, reason="JSON payload is not an object")
    try:
        return CliEnvelope.model_validate(parsed)
    except ValidationError as exc:
        return OpaqueOutput(raw=buffer, reason=f"unrecognised envelope: {exc.error_count()} error(s)")


def classify(output: CommandOutput, *, command: str = "command") -> Classification:
    """Classify ``output``; pure and deterministic for a given triple."""

    decoded = decode_output(output.stdout)

    if isinstance(decoded, CliEnvelope) and decoded.is_error:
        message = decoded.message or decoded.name or "remote service reported an error"
        error = RemoteServiceError(
            f"{command} failed (status {decoded.status}): {message}",
            status=decoded.status,
            payload=decoded.model_dump(),
            stdout=output.stdout,
            stderr=output.stderr,
        )
        return Classification(CommandOutcome.REMOTE_ERROR, decoded, error)

    if output.exit_code != 0 or isinstance(decoded, OpaqueOutput):
        if output.exit_code != 0:
            message = f"{command} exited with code {output.exit_code}"
        else:
            message = f"{command} produced no usable output ({decoded.reason})"
        if output.signal is not None:
            message += f" (signal {output.signal})"
        error = TransportError(
            message,
            exit_code=output.exit_code,
            signal=output.signal,
            stdout=output.stdout,
            stderr=output.stderr,
        )
        return Classification(CommandOutcome.TRANSPORT_ERROR, decoded, error)

    return Classification(CommandOutcome.SUCCESS, decoded)
