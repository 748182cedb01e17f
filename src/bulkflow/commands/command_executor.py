"""Run one external command and capture its output streams."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import IO, Mapping

from ..exceptions import TransportError
from .command_models import CommandOutput, CommandSpec

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 64 * 1024


def redirected_output_placeholder(exit_code: int, output_path: str) -> str:
    """Structured stand-in for stdout that was redirected to a file."""

    return json.dumps({"exitCode": exit_code, "outputFile": output_path})


async def _drain(stream: asyncio.StreamReader | None) -> bytes:
    if stream is None:
        return b""
    chunks: list[bytes] = []
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@dataclass(slots=True)
class CommandExecutor:
    """Spawn commands as child processes.

    The executor never interprets exit codes. Non-zero exits come back as a
    regular :class:`CommandOutput`; only a process that cannot be spawned
    raises :class:`TransportError`.
    """

    base_environment: Mapping[str, str] | None = None
    encoding: str = "utf-8"
    log: logging.Logger = field(default_factory=lambda: logger)

    async def execute(self, spec: CommandSpec) -> CommandOutput:
        env = spec.environment.merged_with(
            self.base_environment if self.base_environment is not None else os.environ
        )
        display = spec.display()
        self.log.info("command.exec.start", extra={"command": display})

        with ExitStack() as stack:
            stdout_target: int | IO[bytes] = asyncio.subprocess.PIPE
            if spec.output_path is not None:
                spec.output_path.parent.mkdir(parents=True, exist_ok=True)
                stdout_target = stack.enter_context(spec.output_path.open("wb"))

            try:
                if isinstance(spec.command, str):
                    process = await asyncio.create_subprocess_shell(
                        spec.command,
                        stdout=stdout_target,
                        stderr=asyncio.subprocess.PIPE,
                        env=env,
                        cwd=spec.cwd,
                    )
                else:
                    process = await asyncio.create_subprocess_exec(
                        *spec.command,
                        stdout=stdout_target,
                        stderr=asyncio.subprocess.PIPE,
                        env=env,
                        cwd=spec.cwd,
                    )
            except OSError as exc:
                self.log.error(
                    "command.exec.spawn_failed",
                    extra={"command": display, "error": str(exc)},
                )
                raise TransportError(
                    f"Could not start '{display}': {exc}", stderr=str(exc)
                ) from exc

            try:
                stdout_bytes, stderr_bytes = await asyncio.gather(
                    _drain(process.stdout), _drain(process.stderr)
                )
                returncode = await process.wait()
            except asyncio.CancelledError:
                if process.returncode is None:
                    process.kill()
                    await process.wait()
                self.log.warning("command.exec.cancelled", extra={"command": display})
                raise

        exit_code, signal = _split_returncode(returncode)
        stdout = stdout_bytes.decode(self.encoding, errors="replace")
        stderr = stderr_bytes.decode(self.encoding, errors="replace")
        if spec.output_path is not None and not stdout:
            stdout = redirected_output_placeholder(exit_code, str(spec.output_path))

        self.log.info(
            "command.exec.finished",
            extra={
                "command": display,
                "exit_code": exit_code,
                "signal": signal,
                "stdout_bytes": len(stdout_bytes),
                "stderr_bytes": len(stderr_bytes),
            },
        )
        return CommandOutput(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            signal=signal,
            output_path=spec.output_path,
        )


def _split_returncode(returncode: int) -> tuple[int, int | None]:
    # asyncio reports death-by-signal as a negative return code
    if returncode < 0:
        return 128 - returncode, -returncode
    return returncode, None
