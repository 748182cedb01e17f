"""Data structures for external command execution."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Mapping, Sequence

DEFAULT_CLI_ENVIRONMENT: Mapping[str, str] = {
    "SF_JSON_TO_STDOUT": "true",
    "SFDX_JSON_TO_STDOUT": "true",
    "SF_AUTOUPDATE_DISABLE": "true",
    "SFDX_AUTOUPDATE_DISABLE": "true",
    "FORCE_COLOR": "0",
    "NO_COLOR": "1",
}


@dataclass(frozen=True, slots=True)
class CliEnvironment:
    """Environment overrides applied to a single child process."""

    overrides: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_CLI_ENVIRONMENT))

    def merged_with(self, base: Mapping[str, str]) -> dict[str, str]:
        env = dict(base)
        env.update(self.overrides)
        return env

    def with_overrides(self, **extra: str) -> "CliEnvironment":
        combined = dict(self.overrides)
        combined.update(extra)
        return CliEnvironment(overrides=combined)


@dataclass(slots=True)
class CommandSpec:
    """Fully formed command line handed to the executor."""

    command: str | Sequence[str]
    environment: CliEnvironment = field(default_factory=CliEnvironment)
    output_path: Path | None = None
    cwd: Path | None = None

    @property
    def uses_shell(self) -> bool:
        return isinstance(self.command, str)

    def display(self) -> str:
        if isinstance(self.command, str):
            return self.command
        return shlex.join(self.command)


@dataclass(slots=True)
class CommandOutput:
    """Lossless capture of one finished child process."""

    exit_code: int
    stdout: str
    stderr: str
    signal: int | None = None
    output_path: Path | None = None


class CommandOutcome(StrEnum):
    """Three-way classification of a finished command."""

    SUCCESS = "success"
    TRANSPORT_ERROR = "transport_error"
    REMOTE_ERROR = "remote_error"


@dataclass(slots=True)
class CommandDefinition:
    """Declarative description of a CLI command.

    ``flags`` maps flag names to values. ``True`` renders a bare switch,
    ``False``/``None`` drops the flag, single-letter names get one hyphen.
    """

    command: str
    args: Sequence[str] = ()
    flags: Mapping[str, Any] = field(default_factory=dict)
    executable: str = "sf"
    json_output: bool = True
    environment: CliEnvironment = field(default_factory=CliEnvironment)
    output_path: Path | None = None

    def to_argv(self) -> list[str]:
        argv = [self.executable, *self.command.split(), *self.args]
        for name, value in self.flags.items():
            if value is None or value is False:
                continue
            hyphen = "-" if len(name) == 1 else "--"
            argv.append(f"{hyphen}{name}")
            if value is not True:
                argv.append(str(value))
        if self.json_output and "--json" not in argv:
            argv.append("--json")
        return argv

    def to_spec(self) -> CommandSpec:
        return CommandSpec(
            command=self.to_argv(),
            environment=self.environment,
            output_path=self.output_path,
        )
