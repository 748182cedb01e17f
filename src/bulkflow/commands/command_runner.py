"""Execute CLI commands and wrap the classified outcome in a result."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..exceptions import TransportError
from ..results import CommandResult, ResultKind
from .command_classifier import classify
from .command_executor import CommandExecutor
from .command_models import CommandDefinition, CommandSpec

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandRunner:
    """Run a command through the executor and classifier.

    ``run`` never raises for command failures; inspect the returned
    :class:`CommandResult` or call ``raise_for_error()``.
    """

    executor: CommandExecutor = field(default_factory=CommandExecutor)
    log: logging.Logger = field(default_factory=lambda: logger)

    async def run(self, definition: CommandDefinition) -> CommandResult:
        return await self.run_spec(
            definition.to_spec(),
            name=f"{definition.executable} {definition.command}",
        )

    async def run_spec(self, spec: CommandSpec, *, name: str | None = None) -> CommandResult:
        result_name = name or spec.display()
        result = CommandResult.create(result_name, ResultKind.COMMAND)
        detail: dict[str, object] = {"command": spec.display()}

        try:
            output = await self.executor.execute(spec)
        except TransportError as exc:
            return result.mark_error(exc, detail)

        classification = classify(output, command=result_name)
        detail.update(
            exit_code=output.exit_code,
            signal=output.signal,
            stdout=output.stdout,
            stderr=output.stderr,
            outcome=str(classification.outcome),
        )
        envelope = classification.envelope
        if envelope is not None:
            detail["parsed"] = envelope.model_dump()

        if classification.error is None:
            return result.mark_success(detail)

        self.log.warning(
            "command.run.failed",
            extra={
                "command": result_name,
                "outcome": str(classification.outcome),
                "exit_code": output.exit_code,
            },
        )
        return result.mark_error(classification.error, detail)
