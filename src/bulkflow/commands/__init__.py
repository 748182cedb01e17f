"""External command execution and output classification."""

from .command_classifier import CliEnvelope, Classification, OpaqueOutput, classify, decode_output
from .command_executor import CommandExecutor
from .command_models import (
    CliEnvironment,
    CommandDefinition,
    CommandOutcome,
    CommandOutput,
    CommandSpec,
)
from .command_runner import CommandRunner

__all__ = [
    "CliEnvelope",
    "CliEnvironment",
    "Classification",
    "CommandDefinition",
    "CommandExecutor",
    "CommandOutcome",
    "CommandOutput",
    "CommandRunner",
    "CommandSpec",
    "OpaqueOutput",
    "classify",
    "decode_output",
]
