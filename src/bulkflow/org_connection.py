"""Look up connection details of an org already authenticated in the CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .commands import CliEnvironment, CommandDefinition, CommandRunner
from .exceptions import RemoteServiceError
from .results import CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OrgConnection:
    """Connection details needed by :class:`~bulkflow.bulk.BulkApiClient`."""

    alias: str
    username: str | None
    instance_url: str
    access_token: str
    api_version: str


def parse_org_display(alias: str, result: Mapping[str, Any]) -> OrgConnection:
    instance_url = result.get("instanceUrl")
    access_token = result.get("accessToken")
    if not instance_url or not access_token:
        raise RemoteServiceError(
            f"Org '{alias}' did not report an instance URL and access token",
            payload=dict(result),
        )
    return OrgConnection(
        alias=result.get("alias") or alias,
        username=result.get("username"),
        instance_url=instance_url,
        access_token=access_token,
        api_version=str(result.get("apiVersion") or "59.0"),
    )


async def describe_org(
    alias: str,
    *,
    runner: CommandRunner | None = None,
    executable: str = "sf",
    environment: CliEnvironment | None = None,
) -> tuple[OrgConnection, CommandResult]:
    """Run ``org display`` for ``alias`` and return its connection details.

    Raises the classified error (transport or remote) when the command fails.
    """

    if not alias:
        raise ValueError("alias is required")
    runner = runner or CommandRunner()
    definition = CommandDefinition(
        command="org display",
        flags={"target-org": alias},
        executable=executable,
        environment=environment or CliEnvironment(),
    )
    result = await runner.run(definition)
    result.raise_for_error()

    parsed = result.detail.get("parsed") or {}
    payload = parsed.get("result") if isinstance(parsed, Mapping) else None
    if not isinstance(payload, Mapping):
        raise RemoteServiceError(f"Org '{alias}' display output had no result object")
    connection = parse_org_display(alias, payload)
    logger.info(
        "org.connection.resolved",
        extra={"alias": alias, "instance_url": connection.instance_url},
    )
    return connection, result
