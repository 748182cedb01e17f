"""Wire configuration, CLI lookups and the ingest service together."""

from __future__ import annotations

import logging

from ..bulk import BulkApiClient, BulkIngestService
from ..commands import CommandExecutor, CommandRunner
from ..org_connection import describe_org
from .config import BulkflowConfig

logger = logging.getLogger(__name__)


async def create_bulk_client(config: BulkflowConfig, *, runner: CommandRunner | None = None) -> BulkApiClient:
    """Build a REST client from explicit credentials or the configured CLI alias."""

    if config.instance_url and config.access_token:
        return BulkApiClient(
            instance_url=config.instance_url,
            access_token=config.access_token,
            api_version=config.api_version,
            timeout_seconds=config.request_timeout_seconds,
        )
    if not config.target_org:
        raise ValueError("Set BULKFLOW_INSTANCE_URL and BULKFLOW_ACCESS_TOKEN, or BULKFLOW_TARGET_ORG")

    runner = runner or CommandRunner(executor=CommandExecutor())
    connection, _ = await describe_org(
        config.target_org,
        runner=runner,
        executable=config.cli_executable,
        environment=config.cli_env(),
    )
    logger.info("app.client.from_cli", extra={"alias": config.target_org})
    return BulkApiClient(
        instance_url=connection.instance_url,
        access_token=connection.access_token,
        api_version=config.api_version,
        timeout_seconds=config.request_timeout_seconds,
    )


def create_ingest_service(config: BulkflowConfig, client: BulkApiClient) -> BulkIngestService:
    return BulkIngestService(
        transport=client,
        poll_interval_seconds=config.poll_interval_seconds,
        poll_timeout_seconds=config.poll_timeout_seconds,
        abort_on_timeout=config.abort_on_timeout,
    )
