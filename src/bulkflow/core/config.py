"""Settings for bulk ingest runs.

Values are read from ``BULKFLOW_*`` environment variables. The access token
is taken as-is; obtaining or refreshing it is left to the CLI (see
:func:`bulkflow.org_connection.describe_org`).
"""

from __future__ import annotations

from typing import Any, Dict, cast

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..commands.command_models import DEFAULT_CLI_ENVIRONMENT, CliEnvironment


class BulkflowConfig(BaseSettings):
    """Pydantic settings container for the ingest pipeline."""

    model_config = cast(Any, SettingsConfigDict(env_prefix="BULKFLOW_"))

    instance_url: str | None = Field(
        default=None,
        description="Org instance URL, e.g. https://example.my.salesforce.com.",
    )
    access_token: str | None = Field(
        default=None,
        description="Session token sent as a Bearer credential.",
    )
    target_org: str | None = Field(
        default=None,
        description="CLI alias used to look up instance URL and token when not set directly.",
    )
    api_version: str = Field(
        default="59.0",
        pattern=r"^\d+\.\d$",
        description="REST API version used to build /services/data/vXX.X URLs.",
    )
    cli_executable: str = Field(
        default="sf",
        min_length=1,
        description="Name or path of the record service CLI.",
    )
    cli_environment: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_CLI_ENVIRONMENT),
        description="Environment overrides applied to every CLI invocation.",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        ge=0.1,
        description="Timeout applied to each REST request in seconds.",
    )
    poll_interval_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Delay between job status checks in seconds.",
    )
    poll_timeout_seconds: float = Field(
        default=600.0,
        gt=0.0,
        description="Hard upper bound on time spent polling one job in seconds.",
    )
    abort_on_timeout: bool = Field(
        default=False,
        description="Request the Aborted state when polling times out.",
    )

    def cli_env(self) -> CliEnvironment:
        return CliEnvironment(overrides=dict(self.cli_environment))

    @classmethod
    def build_default(cls) -> "BulkflowConfig":
        """Construct configuration with defaults and environment overrides."""

        return cls()


__all__ = ["BulkflowConfig"]
