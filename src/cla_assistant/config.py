"""Configuration for the CLA assistant.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Unlike most GitHub tooling, no token is required at startup: repositories carry
their own stored token (captured when they are linked) and requests carry the
authenticated user's token. `CLA_GITHUB_TOKEN` is only read by the CLI, as the
repository admin token of administrative commands.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClaSettings(BaseSettings):
    """Settings for the CLA services, REST API and CLI.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ClaSettings(_env_file=path_to_env)`.
    """

    github_token: str = Field(
        default="",
        validation_alias="CLA_GITHUB_TOKEN",
        description="Repository admin token used by the validate-prs and upload CLI commands",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )

    app_base_url: str = Field(
        default="http://localhost:5000",
        validation_alias="CLA_APP_BASE_URL",
        description="Public URL of this service; commit statuses and comments link here",
    )
    status_context: str = Field(
        default="licence/cla",
        validation_alias="CLA_STATUS_CONTEXT",
        description="Context tag of the commit status written to pull requests",
    )

    state_path: Path = Field(
        default=Path("cla_state"),
        validation_alias="CLA_STATE_PATH",
        description="Directory where linked repositories and signatures are persisted",
    )

    fanout_workers: int = Field(
        default=4,
        validation_alias="CLA_FANOUT_WORKERS",
        description="Worker threads used to update pull requests after a sign or validation",
        ge=1,
        le=64,
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    host: str = Field(default="127.0.0.1", validation_alias="CLA_HOST")
    port: int = Field(default=5000, validation_alias="CLA_PORT", ge=1, le=65535)

    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="CLA_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def repos_state_file(self) -> Path:
        """Path where linked repositories are persisted."""

        return self.state_path / "repos.json"

    @property
    def signatures_state_file(self) -> Path:
        """Path where CLA signatures are persisted."""

        return self.state_path / "signatures.json"
