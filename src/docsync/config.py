"""Application configuration using Pydantic settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Local comment store (SQLAlchemy async URL)
    database_url: str = Field(
        "sqlite+aiosqlite:///./docsync.db",
        description="SQLAlchemy connection string for the local comment store",
    )

    # GitHub
    github_token: str = Field("", description="Token used for the GitHub REST/GraphQL APIs")
    github_api_url: str = Field("https://api.github.com")
    github_webhook_secret: str = Field(
        "",
        description="Webhook secret for signature verification",
    )

    # Autosave
    auto_commit_delay_seconds: float = Field(
        5.0,
        description="Idle time before an edit is auto-committed (<= 0 disables autosave)",
    )
    save_strategy: Literal["main", "branch"] = Field(
        "main",
        description="'branch' commits a session's edits to a freshly created branch",
    )
    auto_branch_prefix: str = Field("docsync/")
    exclude_branches: list[str] = Field(default_factory=list)
    file_pattern: str = Field("**/*", description="Only autosave files matching this glob")
    commit_on_close: bool = Field(True)
    auto_create_pr: bool = Field(False)
    auto_create_pr_title: str = Field("Auto-save changes from docsync")
    save_status_display_seconds: float = Field(
        3.0,
        description="How long a saved/error status stays visible before reverting to idle",
    )

    # Comment sync
    inbound_poll_interval_seconds: float = Field(
        30.0,
        description="Interval between inbound review comment polls while a PR is active",
    )
    orphan_sweep_debounce_seconds: float = Field(0.5)

    # Server
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
    log_level: str = Field("INFO")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
