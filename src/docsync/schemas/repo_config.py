"""Schema for .docsync.yaml configuration files."""

from typing import Literal

from pydantic import BaseModel, Field

from ..config import settings


class SaveConfig(BaseModel):
    """Autosave behaviour, overridable per repository."""

    auto_commit_delay_seconds: float = Field(
        default_factory=lambda: settings.auto_commit_delay_seconds
    )
    save_strategy: Literal["main", "branch"] = Field(
        default_factory=lambda: settings.save_strategy
    )
    auto_branch_prefix: str = Field(default_factory=lambda: settings.auto_branch_prefix)
    exclude_branches: list[str] = Field(default_factory=lambda: list(settings.exclude_branches))
    file_pattern: str = Field(default_factory=lambda: settings.file_pattern)
    commit_on_close: bool = Field(default_factory=lambda: settings.commit_on_close)
    auto_create_pr: bool = Field(default_factory=lambda: settings.auto_create_pr)
    auto_create_pr_title: str = Field(default_factory=lambda: settings.auto_create_pr_title)

    @classmethod
    def get_default(cls) -> "SaveConfig":
        """Return default configuration."""
        return cls()
