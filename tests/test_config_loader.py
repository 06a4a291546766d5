"""Tests for .docsync.yaml loading."""

from conftest import FakeGitHub
from docsync.services.config_loader import CONFIG_FILE, load_save_config


async def test_defaults_when_missing():
    config = await load_save_config(FakeGitHub(), "acme", "docs", "main")

    assert config.save_strategy == "main"
    assert config.file_pattern == "**/*"


async def test_repository_overrides():
    gh = FakeGitHub(
        {
            (CONFIG_FILE, "main"): (
                "save_strategy: branch\n"
                "auto_branch_prefix: drafts/\n"
                "auto_create_pr: true\n"
                "exclude_branches: [release]\n"
            )
        }
    )
    config = await load_save_config(gh, "acme", "docs", "main")

    assert config.save_strategy == "branch"
    assert config.auto_branch_prefix == "drafts/"
    assert config.auto_create_pr is True
    assert config.exclude_branches == ["release"]


async def test_config_is_cached():
    gh = FakeGitHub()
    await load_save_config(gh, "acme", "docs", "main")
    await load_save_config(gh, "acme", "docs", "main")

    assert len(gh.called("get_content")) == 1


async def test_invalid_config_falls_back_to_defaults():
    gh = FakeGitHub({(CONFIG_FILE, "main"): "save_strategy: sideways\n"})
    config = await load_save_config(gh, "acme", "docs", "main")

    assert config.save_strategy == "main"
