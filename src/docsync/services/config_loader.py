"""Load and cache per-repository autosave configuration."""

import logging
import time

import yaml

from ..schemas.repo_config import SaveConfig
from .github_client import GitHubClient

logger = logging.getLogger(__name__)

CONFIG_FILE = ".docsync.yaml"

# Cache config for 5 minutes to avoid hitting GitHub API on every open
CONFIG_CACHE_TTL = 5 * 60

_config_cache: dict[tuple[str, str, str], tuple[SaveConfig, float]] = {}


async def load_save_config(
    gh: GitHubClient,
    owner: str,
    repo: str,
    ref: str,
) -> SaveConfig:
    """
    Load .docsync.yaml from the repository.

    Strategy:
    1. Return a cached config if it is still fresh
    2. Otherwise fetch from GitHub and cache
    3. If the file doesn't exist or can't be parsed, return defaults
    """
    key = (owner, repo, ref)
    cached = _config_cache.get(key)
    if cached and time.monotonic() - cached[1] < CONFIG_CACHE_TTL:
        return cached[0]

    try:
        remote = await gh.get_content(owner, repo, CONFIG_FILE, ref)
        config_dict = yaml.safe_load(remote.content)
        config = SaveConfig(**config_dict) if config_dict else SaveConfig()
    except Exception as e:
        logger.debug(f"No usable {CONFIG_FILE} in {owner}/{repo}@{ref}: {e}")
        config = SaveConfig()

    _config_cache[key] = (config, time.monotonic())
    return config


def clear_config_cache() -> None:
    _config_cache.clear()
