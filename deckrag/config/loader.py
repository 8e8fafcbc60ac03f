"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. ``_DEFAULTS``           -- built-in values, so a missing YAML file still works
  2. config/config.yaml      -- static defaults checked into the repo
  3. .env / environment vars -- via :class:`Settings`, for deploy-time values

``_deep_merge`` merges nested sections key by key::

    base      = {"chunking": {"target_size": 1000}}
    overrides = {"chunking": {"overlap": 150}}
    result    = {"chunking": {"target_size": 1000, "overlap": 150}}
"""

import copy
from pathlib import Path
from typing import Any

import yaml

from deckrag.config.settings import Settings

_DEFAULTS: dict[str, Any] = {
    "chunking": {"target_size": 1000, "overlap": 200},
    "embedding": {
        "max_attempts": 3,
        "initial_delay": 1.0,
        "batch_size": 100,
        "batch_concurrency": 10,
        "batch_delay": 0.5,
    },
    "ingestion": {"embed_delay": 0.1},
    "retrieval": {"top_k": 5, "num_candidates": 100},
    "chat": {"history_messages": 6, "temperature": 0.4, "max_tokens": 2048},
    "seed": {"lease_ttl_seconds": 300},
    "cache": {"max_size": 512, "ttl": 3600},
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh :class:`Settings` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config = copy.deepcopy(_DEFAULTS)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
            "max_upload_bytes": settings.max_upload_bytes,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
        },
        "storage": {
            "database_path": settings.database_path,
            "chromadb_persist_dir": settings.chromadb_persist_dir,
            "chromadb_collection": settings.chromadb_collection,
            "vector_index_enabled": settings.vector_index_enabled,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
