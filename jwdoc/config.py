"""Configuration for key resolution and key set persistence."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

CONFIG_ENV = "JWDOC_CONFIG"
DATABASE_URL_ENV = "JWDOC_DATABASE_URL"


class CacheConfig(BaseModel):
    """Settings for the in-memory key set cache."""

    max_entries: int = Field(default=100, ge=1)


class FetchConfig(BaseModel):
    """Settings for fetching remote key sets."""

    timeout: float = Field(default=5.0, gt=0)


class JwdocConfig(BaseModel):
    """Top-level configuration model."""

    cache: CacheConfig = CacheConfig()
    fetch: FetchConfig = FetchConfig()
    database_url: Optional[str] = None


def load_config(path: Optional[str] = None) -> JwdocConfig:
    """Load configuration from a YAML file.

    Args:
        path: Optional path to the config file. Falls back to the
            ``JWDOC_CONFIG`` environment variable, then ``config.yaml`` in
            the current directory. A missing file yields the defaults.

    ``JWDOC_DATABASE_URL`` takes precedence over ``database_url`` from
    the file.
    """

    config_path = Path(path or os.getenv(CONFIG_ENV, "config.yaml"))
    data = {}
    if config_path.exists():
        data = yaml.safe_load(config_path.read_text()) or {}
    config = JwdocConfig.model_validate(data)

    database_url = os.getenv(DATABASE_URL_ENV)
    if database_url:
        config = config.model_copy(update={"database_url": database_url})
    return config
