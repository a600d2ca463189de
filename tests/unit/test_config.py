"""Tests for configuration loading."""

import pytest

from jwdoc.config import load_config
from jwdoc.keys import get_cache
from jwdoc.persistence import InMemoryJWKSetStore, SQLiteJWKSetStore, get_store


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
cache:
  max_entries: 25
fetch:
  timeout: 2.5
database_url: memory://
"""
    )
    monkeypatch.setenv("JWDOC_CONFIG", str(config_path))
    monkeypatch.delenv("JWDOC_DATABASE_URL", raising=False)

    config = load_config()
    assert config.cache.max_entries == 25
    assert config.fetch.timeout == 2.5
    assert config.database_url == "memory://"


def test_missing_file_yields_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("JWDOC_DATABASE_URL", raising=False)
    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.cache.max_entries == 100
    assert config.fetch.timeout == 5.0
    assert config.database_url is None


def test_database_url_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("JWDOC_DATABASE_URL", f"sqlite://{tmp_path / 'jwks.db'}")
    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.database_url.startswith("sqlite://")
    assert isinstance(get_store(config=config), SQLiteJWKSetStore)


def test_get_store_backends(tmp_path, monkeypatch):
    monkeypatch.delenv("JWDOC_DATABASE_URL", raising=False)
    monkeypatch.setenv("JWDOC_CONFIG", str(tmp_path / "absent.yaml"))

    assert isinstance(get_store("memory://"), InMemoryJWKSetStore)
    assert isinstance(get_store(f"sqlite://{tmp_path / 'jwks.db'}"), SQLiteJWKSetStore)
    assert get_store() is None
    with pytest.raises(ValueError):
        get_store("mongodb://localhost")


def test_get_cache_uses_config(tmp_path, monkeypatch):
    monkeypatch.setattr("jwdoc.keys._cache_instance", None)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
cache:
  max_entries: 3
database_url: memory://
"""
    )
    monkeypatch.setenv("JWDOC_CONFIG", str(config_path))
    monkeypatch.delenv("JWDOC_DATABASE_URL", raising=False)

    cache = get_cache(load_config())
    assert cache.max_entries == 3
    assert isinstance(cache.store, InMemoryJWKSetStore)
    assert get_cache() is cache
