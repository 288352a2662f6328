from __future__ import annotations

from pathlib import Path

import pytest

from common.settings import (
    DEFAULT_REMOTE_URL_TEMPLATE,
    DEFAULT_SLOT_QUOTA,
    AppConfig,
    ConfigError,
)

_VARS = (
    "FINTRACK_DATA_DIR",
    "FINTRACK_SLOT_QUOTA",
    "FINTRACK_REMOTE_URL_TEMPLATE",
    "FINTRACK_REMOTE_TIMEOUT",
    "FINTRACK_ALLOW_REMOTE_UNSET",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_env_unset():
    cfg = AppConfig.from_env()
    assert cfg.data_dir == Path(".fintrack")
    assert cfg.slot_path == Path(".fintrack") / "slots.json"
    assert cfg.slot_quota == DEFAULT_SLOT_QUOTA
    assert cfg.remote_url_template == DEFAULT_REMOTE_URL_TEMPLATE
    assert cfg.allow_remote_unset is False


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("FINTRACK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("FINTRACK_SLOT_QUOTA", "1024")
    monkeypatch.setenv("FINTRACK_REMOTE_URL_TEMPLATE", "http://localhost:8080/{key}")
    monkeypatch.setenv("FINTRACK_REMOTE_TIMEOUT", "2.5")
    monkeypatch.setenv("FINTRACK_ALLOW_REMOTE_UNSET", "Yes")

    cfg = AppConfig.from_env()
    assert cfg.slot_path == tmp_path / "slots.json"
    assert cfg.slot_quota == 1024
    assert cfg.remote_url_template == "http://localhost:8080/{key}"
    assert cfg.remote_timeout == 2.5
    assert cfg.allow_remote_unset is True


def test_blank_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("FINTRACK_SLOT_QUOTA", "")
    monkeypatch.setenv("FINTRACK_DATA_DIR", "")
    cfg = AppConfig.from_env()
    assert cfg.slot_quota == DEFAULT_SLOT_QUOTA
    assert cfg.data_dir == Path(".fintrack")


@pytest.mark.parametrize(
    "name,value",
    [
        ("FINTRACK_SLOT_QUOTA", "lots"),
        ("FINTRACK_SLOT_QUOTA", "-1"),
        ("FINTRACK_REMOTE_TIMEOUT", "soon"),
        ("FINTRACK_REMOTE_URL_TEMPLATE", "https://example.test/exec"),
    ],
)
def test_bad_values_raise_config_error(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        AppConfig.from_env()
