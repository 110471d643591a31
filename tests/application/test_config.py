import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from lexora.application import config as config_module
from lexora.application.config import AppConfig, resolve_config


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    """No user config files or LEXORA_* variables leak into these tests."""
    monkeypatch.setattr(config_module, "CONFIG_FILES", [tmp_path / "missing.toml"])
    for name in list(os.environ):
        if name.startswith("LEXORA_"):
            monkeypatch.delenv(name)
    return tmp_path


def test_defaults():
    config = resolve_config()

    assert config.store == "memory"
    assert config.catalog_path is None
    assert config.initial_ease == 2.5
    assert config.free_daily_limit == 20
    assert config.premium_max_article_words == 5000
    assert config.default_timezone == "UTC"


def test_overrides_skip_none():
    config = resolve_config({"store": "sqlite", "catalog_path": None, "free_daily_limit": 5})

    assert config.store == "sqlite"
    assert config.catalog_path is None
    assert config.free_daily_limit == 5


def test_env_variables(monkeypatch):
    monkeypatch.setenv("LEXORA_FREE_DAILY_LIMIT", "7")
    monkeypatch.setenv("LEXORA_PREMIUM_USERS", '["alice", "bob"]')

    config = resolve_config()

    assert config.free_daily_limit == 7
    assert config.premium_users == ["alice", "bob"]


def test_toml_file(monkeypatch, isolated):
    toml = isolated / "config.toml"
    toml.write_text(
        'store = "sqlite"\n'
        "premium_daily_limit = -1\n"
        "\n"
        "[user_timezones]\n"
        'kenji = "Asia/Tokyo"\n'
    )
    monkeypatch.setattr(config_module, "CONFIG_FILES", [toml])

    config = resolve_config()

    assert config.store == "sqlite"
    assert config.premium_daily_limit == -1
    assert config.user_timezones == {"kenji": "Asia/Tokyo"}


def test_env_beats_toml(monkeypatch, isolated):
    toml = isolated / "config.toml"
    toml.write_text("free_daily_limit = 3\n")
    monkeypatch.setattr(config_module, "CONFIG_FILES", [toml])
    monkeypatch.setenv("LEXORA_FREE_DAILY_LIMIT", "4")

    assert resolve_config().free_daily_limit == 4
    assert resolve_config({"free_daily_limit": 5}).free_daily_limit == 5


def test_paths_expanded(isolated):
    config = resolve_config({"catalog_path": str(isolated / "words.yaml")})

    assert isinstance(config.catalog_path, Path)
    assert config.catalog_path.is_absolute()


def test_unknown_timezone_rejected():
    with pytest.raises(ValidationError):
        AppConfig(default_timezone="Mars/Olympus_Mons")


def test_non_positive_ease_rejected():
    with pytest.raises(ValidationError):
        AppConfig(min_ease=0)


def test_min_ease_above_initial_rejected():
    with pytest.raises(ValueError):
        resolve_config({"min_ease": 3.0, "initial_ease": 2.5})


def test_max_batch_size_raised_to_default():
    config = resolve_config({"default_batch_size": 50, "max_batch_size": 10})
    assert config.max_batch_size == 50
