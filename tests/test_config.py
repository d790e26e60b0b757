"""Config loading and profile overlay."""

import logging
from pathlib import Path

from cazino.config import get_settings, load_config

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config"


def test_shipped_defaults():
    settings = get_settings(config_dir=REPO_CONFIG)
    assert settings.storage_backend == "duckdb"
    assert settings.default_starting_balance == 1000
    assert settings.default_duration_hours == 24
    assert settings.api_port == 3000


def test_dev_profile_overlays_default():
    settings = get_settings("dev", REPO_CONFIG)
    assert settings.storage_backend == "memory"
    assert settings.logging_level == "DEBUG"
    assert settings.logging_level_num == logging.DEBUG
    # untouched keys survive the merge
    assert settings.db_path == "data/cazino.duckdb"


def test_deep_merge_and_missing_profile(tmp_path):
    (tmp_path / "default.toml").write_text('[market]\ndefault_starting_balance = 1000\ninvite_code_attempts = 10\n')
    (tmp_path / "party.toml").write_text("[market]\ndefault_starting_balance = 50\n")
    raw = load_config("party", tmp_path)
    assert raw["market"] == {"default_starting_balance": 50, "invite_code_attempts": 10}
    assert load_config("nope", tmp_path)["market"]["default_starting_balance"] == 1000


def test_empty_config_dir_uses_builtin_defaults(tmp_path):
    assert load_config(config_dir=tmp_path) == {}
    settings = get_settings(config_dir=tmp_path)
    assert settings.storage_backend == "duckdb"
    assert settings.invite_code_attempts == 10
    assert settings.logging_level == "INFO"
    assert settings.api_host == "127.0.0.1"
