from pathlib import Path

import pytest

from title_ledger.config.settings import AppSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATA_FILE", "LOG_LEVEL", "LOG_FILE", "SAVE_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = AppSettings(_env_file=None)
    assert settings.data_file == Path("championship_data.json")
    assert settings.save_attempts == 3
    assert settings.recent_matches_limit == 10
    assert settings.log_file is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DATA_FILE", str(tmp_path / "ledger.json"))
    monkeypatch.setenv("save_attempts", "5")
    settings = AppSettings(_env_file=None)
    assert settings.data_file == tmp_path / "ledger.json"
    assert settings.save_attempts == 5


def test_log_level_is_normalised():
    assert load_settings(_env_file=None, log_level="debug").log_level == "DEBUG"
    assert load_settings(_env_file=None, log_level="chatty").log_level == "INFO"


def test_invalid_settings_exit():
    with pytest.raises(SystemExit):
        load_settings(_env_file=None, save_attempts=0)
