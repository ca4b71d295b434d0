from pathlib import Path

import pytest

from dropmap.config import DEFAULT_API_BASE, Settings, load_settings
from dropmap.errors import ConfigError


def test_defaults_when_env_is_empty(monkeypatch):
    monkeypatch.delenv("RAINDROP_TOKEN", raising=False)
    monkeypatch.delenv("RAINDROP_API_BASE", raising=False)
    s = Settings.from_env()
    assert s.token == ""
    assert s.api_base == DEFAULT_API_BASE
    assert s.max_retries == 3
    assert s.fetch_jobs == 1


def test_env_overrides_and_bad_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("RAINDROP_TOKEN", "  abc  ")
    monkeypatch.setenv("DROPMAP_MAX_RETRIES", "5")
    monkeypatch.setenv("DROPMAP_RETRY_DELAY_S", "not-a-number")
    monkeypatch.setenv("DROPMAP_NO_COLOR", "yes")
    s = Settings.from_env()
    assert s.token == "abc"
    assert s.max_retries == 5
    assert s.retry_delay_s == 1.0
    assert s.no_color is True


def test_missing_token_is_a_config_error(monkeypatch):
    monkeypatch.delenv("RAINDROP_TOKEN", raising=False)
    with pytest.raises(ConfigError):
        Settings.from_env().require_token()


def test_yaml_file_overrides_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("DROPMAP_FETCH_JOBS", "2")
    cfg = tmp_path / "dropmap.yaml"
    cfg.write_text("fetch_jobs: 3\nout_dir: exports\nunknown_key: 1\n", encoding="utf-8")
    s = load_settings(str(cfg))
    assert s.fetch_jobs == 3
    assert s.raindrops_path == Path("exports") / "all_raindrops_with_paths.csv"
    assert not hasattr(s, "unknown_key")


def test_yaml_values_take_the_setting_type(tmp_path: Path):
    cfg = tmp_path / "dropmap.yaml"
    cfg.write_text(
        "max_retries: '4'\nretry_delay_s: 2\nno_color: 'yes'\ntimeout_s: soon\nlog_level: 10\ntoken: null\n",
        encoding="utf-8",
    )
    s = load_settings(str(cfg))
    assert s.max_retries == 4
    assert s.retry_delay_s == 2.0 and isinstance(s.retry_delay_s, float)
    assert s.no_color is True
    assert s.timeout_s == 30
    assert s.log_level == "10"
