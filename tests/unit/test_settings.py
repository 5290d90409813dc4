from pathlib import Path

import pytest

from gatekeepr_config import settings as cfg


@pytest.mark.parametrize("value,expected", [
    ("1", True),
    ("true", True),
    ("yes", True),
    ("on", True),
    ("0", False),
    ("false", False),
    ("", False),
])
def test_env_flag(monkeypatch, value, expected):
    monkeypatch.setenv("GATEKEEPR_API_DEBUG", value)
    assert cfg.env_flag("GATEKEEPR_API_DEBUG") is expected


def test_env_numbers_fall_back_on_garbage(monkeypatch):
    monkeypatch.setenv("GATEKEEPR_API_PORT", "eighty")
    monkeypatch.setenv("GATEKEEPR_RULES_POLL_INTERVAL", "0.5")
    assert cfg.env_int("GATEKEEPR_API_PORT", 8080) == 8080
    assert cfg.env_float("GATEKEEPR_RULES_POLL_INTERVAL", 5.0) == 0.5


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("GATEKEEPR_RULES_PATH", str(tmp_path / "r.json"))
    monkeypatch.setenv("GATEKEEPR_ACCESS_RESET_WINDOW_MS", "1000")
    monkeypatch.setenv("GATEKEEPR_TRANSIT_BASE_URL", "http://pm:9000/api")
    monkeypatch.setenv("GATEKEEPR_TRANSIT_API_KEY", "k")
    monkeypatch.delenv("GATEKEEPR_SOURCE_BASE_URL", raising=False)

    s = cfg.Settings.from_env()

    assert s.rules_path == (tmp_path / "r.json").resolve()
    assert s.access_reset_window_ms == 1000
    assert s.access_evict_after_windows == 10
    assert s.transit_base_url == "http://pm:9000/api"
    assert s.transit_api_key == "k"
    assert s.source_base_url == ""
    assert s.api_port == 8080


def test_repo_root_override(monkeypatch, tmp_path):
    cfg.repo_root.cache_clear()
    monkeypatch.setenv("GATEKEEPR_REPO_ROOT", str(tmp_path))
    try:
        assert cfg.repo_root() == Path(tmp_path).resolve()
    finally:
        cfg.repo_root.cache_clear()


def test_dotenv_does_not_override_existing(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("GATEKEEPR_TRANSIT_API_KEY=from-file\nGATEKEEPR_API_HOST=127.0.0.1\n")
    monkeypatch.setenv("GATEKEEPR_ENV_FILE", str(env_file))
    monkeypatch.setenv("GATEKEEPR_TRANSIT_API_KEY", "from-env")
    monkeypatch.delenv("GATEKEEPR_API_HOST", raising=False)

    cfg.load_env_once.cache_clear()
    try:
        assert cfg.load_env_once() == env_file.resolve()
        s = cfg.Settings.from_env()
        assert s.transit_api_key == "from-env"
        assert s.api_host == "127.0.0.1"
    finally:
        cfg.load_env_once.cache_clear()
