"""Tests for journey configuration loading."""

import pytest
from pydantic import ValidationError

from issuance.utils.config_loader import DEFAULT_CONFIG_PATH, JourneyConfig, load_journey_config


def _write(tmp_path, text):
    path = tmp_path / "journey.yml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_file_or_env(tmp_path, monkeypatch):
    monkeypatch.setattr("issuance.utils.config_loader.DEFAULT_CONFIG_PATH", tmp_path / "missing.yml")

    config = load_journey_config(env={})

    assert config == JourneyConfig()
    assert config.api.api_key_header == "X-API-Key"
    assert config.polling.interval_ms == 2000
    assert config.polling.max_attempts == 15
    assert config.polling.interval_seconds == 2.0


def test_shipped_config_file_loads():
    assert DEFAULT_CONFIG_PATH.exists()
    config = load_journey_config(DEFAULT_CONFIG_PATH, env={})
    assert config.api.base_url == "http://localhost:8080/api/v1"
    assert config.diagnostics_history == 20


def test_yaml_values_are_applied(tmp_path):
    path = _write(
        tmp_path,
        "api:\n  base_url: https://issuance.example.com/api/v1\n  api_key: from-file\n"
        "polling:\n  interval_ms: 500\n  max_attempts: 4\n",
    )

    config = load_journey_config(path, env={})

    assert config.api.base_url == "https://issuance.example.com/api/v1"
    assert config.api.api_key == "from-file"
    assert config.polling.interval_seconds == 0.5
    assert config.polling.max_attempts == 4


def test_environment_overrides_file(tmp_path):
    path = _write(tmp_path, "api:\n  api_key: from-file\npolling:\n  max_attempts: 4\n")
    env = {
        "ISSUANCE_API_URL": "http://other:9000/api/v1",
        "ISSUANCE_API_KEY": "from-env",
        "ISSUANCE_POLL_MAX_ATTEMPTS": "7",
        "ISSUANCE_API_TIMEOUT": "",
    }

    config = load_journey_config(path, env=env)

    assert config.api.base_url == "http://other:9000/api/v1"
    assert config.api.api_key == "from-env"
    assert config.polling.max_attempts == 7
    assert config.api.timeout_seconds == 15.0


def test_explicit_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_journey_config(tmp_path / "nope.yml", env={})


def test_invalid_values_raise_validation_error(tmp_path):
    path = _write(tmp_path, "polling:\n  max_attempts: 0\n")
    with pytest.raises(ValidationError):
        load_journey_config(path, env={})


def test_non_mapping_file_is_rejected(tmp_path):
    path = _write(tmp_path, "- just\n- a list\n")
    with pytest.raises(ValueError):
        load_journey_config(path, env={})
