"""Tests for client configuration loading."""

import pytest
import yaml

from taskflow_client.config import ClientConfig, load_config


def test_load_config_from_yaml(tmp_path, monkeypatch):
    config_data = {
        "server": {"url": "https://taskflow.example.com", "verify_tls": False},
        "credentials": {"email": "me@example.com", "password_env": "MY_TF_PASSWORD"},
        "polling": {"board_interval_seconds": 2},
    }
    path = tmp_path / "client.yaml"
    path.write_text(yaml.dump(config_data))
    monkeypatch.setenv("MY_TF_PASSWORD", "s3cret-pass")

    cfg = load_config(path)
    assert cfg.server.url == "https://taskflow.example.com"
    assert cfg.server.verify_tls is False
    assert cfg.credentials.password == "s3cret-pass"
    assert cfg.polling.board_interval_seconds == 2
    assert cfg.polling.task_interval_seconds == 10


def test_load_config_defaults():
    cfg = ClientConfig()
    assert cfg.server.url == "http://localhost:8000"
    assert cfg.polling.board_interval_seconds == 5
    assert cfg.polling.task_interval_seconds == 10
    assert cfg.logging.format == "json"


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == ClientConfig()


def test_load_config_file_not_found():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")


def test_non_positive_interval_rejected():
    with pytest.raises(ValueError):
        ClientConfig.model_validate({"polling": {"board_interval_seconds": 0}})
