# tests/jetson_setup/test_config_loader.py
import argparse
import logging
from unittest.mock import MagicMock

import pytest

from jetson_setup import config as static_config
from jetson_setup.config_loader import _deep_update, load_app_settings


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def write_config(tmp_path):
    def _write(text):
        path = tmp_path / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


def cli(**overrides):
    values = {"log_file": None, "state_dir": None, "verbose": False, "config": None}
    values.update(overrides)
    return argparse.Namespace(**values)


def test_deep_update_merges_nested_sections():
    source = {"glib": {"target_version": "2.76.6", "install_prefix": "/usr"}, "log_file": "a"}

    result = _deep_update(source, {"glib": {"target_version": "2.80.0"}, "log_file": None})

    assert result == {
        "glib": {"target_version": "2.80.0", "install_prefix": "/usr"},
        "log_file": "a",
    }


def test_defaults_without_any_source(mock_logger):
    settings = load_app_settings(current_logger=mock_logger)

    assert settings.log_file == static_config.LOG_FILE_DEFAULT
    assert settings.state_dir == static_config.STATE_DIR_DEFAULT
    assert settings.glib.target_version == static_config.GLIB_TARGET_VERSION_DEFAULT


def test_environment_overrides_defaults(monkeypatch, mock_logger):
    monkeypatch.setenv("JETSON_STATE_DIR", "/srv/state")
    monkeypatch.setenv("JETSON_GLIB__TARGET_VERSION", "2.80.0")

    settings = load_app_settings(current_logger=mock_logger)

    assert settings.state_dir == "/srv/state"
    assert settings.glib.target_version == "2.80.0"


def test_yaml_overrides_environment(monkeypatch, write_config, mock_logger):
    monkeypatch.setenv("JETSON_STATE_DIR", "/srv/state")
    path = write_config(
        "state_dir: /data/state\n"
        "kafka:\n"
        "  ref: v2.3.0\n"
    )

    settings = load_app_settings(config_file_path=path, current_logger=mock_logger)

    assert settings.state_dir == "/data/state"
    assert settings.kafka.ref == "v2.3.0"
    assert settings.kafka.repo_url == static_config.KAFKA_REPO_URL_DEFAULT


def test_cli_overrides_yaml(write_config, mock_logger):
    path = write_config("log_file: /data/yaml.log\nstate_dir: /data/state\n")

    settings = load_app_settings(
        cli(log_file="/data/cli.log"), path, current_logger=mock_logger
    )

    assert settings.log_file == "/data/cli.log"
    assert settings.state_dir == "/data/state"


def test_missing_config_file_uses_defaults(tmp_path, mock_logger):
    settings = load_app_settings(
        config_file_path=str(tmp_path / "absent.yaml"), current_logger=mock_logger
    )

    assert settings.log_file == static_config.LOG_FILE_DEFAULT
    assert "not found" in mock_logger.info.call_args_list[0].args[0]


@pytest.mark.parametrize("text", ["state_dir: [unclosed\n", "- just\n- a list\n"])
def test_unusable_yaml_is_ignored(write_config, mock_logger, text):
    settings = load_app_settings(
        config_file_path=write_config(text), current_logger=mock_logger
    )

    assert settings.state_dir == static_config.STATE_DIR_DEFAULT
    mock_logger.warning.assert_called_once()


def test_empty_yaml_is_accepted(write_config, mock_logger):
    settings = load_app_settings(
        config_file_path=write_config(""), current_logger=mock_logger
    )
    assert settings.state_dir == static_config.STATE_DIR_DEFAULT
    mock_logger.warning.assert_not_called()


def test_invalid_value_exits(write_config, mock_logger):
    path = write_config("download_timeout: soon\n")

    with pytest.raises(SystemExit, match="Configuration error"):
        load_app_settings(config_file_path=path, current_logger=mock_logger)
    mock_logger.error.assert_called_once()
