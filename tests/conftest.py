# tests/conftest.py
import logging
from unittest.mock import MagicMock

import pytest

from jetson_setup.config_models import AppSettings
from sequencer.step import StepContext


@pytest.fixture
def app_settings(tmp_path):
    """AppSettings with every writable location under tmp_path."""
    return AppSettings(
        log_file=str(tmp_path / "log" / "installer.log"),
        state_dir=str(tmp_path / "state"),
        systemd_unit_dir=str(tmp_path / "systemd"),
        download_dir=str(tmp_path / "downloads"),
        source_root=str(tmp_path / "src"),
    )


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def operator_home(tmp_path):
    home = tmp_path / "home" / "operator"
    home.mkdir(parents=True)
    return home


@pytest.fixture
def step_context(app_settings, mock_logger, operator_home):
    """StepContext with mocked package managers and an isolated HOME."""
    return StepContext(
        app_settings=app_settings,
        logger=mock_logger,
        apt=MagicMock(),
        pip=MagicMock(),
        env={"PATH": "/usr/bin:/bin", "HOME": str(operator_home)},
    )
