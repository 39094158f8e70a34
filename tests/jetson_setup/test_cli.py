# tests/jetson_setup/test_cli.py
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from jetson_setup import cli_handler
from jetson_setup import config as static_config
from jetson_setup.config_models import AppSettings
from sequencer.exceptions import PrivilegeError, StateCorruptionError
from sequencer.sequencer import RunStatus, SequenceResult


@pytest.fixture(autouse=True)
def no_logging_setup(mocker):
    return mocker.patch("jetson_setup.cli_handler.setup_logging")


@pytest.fixture
def base_args(tmp_path):
    return [
        "--log-file",
        str(tmp_path / "installer.log"),
        "--state-dir",
        str(tmp_path / "state"),
    ]


@pytest.fixture
def fake_sequencer(mocker):
    sequencer = MagicMock()
    sequencer.plan = "ultralytics"
    mocker.patch("jetson_setup.cli_handler.build_sequencer", return_value=sequencer)
    return sequencer


def test_no_command_is_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli_handler.main([])
    assert excinfo.value.code == cli_handler.EXIT_USAGE
    assert "usage" in capsys.readouterr().err


def test_list_plans(base_args):
    assert cli_handler.main(base_args + ["list"]) == cli_handler.EXIT_OK


def test_unknown_plan_is_usage_error(base_args):
    assert cli_handler.main(base_args + ["status", "nope"]) == cli_handler.EXIT_USAGE


@pytest.mark.parametrize(
    "status, code",
    [
        (RunStatus.COMPLETED, cli_handler.EXIT_OK),
        (RunStatus.AWAITING_REBOOT, cli_handler.EXIT_OK),
        (RunStatus.FAILED, cli_handler.EXIT_FAILED),
    ],
)
def test_run_exit_codes(base_args, fake_sequencer, status, code):
    fake_sequencer.run.return_value = SequenceResult(plan="ultralytics", status=status)

    assert cli_handler.main(base_args + ["run", "ultralytics"]) == code


def test_run_without_root_exits_with_privilege_code(base_args, fake_sequencer):
    fake_sequencer.run.side_effect = PrivilegeError("root required")

    assert cli_handler.main(base_args + ["run", "ultralytics"]) == cli_handler.EXIT_PRIVILEGE


def test_failed_reboot_exits_with_failure(base_args, fake_sequencer, mocker):
    fake_sequencer.run.side_effect = subprocess.CalledProcessError(
        1, ["systemctl", "reboot"]
    )
    mock_error = mocker.patch.object(cli_handler.logger, "error")

    assert cli_handler.main(base_args + ["run", "ultralytics"]) == cli_handler.EXIT_FAILED
    assert "Reboot manually" in mock_error.call_args.args[0]


def test_missing_apt_get_fails(base_args, mocker):
    mocker.patch(
        "jetson_setup.cli_handler.build_sequencer",
        side_effect=FileNotFoundError("apt-get not found"),
    )
    assert cli_handler.main(base_args + ["run", "deepstream"]) == cli_handler.EXIT_FAILED


def test_resume_without_state_removes_trigger(fake_sequencer):
    fake_sequencer.privilege_check = None
    fake_sequencer.state_store.exists.return_value = False

    assert cli_handler.resume_plan(fake_sequencer) == cli_handler.EXIT_OK

    fake_sequencer.resume_trigger.remove.assert_called_once()
    fake_sequencer.run.assert_not_called()


def test_resume_with_state_runs(fake_sequencer):
    fake_sequencer.privilege_check = None
    fake_sequencer.state_store.exists.return_value = True
    fake_sequencer.run.return_value = SequenceResult(
        plan="ultralytics", status=RunStatus.COMPLETED, resumed=True
    )

    assert cli_handler.resume_plan(fake_sequencer) == cli_handler.EXIT_OK


def test_status_with_corrupt_state(fake_sequencer):
    fake_sequencer.pending_resume.side_effect = StateCorruptionError("bad record")

    assert cli_handler.show_status(fake_sequencer) == cli_handler.EXIT_FAILED


def test_status_end_to_end(base_args, tmp_path):
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    (state_dir / "ultralytics.state.json").write_text("{broken", encoding="utf-8")

    assert cli_handler.main(base_args + ["status", "ultralytics"]) == cli_handler.EXIT_FAILED


def test_reset_without_root(fake_sequencer):
    fake_sequencer.privilege_check.side_effect = PrivilegeError("root required")

    with pytest.raises(PrivilegeError):
        cli_handler.reset_plan(fake_sequencer)
    fake_sequencer.reset.assert_not_called()


def test_resume_command_carries_locations(tmp_path):
    settings = AppSettings(log_file="/var/log/x.log", state_dir="/var/lib/x")
    config_path = tmp_path / "config.yaml"

    command = cli_handler.resume_command("ultralytics", settings, str(config_path))

    assert command == [
        sys.executable,
        str(static_config.PROJECT_ROOT / "install.py"),
        "--config",
        str(config_path.resolve()),
        "--log-file",
        "/var/log/x.log",
        "--state-dir",
        "/var/lib/x",
        "resume",
        "ultralytics",
    ]


def test_build_sequencer_without_managers(app_settings):
    app_settings.require_root = False

    sequencer = cli_handler.build_sequencer(
        "ultralytics", app_settings, with_managers=False
    )

    assert sequencer.privilege_check is None
    assert sequencer.context.apt is None
    assert sequencer.resume_trigger.unit_name == "jetson-stack-ultralytics-resume.service"
    assert str(sequencer.state_store.state_dir) == app_settings.state_dir
    assert sequencer.resume_trigger.unit_path.parent == Path(app_settings.systemd_unit_dir)
    assert sequencer.resume_trigger.state_path == sequencer.state_store.path
    assert str(sequencer.state_store.path) in sequencer.resume_trigger.render_unit()
