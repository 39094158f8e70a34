# tests/jetson_setup/test_steps_glib.py
import subprocess
from pathlib import Path

import pytest

from jetson_setup import config as static_config
from jetson_setup.steps.glib import ensure_glib
from jetson_setup.steps.librdkafka import build_librdkafka
from sequencer.exceptions import StepExecutionError

MODULE = "jetson_setup.steps.glib"


@pytest.fixture
def glib_mocks(mocker):
    mocks = {
        name: mocker.patch(f"{MODULE}.{name}")
        for name in (
            "get_pkg_config_version",
            "command_exists",
            "clone_or_update",
            "checkout",
            "run_command",
            "run_elevated_command",
            "refresh_library_cache",
        )
    }
    mocks["command_exists"].return_value = True
    return mocks


def test_up_to_date_glib_is_skipped(step_context, glib_mocks):
    glib_mocks["get_pkg_config_version"].return_value = "2.80.0"

    ensure_glib(step_context)

    step_context.apt.install.assert_not_called()
    glib_mocks["clone_or_update"].assert_not_called()
    glib_mocks["run_command"].assert_not_called()


def test_old_glib_is_rebuilt(step_context, glib_mocks):
    glib_mocks["get_pkg_config_version"].side_effect = ["2.72.4", "2.76.6"]
    settings = step_context.app_settings
    source_dir = Path(settings.source_root) / "glib"
    (source_dir / "build").mkdir(parents=True)

    ensure_glib(step_context)

    step_context.apt.install.assert_called_once_with(
        static_config.GLIB_BUILD_PACKAGES, settings
    )
    step_context.pip.install.assert_called_once_with(
        static_config.GLIB_BUILD_PIP_PACKAGES, settings
    )
    assert glib_mocks["clone_or_update"].call_args.args[:2] == (
        settings.glib.repo_url,
        source_dir,
    )
    assert glib_mocks["checkout"].call_args.args[:2] == (source_dir, "2.76.6")
    assert not (source_dir / "build").exists()
    assert [c.args[0] for c in glib_mocks["run_command"].call_args_list] == [
        ["meson", "setup", "build", "--prefix=/usr"],
        ["ninja", "-C", "build"],
    ]
    glib_mocks["run_elevated_command"].assert_called_once()
    assert glib_mocks["run_elevated_command"].call_args.args[0] == [
        "ninja",
        "-C",
        "build",
        "install",
    ]
    assert glib_mocks["run_elevated_command"].call_args.kwargs["cwd"] == str(source_dir)
    glib_mocks["refresh_library_cache"].assert_called_once()


def test_missing_glib_is_built(step_context, glib_mocks):
    glib_mocks["get_pkg_config_version"].return_value = None

    ensure_glib(step_context)

    glib_mocks["run_elevated_command"].assert_called_once()


def test_meson_missing_after_pip_fails(step_context, glib_mocks):
    glib_mocks["get_pkg_config_version"].return_value = None
    glib_mocks["command_exists"].side_effect = lambda tool, env: tool != "meson"

    with pytest.raises(StepExecutionError, match="'meson' command not found"):
        ensure_glib(step_context)
    glib_mocks["command_exists"].assert_called_with("meson", step_context.env)


def test_failed_build_packages_fail_step(step_context, glib_mocks):
    glib_mocks["get_pkg_config_version"].return_value = "2.56.4"
    step_context.apt.install.return_value = False

    with pytest.raises(StepExecutionError, match="build packages"):
        ensure_glib(step_context)


def test_failed_ninja_fails_step(step_context, glib_mocks):
    glib_mocks["get_pkg_config_version"].return_value = None
    glib_mocks["run_command"].side_effect = [
        None,
        subprocess.CalledProcessError(1, ["ninja"]),
    ]

    with pytest.raises(StepExecutionError, match=r"Building GLib failed \(rc 1\)"):
        ensure_glib(step_context)
    glib_mocks["run_elevated_command"].assert_not_called()


class TestBuildLibrdkafka:
    KAFKA = "jetson_setup.steps.librdkafka"

    @pytest.fixture
    def kafka_mocks(self, mocker):
        return {
            name: mocker.patch(f"{self.KAFKA}.{name}")
            for name in (
                "clone_or_update",
                "checkout",
                "run_command",
                "run_elevated_command",
                "refresh_library_cache",
            )
        }

    def test_build_sequence(self, step_context, kafka_mocks):
        source_dir = Path(step_context.app_settings.source_root) / "librdkafka"

        build_librdkafka(step_context)

        assert kafka_mocks["checkout"].call_args.args[:2] == (source_dir, "v2.2.0")
        assert [c.args[0] for c in kafka_mocks["run_command"].call_args_list] == [
            ["./configure", "--enable-ssl"],
            ["make"],
        ]
        kafka_mocks["run_elevated_command"].assert_called_once()
        assert kafka_mocks["run_elevated_command"].call_args.args[0] == ["make", "install"]
        kafka_mocks["refresh_library_cache"].assert_called_once()

    def test_clone_failure_fails_step(self, step_context, kafka_mocks):
        kafka_mocks["clone_or_update"].side_effect = subprocess.CalledProcessError(
            128, ["git", "clone"]
        )

        with pytest.raises(StepExecutionError, match="Fetching librdkafka sources"):
            build_librdkafka(step_context)
        kafka_mocks["run_command"].assert_not_called()
