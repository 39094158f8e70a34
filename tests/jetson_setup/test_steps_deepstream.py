# tests/jetson_setup/test_steps_deepstream.py
import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from jetson_setup.steps import deepstream
from sequencer.exceptions import StepExecutionError

MODULE = "jetson_setup.steps.deepstream"


@pytest.fixture
def install_dir(step_context, tmp_path):
    path = tmp_path / "opt" / "deepstream-7.1"
    step_context.app_settings.deepstream.install_dir = str(path)
    return path


@pytest.fixture
def mock_run_elevated(mocker):
    return mocker.patch(f"{MODULE}.run_elevated_command")


@pytest.fixture
def mock_ldconfig(mocker):
    return mocker.patch(f"{MODULE}.refresh_library_cache")


def test_install_dependencies(step_context):
    step_context.apt.install.return_value = True

    deepstream.install_dependencies(step_context)

    settings = step_context.app_settings
    step_context.apt.install.assert_called_once_with(
        settings.deepstream.dependency_packages, settings
    )


def test_install_deepstream_apt_failure(step_context):
    step_context.apt.install.return_value = False

    with pytest.raises(StepExecutionError, match="deepstream-7.1"):
        deepstream.install_deepstream_apt(step_context)
    assert step_context.apt.install.call_args.kwargs == {"update_first": False}


class TestFetchAndExtractTarball:
    def test_existing_install_is_skipped(self, mocker, step_context, install_dir):
        install_dir.mkdir(parents=True)
        mock_download = mocker.patch(f"{MODULE}.download_file")

        deepstream.fetch_and_extract_tarball(step_context)

        mock_download.assert_not_called()

    def test_download_and_extract(self, mocker, step_context, install_dir, mock_run_elevated):
        settings = step_context.app_settings
        tarball = Path(settings.download_dir) / settings.deepstream.tarball_name

        def fake_download(url, dest, app_settings, logger):
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(b"tbz2")
            return True

        mocker.patch(f"{MODULE}.download_file", side_effect=fake_download)

        deepstream.fetch_and_extract_tarball(step_context)

        mock_run_elevated.assert_called_once()
        assert mock_run_elevated.call_args.args[0] == [
            "tar",
            "-xf",
            str(tarball),
            "-C",
            "/",
        ]
        assert not tarball.exists()

    def test_failed_download_fails_step(self, mocker, step_context, install_dir, mock_run_elevated):
        mocker.patch(f"{MODULE}.download_file", return_value=False)

        with pytest.raises(StepExecutionError, match="Failed to download"):
            deepstream.fetch_and_extract_tarball(step_context)
        mock_run_elevated.assert_not_called()


class TestRunDeepstreamInstaller:
    def test_missing_directory_fails(self, step_context, install_dir):
        with pytest.raises(StepExecutionError, match="not found"):
            deepstream.run_deepstream_installer(step_context)

    def test_runs_install_script(self, step_context, install_dir, mock_run_elevated, mock_ldconfig):
        install_dir.mkdir(parents=True)

        deepstream.run_deepstream_installer(step_context)

        assert mock_run_elevated.call_args.args[0] == ["./install.sh"]
        assert mock_run_elevated.call_args.kwargs["cwd"] == str(install_dir)
        mock_ldconfig.assert_called_once()

    def test_script_failure_fails_step(self, step_context, install_dir, mock_run_elevated, mock_ldconfig):
        install_dir.mkdir(parents=True)
        mock_run_elevated.side_effect = subprocess.CalledProcessError(1, ["./install.sh"])

        with pytest.raises(StepExecutionError, match="install.sh"):
            deepstream.run_deepstream_installer(step_context)
        mock_ldconfig.assert_not_called()


class TestUpdateRtpmanager:
    def test_missing_script_only_warns(self, step_context, install_dir, mock_run_elevated):
        install_dir.mkdir(parents=True)

        deepstream.update_rtpmanager(step_context)

        mock_run_elevated.assert_not_called()
        assert step_context.logger.warning.called

    def test_runs_script(self, step_context, install_dir, mock_run_elevated):
        install_dir.mkdir(parents=True)
        script = install_dir / "update_rtpmanager.sh"
        script.write_text("#!/bin/sh\n", encoding="utf-8")

        deepstream.update_rtpmanager(step_context)

        assert mock_run_elevated.call_args.args[0] == [str(script)]


class TestCopyKafkaLibraries:
    @pytest.fixture
    def built_libs(self, step_context, tmp_path):
        lib_root = tmp_path / "usr-local-lib"
        lib_root.mkdir()
        (lib_root / "librdkafka.so.1").write_bytes(b"elf")
        (lib_root / "librdkafka.so").symlink_to("librdkafka.so.1")
        (lib_root / "libother.so").write_bytes(b"elf")
        step_context.app_settings.kafka.lib_glob = str(lib_root / "librdkafka*")
        return lib_root

    def test_copies_files_and_symlinks(self, step_context, install_dir, built_libs, mock_ldconfig):
        lib_dir = install_dir / "lib"
        lib_dir.mkdir(parents=True)
        (lib_dir / "librdkafka.so.1").write_bytes(b"stale")

        deepstream.copy_kafka_libraries(step_context)

        assert (lib_dir / "librdkafka.so.1").read_bytes() == b"elf"
        assert (lib_dir / "librdkafka.so").is_symlink()
        assert not (lib_dir / "libother.so").exists()
        mock_ldconfig.assert_called_once()

    def test_missing_lib_dir_only_warns(self, step_context, install_dir, built_libs, mock_ldconfig):
        deepstream.copy_kafka_libraries(step_context)

        mock_ldconfig.assert_not_called()
        assert step_context.logger.warning.called

    def test_no_built_libraries_fails(self, step_context, install_dir, tmp_path):
        (install_dir / "lib").mkdir(parents=True)
        step_context.app_settings.kafka.lib_glob = str(tmp_path / "nothing*")

        with pytest.raises(StepExecutionError, match="No librdkafka libraries"):
            deepstream.copy_kafka_libraries(step_context)


class TestVerifyDeepstream:
    def test_reports_version(self, mocker, step_context):
        mocker.patch(
            f"{MODULE}.run_command",
            return_value=Mock(returncode=0, stdout="deepstream-app version 7.1.0\n"),
        )

        deepstream.verify_deepstream(step_context)

        logged = [c.args[0] for c in step_context.logger.info.call_args_list]
        assert any("deepstream-app version 7.1.0" in line for line in logged)

    @pytest.mark.parametrize(
        "outcome",
        [
            {"return_value": Mock(returncode=127, stdout="")},
            {"side_effect": FileNotFoundError(2, "No such file", "deepstream-app")},
        ],
    )
    def test_problems_are_warnings(self, mocker, step_context, outcome):
        mocker.patch(f"{MODULE}.run_command", **outcome)

        deepstream.verify_deepstream(step_context)

        step_context.logger.warning.assert_called_once()
