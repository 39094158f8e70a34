# tests/jetson_setup/test_steps_ultralytics.py
import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from jetson_setup import config as static_config
from jetson_setup.steps import ultralytics
from sequencer.exceptions import StepExecutionError

MODULE = "jetson_setup.steps.ultralytics"


@pytest.fixture
def fake_download(mocker):
    """download_file stand-in that writes a small file and records targets."""
    targets = []

    def _download(url, dest, app_settings, logger):
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"payload")
        targets.append(Path(dest))
        return True

    mocker.patch(f"{MODULE}.download_file", side_effect=_download)
    return targets


def test_file_name_from_url_decodes():
    url = "https://host/assets/torch-2.5.0a0%2B872d972e41.nv24.08-cp310-cp310-linux_aarch64.whl"
    assert ultralytics._file_name_from_url(url) == (
        "torch-2.5.0a0+872d972e41.nv24.08-cp310-cp310-linux_aarch64.whl"
    )


def test_file_name_from_url_without_name():
    with pytest.raises(StepExecutionError):
        ultralytics._file_name_from_url("https://host/")


class TestTwoPhasePlanSteps:
    def test_bootstrap_pip(self, step_context):
        settings = step_context.app_settings

        ultralytics.bootstrap_pip(step_context)

        step_context.apt.update.assert_called_once_with(settings)
        step_context.apt.install.assert_called_once_with(
            "python3-pip", settings, update_first=False
        )
        step_context.pip.install.assert_called_once_with("pip", settings, upgrade=True)

    def test_install_ultralytics_package_failure(self, step_context):
        step_context.pip.install.return_value = False

        with pytest.raises(StepExecutionError, match=r"ultralytics\[export\]"):
            ultralytics.install_ultralytics_package(step_context)

    def test_remove_incompatible_torch_tolerates_missing(self, step_context):
        ultralytics.remove_incompatible_torch(step_context)

        step_context.pip.uninstall.assert_called_once_with(
            ["torch", "torchvision"], step_context.app_settings, ignore_missing=True
        )

    @pytest.mark.parametrize("field", ultralytics.WHEEL_URL_FIELDS)
    def test_install_wheel_uses_configured_url(self, step_context, field):
        ultralytics.install_wheel(step_context, field)

        url = str(getattr(step_context.app_settings.ultralytics, field))
        step_context.pip.install.assert_called_once_with(
            url, step_context.app_settings, no_cache=True
        )

    def test_install_cusparselt(self, step_context, fake_download):
        settings = step_context.app_settings

        ultralytics.install_cusparselt(step_context)

        deb = fake_download[0]
        assert deb.name == "cuda-keyring_1.1-1_all.deb"
        step_context.apt.install_local_package.assert_called_once_with(str(deb), settings)
        step_context.apt.install.assert_called_once_with(
            static_config.CUSPARSELT_PACKAGES, settings, update_first=False
        )
        assert not deb.exists()

    def test_keyring_failure_still_removes_deb(self, step_context, fake_download):
        step_context.apt.install_local_package.return_value = False

        with pytest.raises(StepExecutionError, match="cuda-keyring"):
            ultralytics.install_cusparselt(step_context)
        assert not fake_download[0].exists()
        step_context.apt.install.assert_not_called()

    def test_pin_numpy_failure_is_warning(self, step_context):
        step_context.pip.install.return_value = False

        ultralytics.pin_numpy(step_context)

        step_context.pip.install.assert_called_once_with(
            "numpy==1.23.5", step_context.app_settings, prefer_binary=True
        )
        step_context.logger.warning.assert_called_once()


class TestNativePlanSteps:
    def test_install_system_dependencies(self, step_context):
        settings = step_context.app_settings

        ultralytics.install_system_dependencies(step_context)

        packages = step_context.apt.install.call_args.args[0]
        assert "libcusparselt-dev" in packages
        assert packages == settings.ultralytics.native_system_packages

    def test_upgrade_pip_and_numpy(self, step_context):
        ultralytics.upgrade_pip_and_numpy(step_context)

        specs = [c.args[0] for c in step_context.pip.install.call_args_list]
        assert specs == ["pip", "numpy<2"]

    def test_install_ml_wheels(self, step_context, fake_download):
        ultralytics.install_ml_wheels(step_context)

        assert [p.name.split("-")[0] for p in fake_download] == [
            "torch",
            "torchvision",
            "onnxruntime_gpu",
        ]
        step_context.pip.install.assert_called_once_with(
            [str(p) for p in fake_download],
            step_context.app_settings,
            no_cache=True,
            force_reinstall=True,
            no_deps=True,
        )
        assert list(Path(step_context.app_settings.download_dir).iterdir()) == []

    def test_install_ml_wheels_download_failure(self, mocker, step_context):
        mocker.patch(f"{MODULE}.download_file", return_value=False)

        with pytest.raises(StepExecutionError, match="Failed to download wheel"):
            ultralytics.install_ml_wheels(step_context)
        step_context.pip.install.assert_not_called()
        assert list(Path(step_context.app_settings.download_dir).iterdir()) == []

    def test_verify_ml_stack_with_cuda(self, mocker, step_context):
        mock_run = mocker.patch(
            f"{MODULE}.run_command",
            side_effect=[
                Mock(stdout="Torch Version: 2.5.0\nCUDA Available: True\n"),
                Mock(returncode=0),
            ],
        )

        ultralytics.verify_ml_stack(step_context)

        assert mock_run.call_args_list[0].args[0][:2] == ["python3", "-c"]
        step_context.logger.warning.assert_not_called()

    def test_verify_ml_stack_import_failure(self, mocker, step_context):
        mocker.patch(
            f"{MODULE}.run_command",
            side_effect=subprocess.CalledProcessError(1, ["python3"]),
        )

        with pytest.raises(StepExecutionError, match="verification failed"):
            ultralytics.verify_ml_stack(step_context)

    def test_verify_ml_stack_without_cuda_warns(self, mocker, step_context):
        mocker.patch(
            f"{MODULE}.run_command",
            side_effect=[Mock(stdout=""), Mock(returncode=1)],
        )

        ultralytics.verify_ml_stack(step_context)

        step_context.logger.warning.assert_called_once()

    def test_verify_ml_stack_requires_cuda(self, mocker, step_context):
        step_context.app_settings.ultralytics.require_cuda = True
        mocker.patch(
            f"{MODULE}.run_command",
            side_effect=[Mock(stdout=""), Mock(returncode=1)],
        )

        with pytest.raises(StepExecutionError, match="CUDA is NOT available"):
            ultralytics.verify_ml_stack(step_context)

    def test_clone_ultralytics(self, mocker, step_context):
        mock_clone = mocker.patch(f"{MODULE}.fresh_clone")

        ultralytics.clone_ultralytics(step_context)

        assert mock_clone.call_args.args[1] == (
            Path(step_context.app_settings.source_root) / "ultralytics"
        )

    def test_install_editable_requires_checkout(self, step_context):
        with pytest.raises(StepExecutionError, match="checkout not found"):
            ultralytics.install_ultralytics_editable(step_context)

    def test_install_editable(self, step_context):
        checkout_dir = Path(step_context.app_settings.source_root) / "ultralytics"
        checkout_dir.mkdir(parents=True)

        ultralytics.install_ultralytics_editable(step_context)

        step_context.pip.install.assert_called_once_with(
            ".[export]",
            step_context.app_settings,
            editable=True,
            cwd=str(checkout_dir),
        )

    def test_prepare_fonts_dir(self, step_context, operator_home):
        ultralytics.prepare_fonts_dir(step_context)

        assert (operator_home / ".config" / "Ultralytics").is_dir()
