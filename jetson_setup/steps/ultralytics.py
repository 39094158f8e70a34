# jetson_setup/steps/ultralytics.py
# -*- coding: utf-8 -*-
"""
Ultralytics and Jetson ML stack steps.

The two-phase plan installs the ultralytics pip package, reboots, then
replaces the generic torch builds with the Jetson wheels. The native plan
installs the Jetson wheels first and Ultralytics from a source checkout.
"""

import shutil
import subprocess
import tempfile
from pathlib import Path
from urllib.parse import unquote, urlsplit

from common.command_utils import run_command
from common.git_utils import fresh_clone
from common.network_utils import download_file
from jetson_setup import config as static_config
from sequencer.exceptions import StepExecutionError
from sequencer.step import StepContext

from .helpers import (
    chown_to_operator,
    command_failures,
    ensure,
    log,
    operator_home,
    source_path,
    symbol,
)

WHEEL_URL_FIELDS = (
    "torch_wheel_url",
    "torchvision_wheel_url",
    "onnxruntime_gpu_wheel_url",
)

VERIFY_IMPORTS_SCRIPT = (
    "import torch; print('Torch Version:', torch.__version__); "
    "print('CUDA Available:', torch.cuda.is_available()); "
    "import torchvision; print('TorchVision Version:', torchvision.__version__); "
    "import onnxruntime; print('ONNX Runtime Version:', onnxruntime.__version__)"
)
CUDA_CHECK_SCRIPT = "import sys, torch; sys.exit(0 if torch.cuda.is_available() else 1)"


def _file_name_from_url(url: str) -> str:
    name = unquote(Path(urlsplit(url).path).name)
    if not name:
        raise StepExecutionError(f"Cannot derive a file name from URL {url}")
    return name


def bootstrap_pip(ctx: StepContext) -> None:
    """Update package lists, install pip and upgrade it."""
    app_settings = ctx.app_settings
    log(ctx, f"{symbol(ctx, 'step', '➡️')} Updating package list, installing/upgrading pip...")
    ensure(ctx.apt.update(app_settings), "apt-get update failed")
    ensure(
        ctx.apt.install("python3-pip", app_settings, update_first=False),
        "Failed to install python3-pip",
    )
    ensure(ctx.pip.install("pip", app_settings, upgrade=True), "Failed to upgrade pip")


def install_ultralytics_package(ctx: StepContext) -> None:
    spec = ctx.app_settings.ultralytics.pip_spec
    log(ctx, f"{symbol(ctx, 'package', '📦')} Installing {spec} pip package...")
    ensure(ctx.pip.install(spec, ctx.app_settings), f"Failed to install {spec}")


def remove_incompatible_torch(ctx: StepContext) -> None:
    """Uninstall generic torch builds; nothing installed is not an error."""
    log(ctx, "Attempting to uninstall potentially incompatible PyTorch and Torchvision...")
    ensure(
        ctx.pip.uninstall(["torch", "torchvision"], ctx.app_settings, ignore_missing=True),
        "Failed to uninstall torch/torchvision",
    )


def install_wheel(ctx: StepContext, url_field: str) -> None:
    """Install the Jetson wheel named by an UltralyticsSettings URL field."""
    url = str(getattr(ctx.app_settings.ultralytics, url_field))
    log(ctx, f"{symbol(ctx, 'package', '📦')} Installing {_file_name_from_url(url)} from Ultralytics assets...")
    ensure(
        ctx.pip.install(url, ctx.app_settings, no_cache=True),
        f"Failed to install wheel {url}",
    )


def _install_cuda_keyring_deb(ctx: StepContext) -> None:
    app_settings = ctx.app_settings
    url = str(app_settings.ultralytics.cuda_keyring_url)
    deb_path = Path(app_settings.download_dir) / _file_name_from_url(url)
    ensure(
        download_file(url, deb_path, app_settings, ctx.logger),
        "Failed to download cuda-keyring package",
    )
    try:
        ensure(
            ctx.apt.install_local_package(str(deb_path), app_settings),
            "Failed to install cuda-keyring package",
        )
        ensure(
            ctx.apt.update(app_settings),
            "Failed to update apt after adding keyring",
        )
    finally:
        deb_path.unlink(missing_ok=True)


def install_cusparselt(ctx: StepContext) -> None:
    """Add NVIDIA's CUDA apt repository and install cuSPARSELt from it."""
    log(ctx, f"{symbol(ctx, 'package', '📦')} Installing cuSPARSELt via apt...")
    _install_cuda_keyring_deb(ctx)
    ensure(
        ctx.apt.install(static_config.CUSPARSELT_PACKAGES, ctx.app_settings, update_first=False),
        "Failed to install libcusparselt packages",
    )
    log(ctx, f"{symbol(ctx, 'success', '✅')} cuSPARSELt installed.", "success")


def pin_numpy(ctx: StepContext) -> None:
    """Reinstall the pinned numpy; failure only warrants a warning."""
    pin = ctx.app_settings.ultralytics.numpy_pin
    log(ctx, f"Reinstalling {pin} as recommended by the Ultralytics Jetson guide...")
    if ctx.pip.install(pin, ctx.app_settings, prefer_binary=True):
        log(ctx, f"{symbol(ctx, 'success', '✅')} {pin} installed.", "success")
    else:
        log(
            ctx,
            f"{symbol(ctx, 'warning', '⚠️')} Failed to reinstall {pin}. Continuing but be aware of numpy issues.",
            "warning",
        )


def install_cuda_keyring(ctx: StepContext) -> None:
    log(ctx, f"{symbol(ctx, 'step', '➡️')} Installing CUDA keyring and updating APT...")
    _install_cuda_keyring_deb(ctx)
    log(ctx, f"{symbol(ctx, 'success', '✅')} CUDA keyring installed and APT repositories updated.", "success")


def install_system_dependencies(ctx: StepContext) -> None:
    ensure(
        ctx.apt.install(
            ctx.app_settings.ultralytics.native_system_packages,
            ctx.app_settings,
            update_first=False,
        ),
        "Failed to install system dependencies",
    )


def upgrade_pip_and_numpy(ctx: StepContext) -> None:
    app_settings = ctx.app_settings
    constraint = app_settings.ultralytics.numpy_native_constraint
    log(ctx, f"{symbol(ctx, 'step', '➡️')} Upgrading pip and installing compatible numpy ({constraint})...")
    ensure(ctx.pip.install("pip", app_settings, upgrade=True), "Failed to upgrade pip")
    ensure(ctx.pip.install(constraint, app_settings), f"Failed to install '{constraint}'")


def install_ml_wheels(ctx: StepContext) -> None:
    """
    Download the torch, torchvision and onnxruntime-gpu wheels and install
    them together without dependency resolution.
    """
    app_settings = ctx.app_settings
    download_root = Path(app_settings.download_dir)
    download_root.mkdir(parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(prefix="wheels_", dir=str(download_root)))
    try:
        wheel_paths = []
        for field_name in WHEEL_URL_FIELDS:
            url = str(getattr(app_settings.ultralytics, field_name))
            wheel_path = temp_dir / _file_name_from_url(url)
            ensure(
                download_file(url, wheel_path, app_settings, ctx.logger),
                f"Failed to download wheel {url}",
            )
            wheel_paths.append(str(wheel_path))

        ensure(
            ctx.pip.install(
                wheel_paths,
                app_settings,
                no_cache=True,
                force_reinstall=True,
                no_deps=True,
            ),
            "Failed to install PyTorch/TorchVision/ONNX Runtime GPU",
        )
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)
    log(ctx, f"{symbol(ctx, 'success', '✅')} PyTorch, TorchVision, and ONNX Runtime GPU installed.", "success")


def verify_ml_stack(ctx: StepContext) -> None:
    """
    Import torch, torchvision and onnxruntime with the configured interpreter.

    A failed import fails the step. CUDA being unavailable is a warning
    unless ultralytics.require_cuda is set.
    """
    app_settings = ctx.app_settings
    python = app_settings.python_command
    with command_failures("PyTorch/TorchVision/ONNX Runtime verification"):
        result = run_command(
            [python, "-c", VERIFY_IMPORTS_SCRIPT],
            app_settings,
            capture_output=True,
            current_logger=ctx.logger,
            env=ctx.env or None,
        )
    for line in (result.stdout or "").strip().splitlines():
        log(ctx, f"   {line}")

    try:
        cuda_check = run_command(
            [python, "-c", CUDA_CHECK_SCRIPT],
            app_settings,
            check=False,
            current_logger=ctx.logger,
            env=ctx.env or None,
        )
    except (FileNotFoundError, subprocess.SubprocessError) as e:
        raise StepExecutionError(f"Could not run CUDA availability check: {e}") from e

    if cuda_check.returncode == 0:
        log(ctx, f"{symbol(ctx, 'success', '✅')} CUDA is available for PyTorch.", "success")
        return
    message = "CUDA is NOT available for PyTorch. Please troubleshoot your PyTorch installation or JetPack setup."
    if app_settings.ultralytics.require_cuda:
        raise StepExecutionError(message)
    log(ctx, f"{symbol(ctx, 'warning', '⚠️')} {message}", "warning")


def clone_ultralytics(ctx: StepContext) -> None:
    settings = ctx.app_settings.ultralytics
    with command_failures("Cloning Ultralytics repository"):
        fresh_clone(
            settings.repo_url,
            source_path(ctx, settings.source_dir),
            ctx.app_settings,
            ctx.logger,
            env=ctx.env or None,
        )


def install_ultralytics_editable(ctx: StepContext) -> None:
    settings = ctx.app_settings.ultralytics
    checkout_dir = source_path(ctx, settings.source_dir)
    if not checkout_dir.is_dir():
        raise StepExecutionError(f"Ultralytics checkout not found at {checkout_dir}")
    log(ctx, f"{symbol(ctx, 'package', '📦')} Installing Ultralytics ({settings.editable_spec}) from {checkout_dir}...")
    ensure(
        ctx.pip.install(
            settings.editable_spec,
            ctx.app_settings,
            editable=True,
            cwd=str(checkout_dir),
        ),
        "Failed to install Ultralytics with export dependencies",
    )


def prepare_fonts_dir(ctx: StepContext) -> None:
    """Create ~/.config/Ultralytics/ for the optional Arial fonts."""
    fonts_dir = operator_home(ctx.env or None) / ".config" / "Ultralytics"
    created = not fonts_dir.exists()
    try:
        fonts_dir.mkdir(parents=True, exist_ok=True)
        if created:
            chown_to_operator(fonts_dir, ctx.env or None)
    except OSError as e:
        raise StepExecutionError(f"Could not create {fonts_dir}: {e}") from e
    log(
        ctx,
        f"{symbol(ctx, 'info', 'ℹ️')} If you have Arial.ttf and Arial.Unicode.ttf, copy them to {fonts_dir}/ for full plotting functionality.",
    )
