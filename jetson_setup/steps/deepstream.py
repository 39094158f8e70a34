# jetson_setup/steps/deepstream.py
# -*- coding: utf-8 -*-
"""
DeepStream SDK installation steps, for both the apt package and the
Jetson tarball.
"""

import glob
import os
import shutil
import subprocess
from pathlib import Path

from common.command_utils import run_command, run_elevated_command
from common.network_utils import download_file
from common.system_utils import refresh_library_cache
from sequencer.exceptions import StepExecutionError
from sequencer.step import StepContext

from .helpers import command_failures, ensure, log, symbol


def install_dependencies(ctx: StepContext) -> None:
    """Install the libraries DeepStream needs regardless of install method."""
    log(ctx, f"{symbol(ctx, 'package', '📦')} Installing DeepStream dependencies...")
    ensure(
        ctx.apt.install(ctx.app_settings.deepstream.dependency_packages, ctx.app_settings),
        "Failed to install DeepStream dependencies",
    )


def install_deepstream_apt(ctx: StepContext) -> None:
    package = ctx.app_settings.deepstream.apt_package
    log(ctx, f"{symbol(ctx, 'package', '📦')} Installing DeepStream SDK via apt ({package})...")
    ensure(
        ctx.apt.install(package, ctx.app_settings, update_first=False),
        f"Failed to install {package} via apt. Check your APT sources and network.",
    )


def fetch_and_extract_tarball(ctx: StepContext) -> None:
    """Download the SDK tarball and unpack it to /, unless already unpacked."""
    app_settings = ctx.app_settings
    settings = app_settings.deepstream
    install_dir = Path(settings.install_dir)
    if install_dir.is_dir():
        log(
            ctx,
            f"{symbol(ctx, 'info', 'ℹ️')} DeepStream SDK directory already exists at {install_dir}. Skipping extraction.",
        )
        return

    tarball = Path(app_settings.download_dir) / settings.tarball_name
    ensure(
        download_file(str(settings.download_url), tarball, app_settings, ctx.logger),
        f"Failed to download DeepStream SDK from {settings.download_url}",
    )
    log(ctx, f"{symbol(ctx, 'gear', '⚙️')} Extracting DeepStream SDK...")
    with command_failures("Extracting DeepStream SDK"):
        run_elevated_command(
            ["tar", "-xf", str(tarball), "-C", "/"],
            app_settings,
            current_logger=ctx.logger,
        )
    tarball.unlink(missing_ok=True)


def run_deepstream_installer(ctx: StepContext) -> None:
    app_settings = ctx.app_settings
    install_dir = Path(app_settings.deepstream.install_dir)
    if not install_dir.is_dir():
        raise StepExecutionError(
            f"DeepStream SDK installation directory not found at {install_dir}"
        )
    with command_failures("Running DeepStream install.sh"):
        run_elevated_command(
            ["./install.sh"],
            app_settings,
            current_logger=ctx.logger,
            cwd=str(install_dir),
        )
        refresh_library_cache(app_settings, ctx.logger)


def update_rtpmanager(ctx: StepContext) -> None:
    """Run the SDK's update_rtpmanager.sh; its absence is only a warning."""
    app_settings = ctx.app_settings
    install_dir = Path(app_settings.deepstream.install_dir)
    script = install_dir / "update_rtpmanager.sh"
    if not script.is_file():
        log(
            ctx,
            f"{symbol(ctx, 'warning', '⚠️')} update_rtpmanager.sh not found at {install_dir}/. Please check your DeepStream installation path.",
            "warning",
        )
        return
    with command_failures("Running update_rtpmanager.sh"):
        run_elevated_command(
            [str(script)],
            app_settings,
            current_logger=ctx.logger,
            cwd=str(install_dir),
        )


def copy_kafka_libraries(ctx: StepContext) -> None:
    """Copy the freshly built librdkafka libraries into DeepStream's lib dir."""
    app_settings = ctx.app_settings
    lib_dir = Path(app_settings.deepstream.install_dir) / "lib"
    if not lib_dir.is_dir():
        log(
            ctx,
            f"{symbol(ctx, 'warning', '⚠️')} DeepStream lib directory not found at {lib_dir}. Please check your DeepStream installation path.",
            "warning",
        )
        return

    libraries = [
        Path(p)
        for p in sorted(glob.glob(app_settings.kafka.lib_glob))
        if os.path.isfile(p) or os.path.islink(p)
    ]
    if not libraries:
        raise StepExecutionError(
            f"No librdkafka libraries match {app_settings.kafka.lib_glob}"
        )

    log(ctx, f"{symbol(ctx, 'gear', '⚙️')} Copying {len(libraries)} librdkafka libraries to {lib_dir}")
    try:
        for library in libraries:
            target = lib_dir / library.name
            if target.is_symlink() or target.exists():
                target.unlink()
            shutil.copy2(library, target, follow_symlinks=False)
    except OSError as e:
        raise StepExecutionError(f"Failed to copy librdkafka libraries: {e}") from e
    with command_failures("Refreshing library cache"):
        refresh_library_cache(app_settings, ctx.logger)


def verify_deepstream(ctx: StepContext) -> None:
    """Log the installed deepstream-app version; a missing binary is only a warning."""
    try:
        result = run_command(
            ["deepstream-app", "--version"],
            ctx.app_settings,
            check=False,
            capture_output=True,
            current_logger=ctx.logger,
            env=ctx.env or None,
        )
    except (FileNotFoundError, subprocess.SubprocessError) as e:
        log(ctx, f"{symbol(ctx, 'warning', '⚠️')} Could not run deepstream-app: {e}", "warning")
        return
    if result.returncode != 0:
        log(
            ctx,
            f"{symbol(ctx, 'warning', '⚠️')} 'deepstream-app --version' exited with {result.returncode}.",
            "warning",
        )
        return
    version_text = (result.stdout or "").strip().splitlines()
    log(
        ctx,
        f"{symbol(ctx, 'success', '✅')} DeepStream installed: {version_text[0] if version_text else 'version unknown'}",
        "success",
    )
