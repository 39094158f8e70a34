# jetson_setup/steps/glib.py
# -*- coding: utf-8 -*-
"""
Builds GLib from source when the installed version is older than the one
DeepStream requires.
"""

import shutil

from common.command_utils import command_exists, run_command, run_elevated_command
from common.git_utils import checkout, clone_or_update
from common.system_utils import refresh_library_cache
from common.version_utils import get_pkg_config_version, needs_update
from jetson_setup import config as static_config
from sequencer.step import StepContext

from .helpers import command_failures, ensure, log, source_path, symbol

PKG_CONFIG_MODULE = "glib-2.0"


def ensure_glib(ctx: StepContext) -> None:
    app_settings = ctx.app_settings
    settings = app_settings.glib
    env = ctx.env or None

    current = get_pkg_config_version(PKG_CONFIG_MODULE, app_settings, ctx.logger)
    log(ctx, f"Current GLib version: {current or 'not found'}")
    log(ctx, f"Target GLib version: {settings.target_version}")
    if not needs_update(current, settings.target_version):
        log(
            ctx,
            f"{symbol(ctx, 'info', 'ℹ️')} GLib is already at or newer than {settings.target_version}. Skipping GLib update.",
        )
        return

    log(
        ctx,
        f"{symbol(ctx, 'step', '➡️')} GLib version is older than {settings.target_version} or not found. Proceeding with update.",
    )
    ensure(
        ctx.apt.install(static_config.GLIB_BUILD_PACKAGES, app_settings),
        "Failed to install GLib build packages",
    )
    ensure(
        ctx.pip.install(static_config.GLIB_BUILD_PIP_PACKAGES, app_settings),
        "Failed to install meson/ninja via pip",
    )
    for tool in ("meson", "ninja"):
        ensure(
            command_exists(tool, env),
            f"'{tool}' command not found in PATH after pip install",
        )

    source_dir = source_path(ctx, settings.source_dir)
    with command_failures("Fetching GLib sources"):
        clone_or_update(settings.repo_url, source_dir, app_settings, ctx.logger, clean=True, env=env)
        checkout(source_dir, settings.target_version, app_settings, ctx.logger, env=env)

    build_dir = source_dir / "build"
    if build_dir.exists():
        shutil.rmtree(build_dir)

    log(ctx, f"{symbol(ctx, 'gear', '⚙️')} Configuring and building GLib...")
    with command_failures("Building GLib"):
        run_command(
            ["meson", "setup", "build", f"--prefix={settings.install_prefix}"],
            app_settings,
            current_logger=ctx.logger,
            cwd=str(source_dir),
            env=env,
        )
        run_command(
            ["ninja", "-C", "build"],
            app_settings,
            current_logger=ctx.logger,
            cwd=str(source_dir),
            env=env,
        )
    with command_failures("Installing GLib"):
        run_elevated_command(
            ["ninja", "-C", "build", "install"],
            app_settings,
            current_logger=ctx.logger,
            cwd=str(source_dir),
            env=env,
        )
        refresh_library_cache(app_settings, ctx.logger)

    new_version = get_pkg_config_version(PKG_CONFIG_MODULE, app_settings, ctx.logger)
    log(
        ctx,
        f"{symbol(ctx, 'success', '✅')} GLib update complete. New GLib version: {new_version or 'unknown'}",
        "success",
    )
