# common/git_utils.py
# -*- coding: utf-8 -*-
"""
Git helpers for steps that build dependencies from source.
"""

import logging
import shutil
from pathlib import Path
from typing import Mapping, Optional

from common.command_utils import get_symbols, log_message, run_command
from jetson_setup.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def clone_or_update(
    repo_url: str,
    dest: Path,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    clean: bool = True,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Clone `repo_url` into `dest`, or fetch into an existing checkout.

    An existing checkout is fetched and, when `clean` is set, scrubbed of
    untracked and ignored files so a re-run starts from a clean tree.

    Raises:
        subprocess.CalledProcessError: A git command failed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    if (dest / ".git").is_dir():
        log_message(
            f"{symbols.get('info', 'ℹ️')} Source directory {dest} already exists. Fetching updates.",
            "info",
            logger_to_use,
            app_settings,
        )
        run_command(
            ["git", "fetch", "--tags", "origin"],
            app_settings,
            current_logger=logger_to_use,
            cwd=str(dest),
            env=env,
        )
        if clean:
            run_command(
                ["git", "clean", "-dfx"],
                app_settings,
                current_logger=logger_to_use,
                cwd=str(dest),
                env=env,
            )
        return

    dest.parent.mkdir(parents=True, exist_ok=True)
    run_command(
        ["git", "clone", repo_url, str(dest)],
        app_settings,
        current_logger=logger_to_use,
        env=env,
    )


def fresh_clone(
    repo_url: str,
    dest: Path,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """Remove any existing `dest` and clone `repo_url` into it."""
    logger_to_use = current_logger if current_logger else module_logger
    if dest.exists():
        log_message(
            f"{get_symbols(app_settings).get('info', 'ℹ️')} Removing existing checkout {dest} before re-cloning.",
            "info",
            logger_to_use,
            app_settings,
        )
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    run_command(
        ["git", "clone", repo_url, str(dest)],
        app_settings,
        current_logger=logger_to_use,
        env=env,
    )


def checkout(
    dest: Path,
    ref: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """Check out a tag, branch or commit in an existing checkout."""
    run_command(
        ["git", "checkout", ref],
        app_settings,
        current_logger=current_logger,
        cwd=str(dest),
        env=env,
    )
