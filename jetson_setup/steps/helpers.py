# jetson_setup/steps/helpers.py
# -*- coding: utf-8 -*-
"""
Shared helpers for step actions: failure conversion, path resolution and
the operator's home directory.
"""

import logging
import os
import pwd
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Optional

from common.command_utils import get_symbols, log_message
from sequencer.exceptions import StepExecutionError
from sequencer.step import StepContext

module_logger = logging.getLogger(__name__)


def log(ctx: StepContext, message: str, level: str = "info") -> None:
    log_message(message, level, ctx.logger, ctx.app_settings)


def symbol(ctx: StepContext, name: str, default: str = "") -> str:
    return get_symbols(ctx.app_settings).get(name, default)


def ensure(ok: bool, message: str) -> None:
    """Raise StepExecutionError with `message` unless `ok`."""
    if not ok:
        raise StepExecutionError(message)


@contextmanager
def command_failures(description: str) -> Iterator[None]:
    """Convert failed or missing external commands into StepExecutionError."""
    try:
        yield
    except subprocess.CalledProcessError as e:
        raise StepExecutionError(
            f"{description} failed (rc {e.returncode})"
        ) from e
    except FileNotFoundError as e:
        raise StepExecutionError(
            f"{description} failed: command not found: {e.filename}"
        ) from e


def source_path(ctx: StepContext, configured: str) -> Path:
    """Resolve a configured checkout directory against source_root."""
    path = Path(configured).expanduser()
    if path.is_absolute():
        return path
    return Path(ctx.app_settings.source_root) / path


def operator_home(env: Optional[Mapping[str, str]] = None) -> Path:
    """
    Home directory of the person who invoked the installer.

    Under sudo this is SUDO_USER's home rather than root's.
    """
    environ = env if env is not None else os.environ
    sudo_user = environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        try:
            return Path(pwd.getpwnam(sudo_user).pw_dir)
        except KeyError:
            module_logger.warning(
                f"SUDO_USER '{sudo_user}' has no passwd entry; using HOME instead."
            )
    home = environ.get("HOME")
    return Path(home) if home else Path.home()


def chown_to_operator(path: Path, env: Optional[Mapping[str, str]] = None) -> None:
    """Give a file created as root back to SUDO_USER, when there is one."""
    environ = env if env is not None else os.environ
    sudo_user = environ.get("SUDO_USER")
    if not sudo_user or sudo_user == "root" or os.geteuid() != 0:
        return
    entry = pwd.getpwnam(sudo_user)
    os.chown(path, entry.pw_uid, entry.pw_gid)
