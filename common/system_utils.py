# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the installer.

This module includes functions for system operations like reloading systemd,
refreshing the shared library cache, checking for root and rebooting.
"""

import logging
import os
from typing import NoReturn, Optional

from common.command_utils import (
    get_symbols,
    log_message,
    run_elevated_command,
)
from jetson_setup.config_models import AppSettings
from sequencer.exceptions import PrivilegeError

module_logger = logging.getLogger(__name__)


def is_root() -> bool:
    """Return True when the effective user id is 0."""
    return os.geteuid() == 0


def ensure_root(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Fail fast unless the process runs as root.

    Raises:
        PrivilegeError: The effective user id is not 0.
    """
    logger_to_use = current_logger if current_logger else module_logger
    if is_root():
        return
    symbols = get_symbols(app_settings)
    log_message(
        f"{symbols.get('critical', '🔥')} This installer must be run as root (try: sudo).",
        "critical",
        logger_to_use,
        app_settings,
    )
    raise PrivilegeError(
        "Root privileges are required; re-run the installer with sudo."
    )


def systemd_reload(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """
    Reload the systemd daemon. Errors propagate to the caller.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    log_message(
        f"{symbols.get('gear', '⚙️')} Reloading systemd daemon...",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(
        ["systemctl", "daemon-reload"],
        app_settings,
        current_logger=logger_to_use,
    )


def refresh_library_cache(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """Run ldconfig so freshly installed shared libraries are found."""
    run_elevated_command(
        ["ldconfig"], app_settings, current_logger=current_logger
    )


def reboot_now(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> NoReturn:
    """
    Flush filesystems and reboot the machine. Never returns: the process exits
    once the reboot has been requested.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    log_message(
        f"{symbols.get('reboot', '🔄')} Rebooting device to continue installation.",
        "info",
        logger_to_use,
        app_settings,
    )
    run_elevated_command(["sync"], app_settings, current_logger=logger_to_use)
    run_elevated_command(
        ["systemctl", "reboot"], app_settings, current_logger=logger_to_use
    )
    raise SystemExit(0)
