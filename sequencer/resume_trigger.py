# sequencer/resume_trigger.py
# -*- coding: utf-8 -*-
"""
Resume trigger backed by a systemd one-shot unit.

The unit runs the installer's resume command once the network and
multi-user targets are up, as root. When it stops it disables itself
unless a Run State remains, which means the plan suspended for another
reboot and the unit is needed again on the next boot.
"""

import logging
import os
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Sequence, Union

from common.command_utils import get_symbols, log_message, run_elevated_command
from common.system_utils import systemd_reload
from jetson_setup.config_models import AppSettings

from .exceptions import RebootTriggerError

module_logger = logging.getLogger(__name__)

SYSTEMCTL = "/usr/bin/systemctl"

UNIT_TEMPLATE = """\
[Unit]
Description={description}
After=network-online.target multi-user.target
Wants=network-online.target

[Service]
Type=oneshot
User=root
Group=root
WorkingDirectory={working_directory}
ExecStart={exec_start}
ExecStopPost=-{exec_stop_post}

[Install]
WantedBy=multi-user.target
"""


class SystemdResumeTrigger:
    """Registers and deregisters the one-shot resume unit for a plan."""

    def __init__(
        self,
        unit_name: str,
        exec_command: Sequence[str],
        app_settings: AppSettings,
        working_directory: Union[str, Path],
        unit_dir: Optional[Union[str, Path]] = None,
        description: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        state_path: Optional[Union[str, Path]] = None,
    ):
        if not unit_name.endswith(".service"):
            raise ValueError(f"Unit name must end with '.service': {unit_name}")
        if not exec_command:
            raise ValueError("exec_command must not be empty")
        self.unit_name = unit_name
        self.exec_command = list(exec_command)
        self.app_settings = app_settings
        self.working_directory = str(working_directory)
        self.unit_dir = Path(unit_dir or app_settings.systemd_unit_dir)
        self.unit_path = self.unit_dir / unit_name
        self.description = description or f"Resume {unit_name[:-len('.service')]} after reboot"
        self.logger = logger or module_logger
        self.state_path = Path(state_path) if state_path is not None else None

    def render_unit(self) -> str:
        return UNIT_TEMPLATE.format(
            description=self.description,
            working_directory=self.working_directory,
            exec_start=shlex.join(self.exec_command),
            exec_stop_post=self._exec_stop_post(),
        )

    def _exec_stop_post(self) -> str:
        disable = f"{SYSTEMCTL} disable {self.unit_name}"
        if self.state_path is None:
            return disable
        check = f"test -e {shlex.quote(str(self.state_path))} || {disable}"
        return shlex.join(["/bin/sh", "-c", check])

    def is_installed(self) -> bool:
        return self.unit_path.is_file()

    def install(self) -> None:
        """
        Write, reload and enable the unit.

        Raises:
            RebootTriggerError: Any part of the registration failed.
        """
        symbols = get_symbols(self.app_settings)
        log_message(
            f"{symbols.get('gear', '⚙️')} Installing resume trigger {self.unit_path}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            self._write_unit_file()
            systemd_reload(self.app_settings, self.logger)
            run_elevated_command(
                ["systemctl", "enable", self.unit_name],
                self.app_settings,
                current_logger=self.logger,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise RebootTriggerError(
                f"Failed to register resume trigger {self.unit_name}: {e}"
            ) from e
        log_message(
            f"{symbols.get('success', '✅')} Resume trigger {self.unit_name} enabled. It will run on next boot.",
            "success",
            self.logger,
            self.app_settings,
        )

    def remove(self) -> None:
        """
        Disable and delete the unit. Does nothing when it is not installed.

        Raises:
            RebootTriggerError: The unit exists but could not be removed.
        """
        if not self.is_installed():
            return
        symbols = get_symbols(self.app_settings)
        log_message(
            f"{symbols.get('info', 'ℹ️')} Removing resume trigger {self.unit_name}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            run_elevated_command(
                ["systemctl", "disable", self.unit_name],
                self.app_settings,
                current_logger=self.logger,
            )
            self.unit_path.unlink(missing_ok=True)
            systemd_reload(self.app_settings, self.logger)
        except (OSError, subprocess.CalledProcessError) as e:
            raise RebootTriggerError(
                f"Failed to remove resume trigger {self.unit_name}: {e}"
            ) from e

    def _write_unit_file(self) -> None:
        self.unit_dir.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=str(self.unit_dir), prefix=".resume_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.render_unit())
            os.chmod(temp_path, 0o644)
            os.replace(temp_path, self.unit_path)
        finally:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
