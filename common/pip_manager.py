# common/pip_manager.py
# -*- coding: utf-8 -*-
import logging
import subprocess
from typing import List, Mapping, Optional, Sequence, Union

from common.command_utils import run_command
from jetson_setup.config_models import AppSettings


class PipManager:
    """
    Installs and removes Python packages through the configured pip command.

    Commands run as the current user; the installer itself runs as root, so
    this matches the system-wide `pip3 install` of a root shell.
    """

    def __init__(
        self,
        pip_command: Sequence[str],
        logger: Optional[logging.Logger] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            pip_command: Command prefix, e.g. ["pip3"] or ["python3", "-m", "pip"].
            logger: An optional logging object.
            env: Environment for pip invocations.
        """
        if not pip_command:
            raise ValueError("pip_command must not be empty")
        self.pip_command = list(pip_command)
        self.logger = logger or logging.getLogger(__name__)
        self.env = env

    def install(
        self,
        specs: Union[List[str], str],
        app_settings: AppSettings,
        no_cache: bool = False,
        prefer_binary: bool = False,
        force_reinstall: bool = False,
        no_deps: bool = False,
        upgrade: bool = False,
        editable: bool = False,
        cwd: Optional[str] = None,
        raise_error: bool = False,
    ) -> bool:
        """
        Installs requirement specifiers, wheel URLs or local paths.

        Args:
            specs: One specifier or a list of them.
            app_settings: The application settings.
            no_cache: Pass --no-cache-dir.
            prefer_binary: Pass --prefer-binary.
            force_reinstall: Pass --force-reinstall.
            no_deps: Pass --no-deps.
            upgrade: Pass -U.
            editable: Install each spec with -e (local source trees).
            cwd: Working directory for pip.
            raise_error: Whether to raise an exception on failure.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(specs, list):
            specs = [specs]

        cmd = self.pip_command + ["install"]
        if upgrade:
            cmd.append("-U")
        if no_cache:
            cmd.append("--no-cache-dir")
        if prefer_binary:
            cmd.append("--prefer-binary")
        if force_reinstall:
            cmd.append("--force-reinstall")
        if no_deps:
            cmd.append("--no-deps")
        for spec in specs:
            if editable:
                cmd.extend(["-e", spec])
            else:
                cmd.append(spec)

        self.logger.info(f"Installing Python packages: {', '.join(specs)}")
        try:
            run_command(
                cmd,
                app_settings,
                current_logger=self.logger,
                cwd=cwd,
                env=self.env,
            )
            self.logger.info("Python packages installed successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to install Python packages: {e}")
            if raise_error:
                raise
            return False

    def uninstall(
        self,
        names: Union[List[str], str],
        app_settings: AppSettings,
        ignore_missing: bool = True,
    ) -> bool:
        """
        Uninstalls packages with 'pip uninstall -y'.

        pip exits non-zero when nothing could be removed; with
        `ignore_missing` that is logged and treated as success.

        Returns:
            True if successful (or nothing to remove), False otherwise.
        """
        if not isinstance(names, list):
            names = [names]

        self.logger.info(f"Uninstalling Python packages: {', '.join(names)}")
        try:
            run_command(
                self.pip_command + ["uninstall", "-y"] + names,
                app_settings,
                current_logger=self.logger,
                env=self.env,
            )
            return True
        except subprocess.CalledProcessError as e:
            if ignore_missing:
                self.logger.info(
                    f"No existing {', '.join(names)} found or failed to uninstall (rc {e.returncode}). Continuing."
                )
                return True
            self.logger.error(f"Failed to uninstall Python packages: {e}")
            return False
