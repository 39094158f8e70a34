# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import subprocess
from typing import List, Optional, Union

from common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from jetson_setup.config_models import AppSettings

# Resumed runs have no terminal, so debconf must never prompt.
NONINTERACTIVE = ["env", "DEBIAN_FRONTEND=noninteractive"]


class AptManager:
    """
    A manager for Debian/Ubuntu apt packages using the command-line tools.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initializes the AptManager.
        Args:
            logger: An optional logging object.
        """
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def update(
        self, app_settings: AppSettings, raise_error: bool = False
    ) -> bool:
        """
        Updates the list of available packages using 'apt-get update'.

        Args:
            app_settings: The application settings.
            raise_error: Whether to raise an exception on failure.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        try:
            run_elevated_command(
                ["apt-get", "update", "-yq"],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info("Apt package lists updated successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to update apt cache: {e}")
            if raise_error:
                raise
            return False

    def upgrade(
        self, app_settings: AppSettings, raise_error: bool = False
    ) -> bool:
        """
        Upgrades installed packages using 'apt-get upgrade'.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Upgrading installed packages via 'apt-get upgrade'...")
        try:
            run_elevated_command(
                NONINTERACTIVE + ["apt-get", "upgrade", "-yq"],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info("Installed packages upgraded successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to upgrade packages: {e}")
            if raise_error:
                raise
            return False

    def is_installed(
        self, package: str, app_settings: AppSettings
    ) -> bool:
        """
        Returns True if dpkg reports the package as installed.
        """
        try:
            result = run_command(
                ["dpkg-query", "-W", "-f=${db:Status-Status}", package],
                app_settings,
                capture_output=True,
                check=True,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError:
            return False
        return (
            "installed" in result.stdout
            and "not-installed" not in result.stdout
        )

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        update_first: bool = True,
        raise_error: bool = False,
    ) -> bool:
        """
        Installs one or more packages using 'apt-get install'.

        Packages dpkg already reports as installed are skipped.

        Args:
            packages: A single package name or a list of package names.
            app_settings: The application settings.
            update_first: Whether to update the package lists before installing.
            raise_error: Whether to raise an exception on failure.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(packages, list):
            packages = [packages]

        if update_first:
            if not self.update(app_settings, raise_error=raise_error):
                return False

        packages_to_install = []
        for pkg_name in packages:
            if self.is_installed(pkg_name, app_settings):
                self.logger.info(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )
            else:
                self.logger.info(
                    f"Marking package for installation: {pkg_name}"
                )
                packages_to_install.append(pkg_name)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        try:
            cmd = NONINTERACTIVE + ["apt-get", "install", "-yq"] + packages_to_install
            run_elevated_command(
                cmd, app_settings, current_logger=self.logger
            )
            self.logger.info("Packages installed successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to install packages: {e}")
            if raise_error:
                raise
            return False

    def install_local_package(
        self,
        deb_path: str,
        app_settings: AppSettings,
        raise_error: bool = False,
    ) -> bool:
        """
        Installs a local .deb archive with 'dpkg -i'.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(f"Installing local package: {deb_path}")
        try:
            run_elevated_command(
                ["dpkg", "-i", deb_path],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info(f"Local package {deb_path} installed.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to install local package {deb_path}: {e}")
            if raise_error:
                raise
            return False

    def remove(
        self,
        packages: Union[List[str], str],
        purge: bool = False,
        app_settings: Optional[AppSettings] = None,
    ) -> bool:
        """
        Removes installed packages. Packages that are not installed are skipped.

        Args:
            packages: A single package name or a list of package names.
            purge: Whether to purge configuration files as well.
            app_settings: The application settings.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(packages, list):
            packages = [packages]

        packages_to_remove = []
        for pkg_name in packages:
            if self.is_installed(pkg_name, app_settings):
                self.logger.info(f"Marking package for removal: {pkg_name}")
                packages_to_remove.append(pkg_name)
            else:
                self.logger.info(
                    f"Package '{pkg_name}' is not installed. Skipping."
                )

        if not packages_to_remove:
            return True

        action = "purge" if purge else "remove"
        self.logger.info(
            f"Committing {action} for: {', '.join(packages_to_remove)}"
        )
        try:
            run_elevated_command(
                ["apt-get", action, "-yq"] + packages_to_remove,
                app_settings,
                current_logger=self.logger,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to {action} packages: {e}")
            return False
