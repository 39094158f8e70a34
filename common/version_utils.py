# common/version_utils.py
# -*- coding: utf-8 -*-
"""
Dotted version parsing and comparison for "is an update required" checks.

Versions are compared as tuples of integers, padded with zeros to equal
length. A missing or unparsable installed version always means an update is
required.
"""

import logging
import re
import subprocess
from typing import Optional, Tuple

from common.command_utils import run_command
from jetson_setup.config_models import AppSettings

module_logger = logging.getLogger(__name__)

VersionTuple = Tuple[int, ...]

_VERSION_RE = re.compile(r"^\s*v?(\d+(?:\.\d+)*)")


def parse_version(text: Optional[str]) -> Optional[VersionTuple]:
    """
    Parse the leading dotted-number part of a version string.

    "2.72.4" -> (2, 72, 4); "v2.2.0" -> (2, 2, 0); "1.20.0rc1" -> (1, 20, 0).
    Returns None for None, empty or non-numeric input.
    """
    if not text:
        return None
    match = _VERSION_RE.match(text)
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def compare_versions(left: VersionTuple, right: VersionTuple) -> int:
    """Return -1, 0 or 1 as left is older than, equal to or newer than right."""
    width = max(len(left), len(right))
    padded_left = left + (0,) * (width - len(left))
    padded_right = right + (0,) * (width - len(right))
    if padded_left < padded_right:
        return -1
    if padded_left > padded_right:
        return 1
    return 0


def needs_update(current: Optional[str], target: str) -> bool:
    """
    True when `current` is missing, unparsable or older than `target`.

    Raises:
        ValueError: `target` itself is not a version.
    """
    target_tuple = parse_version(target)
    if target_tuple is None:
        raise ValueError(f"Invalid target version: {target!r}")
    current_tuple = parse_version(current)
    if current_tuple is None:
        return True
    return compare_versions(current_tuple, target_tuple) < 0


def get_pkg_config_version(
    module_name: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Return `pkg-config --modversion <module>` output, or None when
    pkg-config is missing or does not know the module.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        result = run_command(
            ["pkg-config", "--modversion", module_name],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except (FileNotFoundError, subprocess.SubprocessError) as e:
        logger_to_use.warning(f"Could not query pkg-config for {module_name}: {e}")
        return None
    if result.returncode != 0:
        return None
    version = (result.stdout or "").strip()
    return version or None
