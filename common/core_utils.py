#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Core utility functions for the project.

This module provides helper functions for:
- Logging setup.
- Building the command environment handed to install steps.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from jetson_setup.config_models import SYMBOLS_DEFAULT

module_logger = logging.getLogger(__name__)

SIMPLE_LOG_FORMAT_WITH_PREFIX_PLACEHOLDER = "{log_prefix}%(asctime)s - %(levelname)s - %(symbol)s %(name)s - %(message)s"
SIMPLE_LOG_FORMAT_NO_PREFIX = (
    "%(asctime)s - %(levelname)s - %(symbol)s %(name)s - %(message)s"
)


class SymbolFormatter(logging.Formatter):
    """
    A custom formatter that adds symbols to log messages based on the log level.
    """

    def __init__(
        self, fmt=None, datefmt=None, style="%", validate=True, symbols=None
    ):
        super().__init__(fmt, datefmt, style, validate)
        self.symbols = symbols or SYMBOLS_DEFAULT

    def format(self, record):
        if record.levelno == logging.DEBUG:
            record.symbol = self.symbols.get("debug", "🐛")
        elif record.levelno == logging.INFO:
            record.symbol = self.symbols.get("info", "ℹ️")
        elif record.levelno == logging.WARNING:
            record.symbol = self.symbols.get("warning", "⚠️")
        elif record.levelno == logging.ERROR:
            record.symbol = self.symbols.get("error", "❌")
        elif record.levelno == logging.CRITICAL:
            record.symbol = self.symbols.get("critical", "🔥")
        else:
            record.symbol = ""

        return super().format(record)


def setup_logging(
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_to_console: bool = True,
    log_format_str: Optional[str] = None,
    log_prefix: Optional[str] = None,
) -> Optional[str]:
    """
    Configures root logging with an appending file handler and/or a console
    handler.

    The file handler is what carries progress across the reboot boundary, so
    it always appends. If the file cannot be opened a warning is printed to
    stderr and logging continues on the console only.

    Parameters:
    log_level: int
        The logging level to configure. Defaults to logging.INFO.
    log_file: Optional[str]
        The file path for the log file.
    log_to_console: bool
        Whether to log to the console (stdout). Defaults to True.
    log_format_str: Optional[str]
        A custom log format string. May contain a {log_prefix} placeholder.
    log_prefix: Optional[str]
        An optional string to prefix log messages with.

    Returns:
    Optional[str]
        The log file actually in use, or None when file logging is unavailable.
    """
    handlers: List[logging.Handler] = []
    active_log_file: Optional[str] = None
    if log_file:
        try:
            log_file_path = Path(log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file_path, mode="a")
            handlers.append(file_handler)
            active_log_file = str(log_file_path)
        except OSError as e:
            print(
                f"Warning: Could not create file handler for log file {log_file}: {e}",
                file=sys.stderr,
            )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        handlers.append(console_handler)

    if not handlers:  # pragma: no cover
        handlers.append(logging.StreamHandler(sys.stdout))
        if log_level > logging.INFO:
            log_level = logging.INFO

    actual_prefix = (
        (log_prefix.strip() + " ")
        if log_prefix and log_prefix.strip()
        else ""
    )

    if log_format_str:
        if "{log_prefix}" in log_format_str:
            final_format_str = log_format_str.format(log_prefix=actual_prefix)
        else:
            final_format_str = actual_prefix + log_format_str
    elif actual_prefix:
        final_format_str = SIMPLE_LOG_FORMAT_WITH_PREFIX_PLACEHOLDER.format(
            log_prefix=actual_prefix
        )
    else:
        final_format_str = SIMPLE_LOG_FORMAT_NO_PREFIX

    formatter = SymbolFormatter(
        fmt=final_format_str,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    for handler in handlers:
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    for handler in handlers:
        root_logger.addHandler(handler)

    module_logger.debug(
        f"Logging configured. Level: {logging.getLevelName(log_level)}. File: {active_log_file or 'none'}"
    )
    return active_log_file


def build_command_env(
    extra_path_dirs: Iterable[str],
    base_env: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Return a copy of the environment with extra directories prepended to PATH.

    A leading "~" in entries expands to HOME of the resulting environment.
    Directories already on PATH are not repeated.
    The process environment itself is never modified.
    """
    env = dict(os.environ if base_env is None else base_env)
    current_parts = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    new_parts: List[str] = []
    for raw_dir in extra_path_dirs:
        home = env.get("HOME")
        if home and (raw_dir == "~" or raw_dir.startswith("~/")):
            expanded = home + raw_dir[1:]
        else:
            expanded = os.path.expanduser(raw_dir)
        if expanded not in current_parts and expanded not in new_parts:
            new_parts.append(expanded)
    env["PATH"] = os.pathsep.join(new_parts + current_parts)
    return env
