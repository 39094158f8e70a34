# jetson_setup/cli_handler.py
# -*- coding: utf-8 -*-
"""
Command-line interface for the Jetson stack installer.

Exit codes:
    0  plan completed, or stopped to reboot and resume
    1  a step failed, or the Run State was unusable
    2  usage error or unknown plan
    3  the installer is not running as root
"""

import argparse
import logging
import subprocess
import sys
from functools import partial
from pathlib import Path
from typing import List, Optional

from common.core_utils import build_command_env, setup_logging
from common.debian.apt_manager import AptManager
from common.pip_manager import PipManager
from common.system_utils import ensure_root, reboot_now
from sequencer.exceptions import (
    PrivilegeError,
    RebootTriggerError,
    StateCorruptionError,
)
from sequencer.resume_trigger import SystemdResumeTrigger
from sequencer.sequencer import ResumableSequencer, RunStatus
from sequencer.state_store import RunStateStore
from sequencer.step import StepContext

from . import config as static_config
from .config_loader import load_app_settings
from .config_models import AppSettings
from .plans import PlanRegistry, build_plan

logger = logging.getLogger("jetson_setup")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_PRIVILEGE = 3


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.
    """
    parser = argparse.ArgumentParser(
        description="Resumable installer for DeepStream and Ultralytics on NVIDIA Jetson"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--config", default=None, help="Path to a YAML configuration file"
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help=f"Progress log file (default: {static_config.LOG_FILE_DEFAULT})",
    )
    parser.add_argument(
        "--state-dir",
        dest="state_dir",
        default=None,
        help=f"Run State directory (default: {static_config.STATE_DIR_DEFAULT})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.add_parser("list", help="List available plans and their steps")
    for name, help_text in (
        ("run", "Start a plan, or continue it after a reboot"),
        ("resume", "Continue a plan after reboot (used by the resume unit)"),
        ("status", "Show Run State and resume trigger of a plan"),
        ("reset", "Remove Run State and resume trigger of a plan"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("plan", help="Plan name (see 'list')")

    parsed = parser.parse_args(args)
    if not parsed.command:
        parser.print_help(sys.stderr)
        parser.exit(EXIT_USAGE)
    return parsed


def resume_command(
    plan: str, app_settings: AppSettings, config_path: Optional[str]
) -> List[str]:
    """The command line the resume unit runs after boot."""
    command = [sys.executable, str(static_config.PROJECT_ROOT / "install.py")]
    if config_path:
        command += ["--config", str(Path(config_path).resolve())]
    command += [
        "--log-file",
        app_settings.log_file,
        "--state-dir",
        app_settings.state_dir,
        "resume",
        plan,
    ]
    return command


def build_resume_trigger(
    plan: str,
    app_settings: AppSettings,
    config_path: Optional[str],
    state_path: Optional[Path] = None,
) -> SystemdResumeTrigger:
    return SystemdResumeTrigger(
        unit_name=static_config.RESUME_UNIT_TEMPLATE.format(plan=plan),
        exec_command=resume_command(plan, app_settings, config_path),
        app_settings=app_settings,
        working_directory=static_config.PROJECT_ROOT,
        description=f"Resume Jetson stack installation plan '{plan}' after reboot",
        logger=logger,
        state_path=state_path,
    )


def build_sequencer(
    plan: str,
    app_settings: AppSettings,
    config_path: Optional[str] = None,
    with_managers: bool = True,
) -> ResumableSequencer:
    """
    Assemble the sequencer for a plan with its production collaborators.

    Raises:
        KeyError: The plan is unknown.
        FileNotFoundError: apt-get is missing and managers were requested.
    """
    steps = build_plan(plan, app_settings)
    env = build_command_env(app_settings.extra_path_dirs)
    context = StepContext(app_settings=app_settings, logger=logger, env=env)
    if with_managers:
        context.apt = AptManager(logger=logger)
        context.pip = PipManager(app_settings.pip_command, logger=logger, env=env)

    privilege_check = (
        partial(ensure_root, app_settings, logger)
        if app_settings.require_root
        else None
    )
    state_store = RunStateStore(app_settings.state_dir, plan, logger)
    return ResumableSequencer(
        plan=plan,
        steps=steps,
        context=context,
        state_store=state_store,
        resume_trigger=build_resume_trigger(
            plan, app_settings, config_path, state_store.path
        ),
        reboot=partial(reboot_now, app_settings, logger),
        privilege_check=privilege_check,
        logger=logger,
    )


def list_plans(app_settings: AppSettings) -> int:
    logger.info("Available plans:")
    for name, definition in sorted(PlanRegistry.get_all_plans().items()):
        logger.info(f"  {name}: {definition.description}")
        for step in build_plan(name, app_settings):
            reboot_note = " (reboot after)" if step.requires_reboot_after else ""
            logger.info(f"      - {step.step_id}: {step.description}{reboot_note}")
    return EXIT_OK


def _exit_code_for(status: RunStatus) -> int:
    if status in (RunStatus.COMPLETED, RunStatus.AWAITING_REBOOT):
        return EXIT_OK
    return EXIT_FAILED


def run_plan(sequencer: ResumableSequencer) -> int:
    try:
        result = sequencer.run()
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        logger.error(
            f"Reboot failed: {e}. Reboot manually to continue plan '{sequencer.plan}'."
        )
        return EXIT_FAILED
    return _exit_code_for(result.status)


def resume_plan(sequencer: ResumableSequencer) -> int:
    """
    Entry point of the resume unit. Without a Run State there is nothing to
    resume; any leftover trigger is removed and the command succeeds.
    """
    if sequencer.privilege_check is not None:
        sequencer.privilege_check()
    if not sequencer.state_store.exists():
        logger.info(
            f"No Run State for plan '{sequencer.plan}'; nothing to resume."
        )
        try:
            sequencer.resume_trigger.remove()
        except RebootTriggerError as e:
            logger.error(str(e))
            return EXIT_FAILED
        return EXIT_OK
    return run_plan(sequencer)


def show_status(sequencer: ResumableSequencer) -> int:
    try:
        state = sequencer.pending_resume()
    except StateCorruptionError as e:
        logger.error(f"{e}. Use 'reset {sequencer.plan}' to start over.")
        return EXIT_FAILED
    if state is None:
        logger.info(f"Plan '{sequencer.plan}': no Run State (next run starts from the first step).")
    else:
        logger.info(
            f"Plan '{sequencer.plan}': resumes at '{state.next_step_id}' "
            f"(in_progress={state.in_progress}, saved {state.created_at}, version {state.script_version})."
        )
    installed = sequencer.resume_trigger.is_installed()
    logger.info(
        f"Resume trigger {sequencer.resume_trigger.unit_name}: {'installed' if installed else 'not installed'}."
    )
    return EXIT_OK


def reset_plan(sequencer: ResumableSequencer) -> int:
    if sequencer.privilege_check is not None:
        sequencer.privilege_check()
    try:
        sequencer.reset()
    except (OSError, RebootTriggerError) as e:
        logger.error(f"Reset of plan '{sequencer.plan}' failed: {e}")
        return EXIT_FAILED
    return EXIT_OK


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the installer.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Exit code (see module docstring).
    """
    parsed_args = parse_args(args)
    app_settings = load_app_settings(parsed_args, parsed_args.config, logger)
    setup_logging(
        log_level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        log_file=app_settings.log_file,
        log_to_console=True,
        log_prefix=app_settings.log_prefix,
    )
    logger.debug(f"Jetson stack installer {static_config.SCRIPT_VERSION}")

    if parsed_args.command == "list":
        return list_plans(app_settings)

    try:
        sequencer = build_sequencer(
            parsed_args.plan,
            app_settings,
            parsed_args.config,
            with_managers=parsed_args.command in ("run", "resume"),
        )
    except KeyError:
        logger.error(
            f"Unknown plan '{parsed_args.plan}'. Available: {', '.join(sorted(PlanRegistry.get_all_plans()))}"
        )
        return EXIT_USAGE
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_FAILED

    handlers = {
        "run": run_plan,
        "resume": resume_plan,
        "status": show_status,
        "reset": reset_plan,
    }
    try:
        return handlers[parsed_args.command](sequencer)
    except PrivilegeError as e:
        logger.error(str(e))
        return EXIT_PRIVILEGE
