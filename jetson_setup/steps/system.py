# jetson_setup/steps/system.py
# -*- coding: utf-8 -*-
"""
System preparation steps shared by the DeepStream plans.
"""

from common.core_utils import build_command_env
from sequencer.exceptions import StepExecutionError
from sequencer.step import StepContext

from .helpers import chown_to_operator, ensure, log, operator_home, symbol

BASHRC_PATH_LINE = 'export PATH="$HOME/.local/bin:$PATH"'


def update_system(ctx: StepContext, upgrade: bool = False) -> None:
    """Refresh apt package lists and optionally upgrade installed packages."""
    log(ctx, f"{symbol(ctx, 'step', '➡️')} Performing system update{' and upgrade' if upgrade else ''}...")
    ensure(ctx.apt.update(ctx.app_settings), "apt-get update failed")
    if upgrade:
        ensure(ctx.apt.upgrade(ctx.app_settings), "apt-get upgrade failed")


def ensure_local_bin_on_path(ctx: StepContext) -> None:
    """
    Make ~/.local/bin part of PATH.

    Future interactive shells get it through a line appended once to the
    operator's ~/.bashrc. Commands run by later steps of this run get it
    through ctx.env; os.environ is left untouched.
    """
    home = operator_home(ctx.env or None)
    bashrc = home / ".bashrc"
    try:
        existing = bashrc.read_text(encoding="utf-8") if bashrc.exists() else None
        if existing is not None and BASHRC_PATH_LINE in existing:
            log(ctx, f"{symbol(ctx, 'info', 'ℹ️')} ~/.local/bin already in PATH in {bashrc}. Skipping.")
        else:
            with open(bashrc, "a", encoding="utf-8") as f:
                if existing and not existing.endswith("\n"):
                    f.write("\n")
                f.write(BASHRC_PATH_LINE + "\n")
            if existing is None:
                chown_to_operator(bashrc, ctx.env or None)
            log(ctx, f"{symbol(ctx, 'success', '✅')} Added ~/.local/bin to PATH in {bashrc}.", "success")
    except OSError as e:
        raise StepExecutionError(f"Could not update {bashrc}: {e}") from e

    ctx.env.update(build_command_env([str(home / ".local" / "bin")], ctx.env or None))
    log(ctx, f"PATH for this run: {ctx.env.get('PATH', '')}", "debug")
