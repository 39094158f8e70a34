# sequencer/sequencer.py
# -*- coding: utf-8 -*-
"""
Resumable install sequencer.

Runs an ordered list of steps to completion. When a step that requires a
reboot succeeds, the position of the next step is persisted as a Run State
record, a resume trigger is registered and the machine is rebooted; the
trigger re-invokes run() after boot, which consumes the record and continues
at that step. Each step runs at most once across the whole multi-boot
sequence, and nothing is left behind after success or failure.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from common.command_utils import get_symbols, log_message

from .exceptions import (
    RebootTriggerError,
    StateCorruptionError,
    StepExecutionError,
)
from .state_store import RunState, RunStateStore
from .step import Step, StepContext, validate_steps

module_logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    AWAITING_REBOOT = "awaiting_reboot"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SequenceResult:
    plan: str
    status: RunStatus
    executed_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    resumed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED


class ResumableSequencer:
    """
    Executes a plan's steps in order, surviving reboots requested by steps.

    Args:
        plan: Plan name, used for the Run State record and log lines.
        steps: Ordered steps; ids must be unique.
        context: Passed to every step action.
        state_store: Persists the resume position.
        resume_trigger: Object with install(), remove() and is_installed().
        reboot: Reboots the machine. In production it never returns.
        privilege_check: Called first by run(); raises PrivilegeError to
            refuse to start.
    """

    def __init__(
        self,
        plan: str,
        steps: Sequence[Step],
        context: StepContext,
        state_store: RunStateStore,
        resume_trigger: Any,
        reboot: Callable[[], Any],
        privilege_check: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.plan = plan
        self.steps = validate_steps(steps)
        self.context = context
        self.state_store = state_store
        self.resume_trigger = resume_trigger
        self.reboot = reboot
        self.privilege_check = privilege_check
        self.logger = logger or module_logger
        self.status = RunStatus.NOT_STARTED

    @property
    def _symbols(self):
        return get_symbols(self.context.app_settings)

    def _log(self, message: str, level: str = "info", exc_info: bool = False) -> None:
        log_message(
            message, level, self.logger, self.context.app_settings, exc_info=exc_info
        )

    def describe(self) -> List[Tuple[int, str, str, bool]]:
        """(position, step id, description, requires reboot) for each step."""
        return [
            (index + 1, step.step_id, step.description, step.requires_reboot_after)
            for index, step in enumerate(self.steps)
        ]

    def pending_resume(self) -> Optional[RunState]:
        """The stored Run State, if any. Raises StateCorruptionError if unreadable."""
        return self.state_store.load()

    def reset(self) -> None:
        """Remove the Run State and the resume trigger so the next run starts over."""
        self.state_store.clear()
        self.resume_trigger.remove()
        self._log(
            f"{self._symbols.get('info', 'ℹ️')} Plan '{self.plan}' reset; the next run starts from the first step."
        )

    def run(self) -> SequenceResult:
        """
        Start a fresh run or resume after a reboot.

        Returns:
            SequenceResult with status COMPLETED, FAILED or AWAITING_REBOOT
            (the latter only when the reboot callable returns).

        Raises:
            PrivilegeError: The privilege check refused to start.
        """
        if self.privilege_check is not None:
            self.privilege_check()

        result = SequenceResult(plan=self.plan, status=RunStatus.RUNNING)
        try:
            start_index, result.resumed = self._determine_start()
        except StateCorruptionError as e:
            self._log(
                f"{self._symbols.get('critical', '🔥')} {e}. Restart plan '{self.plan}' from the beginning.",
                "critical",
            )
            self._clear_residue()
            return self._finish(result, RunStatus.FAILED, error=str(e))

        self.status = RunStatus.RUNNING
        for index in range(start_index, len(self.steps)):
            step = self.steps[index]
            try:
                self._execute(step, index)
            except StepExecutionError as e:
                self._log(
                    f"{self._symbols.get('error', '❌')} FAILED: {step.description} ({step.step_id})",
                    "error",
                )
                self._log(f"   Error details: {e}", "error")
                self._clear_residue()
                result.failed_step = step.step_id
                return self._finish(result, RunStatus.FAILED, error=str(e))
            result.executed_steps.append(step.step_id)

            if step.requires_reboot_after:
                if index + 1 < len(self.steps):
                    return self._suspend_for_reboot(result, self.steps[index + 1])
                self._clear_residue()
                self._finish(result, RunStatus.COMPLETED)
                self.reboot()
                return result

        self._clear_residue()
        return self._finish(result, RunStatus.COMPLETED)

    def _determine_start(self) -> Tuple[int, bool]:
        state = self.state_store.load()
        if state is None:
            self._log(
                f"{self._symbols.get('rocket', '🚀')} Starting plan '{self.plan}' from the first step."
            )
            return 0, False

        if not state.in_progress:
            self._log(
                f"{self._symbols.get('warning', '⚠️')} Discarding stale Run State for '{self.plan}' (not in progress). Starting fresh.",
                "warning",
            )
            self.state_store.clear()
            return 0, False

        # Consumed before any step runs, so a crash below restarts from scratch.
        self.state_store.clear()
        index = self._index_of(state.next_step_id)
        self._log(
            f"{self._symbols.get('rocket', '🚀')} Resuming plan '{self.plan}' after reboot at step '{state.next_step_id}'."
        )
        return index, True

    def _index_of(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.step_id == step_id:
                return index
        raise StateCorruptionError(
            f"Run State for plan '{self.plan}' names unknown step '{step_id}'"
        )

    def _execute(self, step: Step, index: int) -> None:
        self._log(
            f"--- {self._symbols.get('step', '➡️')} Step {index + 1}/{len(self.steps)}: {step.description} ({step.step_id}) ---"
        )
        try:
            outcome = step.action(self.context)
        except StepExecutionError as e:
            if e.step_id is None:
                e.step_id = step.step_id
            raise
        except Exception as e:
            raise StepExecutionError(
                f"Step '{step.step_id}' raised {type(e).__name__}: {e}",
                step.step_id,
            ) from e
        if outcome is False:
            raise StepExecutionError(
                f"Step '{step.step_id}' reported failure", step.step_id
            )
        self._log(
            f"--- {self._symbols.get('success', '✅')} Successfully completed: {step.description} ({step.step_id}) ---",
            "success",
        )

    def _suspend_for_reboot(
        self, result: SequenceResult, next_step: Step
    ) -> SequenceResult:
        state = RunState(
            plan=self.plan, next_step_id=next_step.step_id, in_progress=True
        )
        try:
            self.state_store.save(state)
            self.resume_trigger.install()
        except (OSError, RebootTriggerError) as e:
            self._log(
                f"{self._symbols.get('error', '❌')} Could not prepare resume after reboot: {e}",
                "error",
            )
            self._clear_residue()
            return self._finish(result, RunStatus.FAILED, error=str(e))

        self._finish(result, RunStatus.AWAITING_REBOOT)
        self._log(
            f"{self._symbols.get('reboot', '🔄')} Plan '{self.plan}' will resume at '{next_step.step_id}' after reboot. "
            f"Monitor {self.context.app_settings.log_file} for progress of the next stage."
        )
        self.reboot()
        return result

    def _clear_residue(self) -> None:
        try:
            self.state_store.clear()
        except OSError as e:
            self._log(
                f"{self._symbols.get('error', '❌')} Failed to remove Run State {self.state_store.path}: {e}",
                "error",
            )
        try:
            self.resume_trigger.remove()
        except RebootTriggerError as e:
            self._log(f"{self._symbols.get('error', '❌')} {e}", "error")

    def _finish(
        self,
        result: SequenceResult,
        status: RunStatus,
        error: Optional[str] = None,
    ) -> SequenceResult:
        self.status = status
        result.status = status
        if error is not None:
            result.error = error
        if status == RunStatus.COMPLETED:
            self._log(
                f"{self._symbols.get('sparkles', '✨')} Plan '{self.plan}' completed successfully.",
                "success",
            )
        elif status == RunStatus.FAILED:
            self._log(
                f"{self._symbols.get('error', '❌')} Plan '{self.plan}' failed. Fix the cause and run it again from the beginning.",
                "error",
            )
        return result
