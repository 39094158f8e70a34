"""
Resumable install sequencer.

Runs an ordered list of idempotent steps and carries the run across a
reboot with a Run State record and a one-shot resume trigger.
"""

from sequencer.exceptions import (
    PrivilegeError,
    RebootTriggerError,
    SequencerError,
    StateCorruptionError,
    StepExecutionError,
)
from sequencer.sequencer import ResumableSequencer, RunStatus, SequenceResult
from sequencer.state_store import RunState, RunStateStore
from sequencer.step import Step, StepContext

__all__ = [
    "PrivilegeError",
    "RebootTriggerError",
    "ResumableSequencer",
    "RunState",
    "RunStateStore",
    "RunStatus",
    "SequenceResult",
    "SequencerError",
    "StateCorruptionError",
    "Step",
    "StepContext",
    "StepExecutionError",
]
