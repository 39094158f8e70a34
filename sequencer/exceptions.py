# sequencer/exceptions.py
# -*- coding: utf-8 -*-
"""
Exception types raised by the install sequencer and its step actions.
"""

from typing import Optional


class SequencerError(Exception):
    """Base class for sequencer errors."""


class StepExecutionError(SequencerError):
    """A step's action reported failure."""

    def __init__(self, message: str, step_id: Optional[str] = None):
        super().__init__(message)
        self.step_id = step_id


class StateCorruptionError(SequencerError):
    """The Run State record is unreadable or names an unknown step."""


class RebootTriggerError(SequencerError):
    """The resume trigger could not be registered or deregistered."""


class PrivilegeError(SequencerError, PermissionError):
    """The installer was started without the privileges it needs."""
