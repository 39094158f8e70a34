# sequencer/step.py
# -*- coding: utf-8 -*-
"""
Step and StepContext definitions.

A Step is an identified unit of installation work. Its action receives a
StepContext carrying the settings, logger and package managers, and signals
failure by raising or by returning False. Any other return value, including
None, is success.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from jetson_setup.config_models import AppSettings


@dataclass
class StepContext:
    """Explicit configuration handed to every step action."""

    app_settings: AppSettings
    logger: logging.Logger
    apt: Any = None
    pip: Any = None
    env: Dict[str, str] = field(default_factory=dict)


StepAction = Callable[[StepContext], Optional[bool]]


@dataclass(frozen=True)
class Step:
    step_id: str
    description: str
    action: StepAction
    requires_reboot_after: bool = False


def validate_steps(steps: Sequence[Step]) -> List[Step]:
    """
    Return the steps as a list, rejecting empty plans and duplicate ids.

    Raises:
        ValueError: The plan is empty or two steps share an id.
    """
    step_list = list(steps)
    if not step_list:
        raise ValueError("A plan needs at least one step")
    seen = set()
    for step in step_list:
        if step.step_id in seen:
            raise ValueError(f"Duplicate step id '{step.step_id}'")
        seen.add(step.step_id)
    return step_list
