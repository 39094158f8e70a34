# sequencer/state_store.py
# -*- coding: utf-8 -*-
"""
Persists the Run State record that carries the resume position across a
reboot.

The record lives at <state_dir>/<plan>.state.json. The directory is created
with mode 0750 and the file is written atomically with mode 0600, so only
root can read or forge a resume position.
"""

import datetime
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError

from jetson_setup import config as static_config

from .exceptions import StateCorruptionError

module_logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class RunState(BaseModel):
    """Resume position of a plan interrupted by a reboot."""

    plan: str
    next_step_id: str
    in_progress: bool = True
    created_at: str = Field(default_factory=_utc_now)
    script_version: str = static_config.SCRIPT_VERSION


class RunStateStore:
    """Load, save and clear the Run State record of one plan."""

    def __init__(
        self,
        state_dir: Union[str, Path],
        plan: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.state_dir = Path(state_dir)
        self.plan = plan
        self.path = self.state_dir / f"{plan}.state.json"
        self.logger = logger or module_logger

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[RunState]:
        """
        Returns the stored RunState, or None if no record exists.

        Raises:
            StateCorruptionError: The record is not valid JSON, does not match
                the schema, or belongs to a different plan.
        """
        if not self.path.is_file():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            state = RunState.model_validate(raw)
        except (OSError, ValueError, ValidationError) as e:
            raise StateCorruptionError(
                f"Run State {self.path} is unreadable: {e}"
            ) from e
        if state.plan != self.plan:
            raise StateCorruptionError(
                f"Run State {self.path} belongs to plan '{state.plan}', not '{self.plan}'"
            )
        return state

    def save(self, state: RunState) -> None:
        """Atomically write the record, replacing any previous one."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.state_dir, 0o750)
        fd, temp_path = tempfile.mkstemp(
            dir=str(self.state_dir), prefix=f".{self.plan}_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json(indent=2))
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.path)
        finally:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
        self.logger.debug(
            f"Saved Run State for '{self.plan}': next step '{state.next_step_id}'"
        )

    def clear(self) -> None:
        """Delete the record. A missing record is not an error."""
        try:
            self.path.unlink()
            self.logger.debug(f"Removed Run State {self.path}")
        except FileNotFoundError:
            pass
