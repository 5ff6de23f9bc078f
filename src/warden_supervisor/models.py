"""Data models for the pool supervisor."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Index 0 is the supervisor itself; it is recorded but never spawned.
SUPERVISOR_INDEX = 0


class WorkerState(Enum):
    """State of a worker index, as seen by the supervisor."""
    SPAWNING = "spawning"
    RUNNING = "running"
    DORMANT = "dormant"


class ExitOutcome(Enum):
    """Why a worker process went away."""
    STOPPED = "stopped"        # exit 0: asked to stop individually
    SUPERSEDED = "superseded"  # exit 1: killed as part of a pool restart
    CRASHED = "crashed"        # any other exit code, or killed by a signal


class Decision(Enum):
    """What the supervisor does about a termination event."""
    RESTART_ALL = "restart_all"
    RESTART_ONE = "restart_one"
    SUPPRESS = "suppress"
    IGNORE_STALE = "ignore_stale"


@dataclass(frozen=True)
class TerminationEvent:
    """A reaped worker: its handle and how it ended."""

    handle: int
    exit_code: Optional[int] = None
    term_signal: Optional[int] = None

    @classmethod
    def from_wait_status(cls, handle: int, status: int) -> "TerminationEvent":
        """Build an event from a raw ``os.waitpid`` status."""
        if os.WIFSIGNALED(status):
            return cls(handle=handle, term_signal=os.WTERMSIG(status))
        return cls(handle=handle, exit_code=os.WEXITSTATUS(status))

    @property
    def outcome(self) -> ExitOutcome:
        if self.term_signal is None and self.exit_code == 0:
            return ExitOutcome.STOPPED
        if self.term_signal is None and self.exit_code == 1:
            return ExitOutcome.SUPERSEDED
        return ExitOutcome.CRASHED

    def describe(self) -> str:
        if self.term_signal is not None:
            return f"killed by signal {self.term_signal}"
        return f"exit code {self.exit_code}"
