"""Restart policy: maps a termination event to a supervisor decision."""

from typing import Tuple

from .models import Decision, ExitOutcome, TerminationEvent
from .registry import Registry


class RestartPolicy:
    """
    Decides how the pool reacts to a worker exit.

    - The privileged worker's current instance died: restart the whole pool.
    - An instance that was already replaced died: nothing to do.
    - A worker exited with code 1: it was killed by a pool restart that has
      already respawned it, so restarting it again would double-spawn.
    - Any other exit: restart that worker alone.
    """

    def __init__(self, privileged_index: int = 1):
        self.privileged_index = privileged_index

    def decide(self, event: TerminationEvent, registry: Registry) -> Tuple[Decision, int]:
        """Return the decision and the index the event belongs to.

        Raises:
            UnknownHandleError: if the handle was never recorded.
        """
        index = registry.resolve(event.handle)

        if event.handle == registry.handle_of(self.privileged_index):
            return Decision.RESTART_ALL, index
        if not registry.is_current(event.handle):
            return Decision.IGNORE_STALE, index
        if event.outcome is ExitOutcome.SUPERSEDED:
            return Decision.SUPPRESS, index
        return Decision.RESTART_ONE, index
