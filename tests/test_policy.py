"""Tests for the restart policy."""

import pytest

from warden_runtime.core.exceptions import UnknownHandleError
from warden_supervisor.models import Decision, ExitOutcome, TerminationEvent
from warden_supervisor.policy import RestartPolicy
from warden_supervisor.registry import Registry


@pytest.fixture
def registry():
    registry = Registry(4)
    for index, handle in enumerate([100, 101, 102, 103]):
        registry.record(index, handle)
    return registry


class TestTerminationEvent:
    """Test exit classification."""

    def test_outcomes(self):
        assert TerminationEvent(1, exit_code=0).outcome is ExitOutcome.STOPPED
        assert TerminationEvent(1, exit_code=1).outcome is ExitOutcome.SUPERSEDED
        assert TerminationEvent(1, exit_code=2).outcome is ExitOutcome.CRASHED
        assert TerminationEvent(1, term_signal=9).outcome is ExitOutcome.CRASHED

    def test_from_wait_status(self):
        """Test decoding raw wait statuses."""
        exited = TerminationEvent.from_wait_status(42, 1 << 8)
        assert exited.exit_code == 1
        assert exited.term_signal is None

        killed = TerminationEvent.from_wait_status(42, 9)
        assert killed.term_signal == 9
        assert killed.exit_code is None
        assert killed.describe() == "killed by signal 9"


class TestRestartPolicy:
    """Test the decision table."""

    def test_privileged_death_restarts_all(self, registry):
        policy = RestartPolicy(privileged_index=1)
        assert policy.decide(TerminationEvent(101, exit_code=0), registry) == (Decision.RESTART_ALL, 1)

    def test_privileged_detected_by_handle_not_exit_code(self, registry):
        """Test that even an exit code of 1 from the privileged worker restarts the pool."""
        policy = RestartPolicy(privileged_index=1)
        assert policy.decide(TerminationEvent(101, exit_code=1), registry) == (Decision.RESTART_ALL, 1)
        assert policy.decide(TerminationEvent(101, term_signal=9), registry) == (Decision.RESTART_ALL, 1)

    def test_stopped_worker_restarts_alone(self, registry):
        policy = RestartPolicy()
        assert policy.decide(TerminationEvent(102, exit_code=0), registry) == (Decision.RESTART_ONE, 2)

    def test_crashed_worker_restarts_alone(self, registry):
        policy = RestartPolicy()
        assert policy.decide(TerminationEvent(103, term_signal=9), registry) == (Decision.RESTART_ONE, 3)

    def test_superseded_worker_is_suppressed(self, registry):
        policy = RestartPolicy()
        assert policy.decide(TerminationEvent(103, exit_code=1), registry) == (Decision.SUPPRESS, 3)

    def test_replaced_instance_is_stale(self, registry):
        """Test that exits of already replaced instances are ignored."""
        registry.record(2, 202)
        policy = RestartPolicy()
        assert policy.decide(TerminationEvent(102, exit_code=1), registry) == (Decision.IGNORE_STALE, 2)
        assert policy.decide(TerminationEvent(102, exit_code=0), registry) == (Decision.IGNORE_STALE, 2)

    def test_replaced_privileged_instance_is_stale(self, registry):
        registry.record(1, 301)
        policy = RestartPolicy(privileged_index=1)
        assert policy.decide(TerminationEvent(101, exit_code=0), registry) == (Decision.IGNORE_STALE, 1)

    def test_configurable_privileged_index(self, registry):
        policy = RestartPolicy(privileged_index=3)
        assert policy.decide(TerminationEvent(103, exit_code=0), registry) == (Decision.RESTART_ALL, 3)
        assert policy.decide(TerminationEvent(101, exit_code=0), registry) == (Decision.RESTART_ONE, 1)

    def test_unknown_handle(self, registry):
        with pytest.raises(UnknownHandleError):
            RestartPolicy().decide(TerminationEvent(999, exit_code=0), registry)
