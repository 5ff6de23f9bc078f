"""
Pytest configuration and fixtures for warden tests.
"""

import io
import itertools
import os

import pytest
import structlog

from warden_runtime.core.exceptions import SignalDeliveryError, SpawnError
from warden_supervisor.channel import AnnouncementChannel
from warden_supervisor.models import TerminationEvent
from warden_supervisor.supervisor import Supervisor

SUPERVISOR_PID = 100


@pytest.fixture(autouse=True)
def clean_warden_env(monkeypatch):
    """
    Keep WARDEN_* variables of the developer's shell out of the tests.
    """
    for key in list(os.environ):
        if key.startswith("WARDEN_"):
            monkeypatch.delenv(key)
    yield
    structlog.reset_defaults()


class FakeProcessManager:
    """In-memory stand-in for ProcessManager.

    Spawns hand out increasing pids, ``exit`` queues a termination event and
    ``terminate`` turns a live pid into a queued exit with code 1, the way a
    real worker answers the supervisor's signal.
    """

    def __init__(self, first_pid: int = 1000):
        self._pids = itertools.count(first_pid)
        self.spawned = []
        self.terminated = []
        self.live = set()
        self.pending = []
        self.fail_spawn_for = set()

    def spawn(self, index: int) -> int:
        if index in self.fail_spawn_for:
            raise SpawnError(index, "fork failed")
        pid = next(self._pids)
        self.spawned.append((index, pid))
        self.live.add(pid)
        return pid

    def terminate(self, handle: int) -> None:
        self.terminated.append(handle)
        if handle not in self.live:
            raise SignalDeliveryError(handle, 15)
        self.exit(handle, 1)

    def exit(self, handle: int, code: int = 0) -> TerminationEvent:
        self.live.discard(handle)
        event = TerminationEvent(handle=handle, exit_code=code)
        self.pending.append(event)
        return event

    def wait_any(self) -> TerminationEvent:
        if not self.pending:
            raise ChildProcessError("no child processes")
        return self.pending.pop(0)

    def drain(self, supervisor: Supervisor) -> list:
        decisions = []
        while self.pending:
            decisions.append(supervisor.handle_event(self.pending.pop(0)))
        return decisions


def read_records(stream: io.BytesIO) -> list:
    return [line for line in stream.getvalue().decode("ascii").splitlines()]


@pytest.fixture
def fake_pm():
    return FakeProcessManager()


@pytest.fixture
def channel_stream():
    return io.BytesIO()


@pytest.fixture
def make_supervisor(fake_pm, channel_stream):
    def _make(pool_size: int = 3, privileged_index: int = 1) -> Supervisor:
        return Supervisor(
            pool_size=pool_size,
            process_manager=fake_pm,
            channel=AnnouncementChannel(channel_stream),
            privileged_index=privileged_index,
            spawn_delay=0,
            supervisor_pid=SUPERVISOR_PID,
        )
    return _make
