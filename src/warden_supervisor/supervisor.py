"""Main pool supervisor implementation."""

import os
import signal
import sys
import time
from typing import Callable, Dict, Optional

import structlog

from warden_runtime.core.exceptions import SignalDeliveryError, SpawnError, UnknownHandleError

from .channel import AnnouncementChannel
from .models import SUPERVISOR_INDEX, Decision, TerminationEvent, WorkerState
from .policy import RestartPolicy
from .process_manager import ProcessManager
from .registry import Registry

logger = structlog.get_logger()


class Supervisor:
    """Keeps a fixed pool of workers alive.

    Index 0 is the supervisor itself. Indices 1..N are spawned workers.
    Every new handle is recorded in the registry before it is announced,
    so a reader of the channel never sees a handle the registry cannot
    resolve.
    """

    def __init__(
        self,
        pool_size: int,
        process_manager: ProcessManager,
        channel: AnnouncementChannel,
        privileged_index: int = 1,
        spawn_delay: float = 0.3,
        supervisor_pid: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if pool_size < 1:
            raise ValueError(f"pool_size must be at least 1, got: {pool_size}")
        self.pool_size = pool_size
        self.process_manager = process_manager
        self.channel = channel
        self.spawn_delay = spawn_delay
        self.supervisor_pid = supervisor_pid if supervisor_pid is not None else os.getpid()
        self.registry = Registry(pool_size + 1)
        self.policy = RestartPolicy(privileged_index)
        self.states: Dict[int, WorkerState] = {}
        self._sleep = sleep

    @property
    def worker_indices(self) -> range:
        return range(1, self.pool_size + 1)

    def start(self) -> None:
        """Announce the supervisor and spawn the initial pool.

        Raises:
            SpawnError: if any worker of the initial pool cannot be created.
        """
        logger.info("Starting supervisor", pool_size=self.pool_size, pid=self.supervisor_pid)

        self.registry.record(SUPERVISOR_INDEX, self.supervisor_pid)
        self.channel.publish(SUPERVISOR_INDEX, self.supervisor_pid)

        for index in self.worker_indices:
            self._launch(index)
            if self.spawn_delay:
                self._sleep(self.spawn_delay)

    def run(self) -> None:
        """Reap workers and apply the restart policy until terminated."""
        while True:
            try:
                event = self.process_manager.wait_any()
            except ChildProcessError:
                logger.error("No workers left to supervise")
                return
            self.handle_event(event)

    def handle_event(self, event: TerminationEvent) -> Decision:
        """Apply the restart policy to one reaped worker."""
        try:
            decision, index = self.policy.decide(event, self.registry)
        except UnknownHandleError:
            logger.critical("Reaped a process the registry never recorded", pid=event.handle)
            raise

        logger.debug(
            "Worker exited",
            worker=index,
            pid=event.handle,
            outcome=event.outcome.value,
            status=event.describe(),
            decision=decision.value,
        )

        if decision is Decision.RESTART_ALL:
            self.restart_all(index)
        elif decision is Decision.RESTART_ONE:
            logger.info("Worker killed", worker=index, pid=event.handle)
            logger.info("Restarting worker", worker=index)
            self._relaunch(index)
        elif decision is Decision.SUPPRESS:
            self.states[index] = WorkerState.DORMANT
            logger.info(
                "Worker restart suppressed",
                worker=index,
                pid=event.handle,
            )
        else:
            logger.debug("Exit of a replaced instance ignored", worker=index, pid=event.handle)

        self.registry.forget_retired(event.handle)
        return decision

    def restart_all(self, index: int) -> None:
        """Kill every other worker and respawn the whole pool."""
        logger.info("Pool restart triggered", worker=index)

        for other, handle in list(self.registry):
            if other in (SUPERVISOR_INDEX, index):
                continue
            if self.states.get(other) is WorkerState.DORMANT:
                continue
            try:
                self.process_manager.terminate(handle)
            except SignalDeliveryError:
                logger.warning("Worker already gone", worker=other, pid=handle)

        logger.info("Restarting all workers")
        for i in self.worker_indices:
            self._relaunch(i)

    def _launch(self, index: int) -> int:
        self.states[index] = WorkerState.SPAWNING
        handle = self.process_manager.spawn(index)
        self.registry.record(index, handle)
        self.channel.publish(index, handle)
        self.states[index] = WorkerState.RUNNING
        logger.info("Worker started", worker=index, pid=handle)
        return handle

    def _relaunch(self, index: int) -> Optional[int]:
        try:
            return self._launch(index)
        except SpawnError as e:
            self.states[index] = WorkerState.DORMANT
            logger.error("Failed to restart worker", worker=index, error=str(e))
            return None


def _handle_termination(signum, frame) -> None:
    # Children are left running; they are reparented by the OS.
    logger.info("Supervisor terminating", signal=signum)
    sys.exit(0)


def install_signal_handlers() -> None:
    """Exit cleanly when the supervisor receives the termination signal."""
    signal.signal(signal.SIGTERM, _handle_termination)
