"""Process management for pool workers."""

import os
import signal
import subprocess
import sys
from typing import Dict, List, Optional

import structlog

from warden_runtime.core.exceptions import SignalDeliveryError, SpawnError

from .models import TerminationEvent

logger = structlog.get_logger()


class ProcessManager:
    """Spawns worker processes, reaps them and delivers signals to them.

    Handles are plain pids. Exits are collected with a blocking
    ``os.waitpid(-1, 0)``, which is the supervisor's only suspension point.
    """

    def __init__(
        self,
        worker_output: Optional[str] = None,
        supervisor_pid: Optional[int] = None,
        log_level: str = "INFO",
        log_format: str = "plain",
        command: Optional[List[str]] = None,
    ):
        self.worker_output = worker_output
        self.supervisor_pid = supervisor_pid if supervisor_pid is not None else os.getpid()
        self.log_level = log_level
        self.log_format = log_format
        self.command = command or [sys.executable, "-m", "warden_worker"]
        self._process_handles: Dict[int, subprocess.Popen] = {}

    def build_command(self, index: int) -> List[str]:
        """Command line that starts worker ``index``."""
        cmd = [
            *self.command,
            "--index", str(index),
            "--supervisor-pid", str(self.supervisor_pid),
            "--log-level", self.log_level,
            "--log-format", self.log_format,
        ]
        if self.worker_output:
            cmd.extend(["--output", self.worker_output])
        return cmd

    def spawn(self, index: int) -> int:
        """Start worker ``index`` and return its handle."""
        cmd = self.build_command(index)
        try:
            proc = subprocess.Popen(cmd, stdin=subprocess.DEVNULL)
        except OSError as e:
            raise SpawnError(index, str(e)) from e

        self._process_handles[proc.pid] = proc
        logger.debug("Worker process created", worker=index, pid=proc.pid, command=" ".join(cmd))
        return proc.pid

    def wait_any(self) -> TerminationEvent:
        """Block until any child terminates.

        Raises:
            ChildProcessError: if there is no child left to wait for.
        """
        pid, status = os.waitpid(-1, 0)
        proc = self._process_handles.pop(pid, None)
        if proc is not None:
            # Keep Popen from trying to reap a pid we already collected.
            proc.returncode = os.waitstatus_to_exitcode(status)
        return TerminationEvent.from_wait_status(pid, status)

    def terminate(self, handle: int) -> None:
        """Send the termination signal to ``handle``.

        Raises:
            SignalDeliveryError: if the process no longer exists.
        """
        try:
            os.kill(handle, signal.SIGTERM)
        except ProcessLookupError as e:
            raise SignalDeliveryError(handle, signal.SIGTERM) from e

    @property
    def live_handles(self) -> List[int]:
        return list(self._process_handles)
