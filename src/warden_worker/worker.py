"""Pool worker process - idles until signalled, then logs or exits."""

import signal
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import click
import structlog

from warden_runtime.core.config import LOG_FORMATS, LOG_LEVELS
from warden_runtime.utils.logging import bind_worker_context, setup_logging

logger = structlog.get_logger()

TERMINATION_SIGNAL = signal.SIGTERM

MONITORED_SIGNALS = (
    signal.SIGHUP,
    signal.SIGINT,
    signal.SIGILL,
    signal.SIGTRAP,
    signal.SIGFPE,
    signal.SIGSEGV,
    signal.SIGTERM,
    signal.SIGXCPU,
)

# Exit codes the supervisor reads back out of os.waitpid.
EXIT_STOPPED = 0
EXIT_SUPERSEDED = 1


class Action(Enum):
    LOG_ONLY = "log_only"
    EXIT = "exit"


@dataclass(frozen=True)
class SignalReaction:
    action: Action
    exit_code: Optional[int] = None


def classify_signal(signum: int, sender_pid: int, supervisor_pid: int) -> SignalReaction:
    """Decide how a worker reacts to a signal.

    Only the termination signal ends the worker. Its exit code tells the
    supervisor who asked: 1 when the supervisor itself sent it (part of a
    pool restart), 0 for anybody else (stop this worker on its own).
    """
    if signum != TERMINATION_SIGNAL:
        return SignalReaction(Action.LOG_ONLY)
    if sender_pid == supervisor_pid:
        return SignalReaction(Action.EXIT, EXIT_SUPERSEDED)
    return SignalReaction(Action.EXIT, EXIT_STOPPED)


class Worker:
    """A worker that does nothing but wait for signals."""

    def __init__(self, index: int, supervisor_pid: int, signals: Iterable[int] = MONITORED_SIGNALS):
        self.index = index
        self.supervisor_pid = supervisor_pid
        self.signals = set(signals)

    def react(self, signum: int, sender_pid: int) -> Optional[int]:
        """Log the signal; return an exit code if the worker must stop."""
        reaction = classify_signal(signum, sender_pid, self.supervisor_pid)

        if reaction.action is Action.LOG_ONLY:
            logger.info(
                "Worker received signal",
                worker=self.index,
                signum=int(signum),
                signal=signal.Signals(signum).name,
                sender=sender_pid,
            )
            return None

        logger.info(
            "Worker terminating",
            worker=self.index,
            signum=int(signum),
            signal=signal.Signals(signum).name,
            sender=sender_pid,
            exit_code=reaction.exit_code,
        )
        return reaction.exit_code

    def run(self) -> int:
        """Wait for signals until one of them ends the worker.

        The monitored signals are blocked and collected synchronously with
        ``sigwaitinfo`` because a Python-level handler cannot see the pid
        of the sender.
        """
        signal.pthread_sigmask(signal.SIG_BLOCK, self.signals)
        logger.info("Worker waiting", worker=self.index)

        while True:
            info = signal.sigwaitinfo(self.signals)
            exit_code = self.react(info.si_signo, info.si_pid)
            if exit_code is not None:
                return exit_code


@click.command()
@click.option("--index", type=int, required=True, help="Worker index in the pool")
@click.option("--supervisor-pid", type=int, required=True, help="PID of the supervising process")
@click.option("--output", default=None, help="Shared output file to append to")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default="INFO", help="Log level")
@click.option("--log-format", type=click.Choice(LOG_FORMATS), default="plain", help="Log format")
def main(index: int, supervisor_pid: int, output: Optional[str], log_level: str, log_format: str):
    """Run a pool worker process."""
    setup_logging(output, log_level, log_format)
    bind_worker_context(index)

    worker = Worker(index, supervisor_pid)
    sys.exit(worker.run())


if __name__ == "__main__":
    main()
