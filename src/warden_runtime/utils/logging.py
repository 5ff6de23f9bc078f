"""Logging configuration utilities.

Every process in the pool shares its output file with its siblings, so the
loggers configured here never keep the file open: each message opens the
path for append, writes one line and closes it again.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO, Union

import structlog
from structlog.contextvars import bind_contextvars


class AppendFileLogger:
    """structlog logger that performs a scoped append per message."""

    def __init__(self, path: Union[str, Path, None] = None, file: Optional[TextIO] = None):
        self.path = Path(path) if path is not None else None
        self._file = file if file is not None else sys.stdout

    def msg(self, message: str) -> None:
        if self.path is None:
            print(message, file=self._file, flush=True)
            return
        with open(self.path, "a", encoding="utf-8") as out:
            out.write(message + "\n")

    log = debug = info = warn = warning = msg
    err = error = critical = exception = fatal = failure = msg


class AppendFileLoggerFactory:
    """Produce :class:`AppendFileLogger` instances bound to one output path."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = path

    def __call__(self, *args: Any) -> AppendFileLogger:
        return AppendFileLogger(self.path)


# Lines the pool writes into its output files, keyed by event name.
PLAIN_LINES = {
    "Worker waiting": "P{worker} is waiting for a signal",
    "Worker received signal": "P{worker} received signal {signum}",
    "Worker terminating": "P{worker} received signal {signum}, terminating gracefully",
    "Worker started": "P{worker} is started and it has a pid of {pid}",
    "Worker killed": "P{worker} is killed",
    "Restarting worker": "Restarting P{worker}",
    "Worker restart suppressed": "P{worker} exited during a pool restart, not restarting",
    "Worker already gone": "P{worker} was already gone",
    "Pool restart triggered": "P{worker} is killed, all processes must be killed",
    "Restarting all workers": "Restarting all processes",
    "Supervisor terminating": "Watchdog is terminating gracefully",
}


def _plain_renderer(_, __, event_dict: dict) -> str:
    """Render the event as the line the pool's output files carry."""
    event = str(event_dict.get("event", ""))
    template = PLAIN_LINES.get(event)
    if template is None:
        return event
    try:
        return template.format(**event_dict)
    except KeyError:
        return event


def setup_logging(
    output_path: Union[str, Path, None] = None,
    log_level: str = "INFO",
    log_format: str = "plain",
) -> None:
    """Configure structured logging into a shared append-only output."""

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    elif log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(_plain_renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=AppendFileLoggerFactory(output_path),
        cache_logger_on_first_use=False,
    )


def truncate_output(output_path: Union[str, Path, None]) -> None:
    """Clear residue from a previous run out of an output file."""
    if output_path is None:
        return
    with open(output_path, "w", encoding="utf-8"):
        pass


def bind_worker_context(index: int) -> None:
    """Bind the worker index for all subsequent log lines of this process."""
    bind_contextvars(worker=index)
