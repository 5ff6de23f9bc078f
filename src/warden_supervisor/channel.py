"""Announcement channel: tells an outside observer which pid each worker has."""

import os
import stat
from pathlib import Path
from typing import BinaryIO, Optional, Union

import structlog

from warden_runtime.core.exceptions import ChannelError

logger = structlog.get_logger()


class LineFramer:
    """Newline-delimited ``P<index> <handle>`` records."""

    def encode(self, index: int, handle: int) -> bytes:
        return f"P{index} {handle}\n".encode("ascii")


class FixedWidthFramer:
    """Records NUL-padded to a constant width, for fixed-size readers."""

    def __init__(self, width: int = 30):
        self.width = width

    def encode(self, index: int, handle: int) -> bytes:
        record = LineFramer().encode(index, handle)
        if len(record) > self.width:
            raise ChannelError(f"Record for P{index} does not fit in {self.width} bytes")
        return record.ljust(self.width, b"\0")


Framer = Union[LineFramer, FixedWidthFramer]


def make_framer(framing: str, width: int = 30) -> Framer:
    """Get the framer for a configured framing name."""
    if framing == "line":
        return LineFramer()
    if framing == "fixed":
        return FixedWidthFramer(width)
    raise ChannelError(f"Unknown channel framing: {framing}")


class AnnouncementChannel:
    """One-way FIFO of (index, handle) announcements.

    Records are written in publish order and flushed one by one so a
    reader never sees a partial record followed by a later one.
    """

    def __init__(self, stream: BinaryIO, framer: Optional[Framer] = None):
        self._stream = stream
        self._framer = framer or LineFramer()
        self.published = 0

    @classmethod
    def open(cls, path: Union[str, Path], framer: Optional[Framer] = None, create: bool = True) -> "AnnouncementChannel":
        """Open ``path`` for writing, creating a named pipe there if needed.

        Opening a pipe blocks until a reader attaches.
        """
        path = Path(path)
        try:
            if create and not path.exists():
                os.mkfifo(path, 0o644)
            if path.exists() and stat.S_ISFIFO(path.stat().st_mode):
                stream = open(path, "wb", buffering=0)
            else:
                stream = open(path, "ab", buffering=0)
        except OSError as e:
            raise ChannelError(f"Cannot open announcement channel {path}: {e}") from e

        logger.debug("Announcement channel open", path=str(path))
        return cls(stream, framer)

    def publish(self, index: int, handle: int) -> None:
        """Announce that worker ``index`` now runs as ``handle``."""
        record = self._framer.encode(index, handle)
        try:
            self._stream.write(record)
            self._stream.flush()
        except OSError as e:
            raise ChannelError(f"Failed to announce P{index}: {e}") from e
        self.published += 1

    def close(self) -> None:
        try:
            self._stream.close()
        except OSError as e:
            logger.warning("Error closing announcement channel", error=str(e))

    def __enter__(self) -> "AnnouncementChannel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
