"""Custom exceptions for the process warden."""

from typing import Optional


class WardenError(Exception):
    """Base exception for all warden errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(WardenError):
    """Configuration error."""
    pass


class UnknownHandleError(WardenError, LookupError):
    """A worker handle was never recorded in the registry.

    The supervisor cannot recover from this: the identity mapping is
    corrupted and guessing an index would restart the wrong worker.
    """

    def __init__(self, handle: int):
        super().__init__(f"Handle {handle} was never recorded", code="unknown_handle")
        self.handle = handle


class SpawnError(WardenError):
    """The OS failed to create a worker process."""

    def __init__(self, index: int, message: str):
        super().__init__(f"Failed to spawn P{index}: {message}", code="spawn_failed")
        self.index = index


class SignalDeliveryError(WardenError):
    """A signal could not be delivered because the target is already gone."""

    def __init__(self, handle: int, signum: int):
        super().__init__(f"Cannot deliver signal {signum} to {handle}", code="no_such_process")
        self.handle = handle
        self.signum = signum


class ChannelError(WardenError):
    """Announcement channel failure."""
    pass
