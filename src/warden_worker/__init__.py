"""Pool worker program."""

from .worker import Worker, classify_signal

__all__ = ["Worker", "classify_signal"]
