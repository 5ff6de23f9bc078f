"""Process warden - supervision harness for a fixed pool of worker processes."""

__version__ = "0.1.0"
__author__ = "Warden Core Team"

from warden_runtime.core.config import Settings

__all__ = ["Settings", "__version__"]
