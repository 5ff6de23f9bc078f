"""Pool supervisor - worker registry, restart policy and announcements."""

from .channel import AnnouncementChannel
from .process_manager import ProcessManager
from .registry import Registry
from .supervisor import Supervisor

__all__ = ["AnnouncementChannel", "ProcessManager", "Registry", "Supervisor"]
