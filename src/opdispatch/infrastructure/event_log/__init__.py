from .logging_event_log import LoggingEventLog
from .memory_event_log import InMemoryEventLog

__all__ = ["InMemoryEventLog", "LoggingEventLog"]
