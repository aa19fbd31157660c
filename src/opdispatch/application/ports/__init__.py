from .event_log_port import EventLogPort

__all__ = ["EventLogPort"]
