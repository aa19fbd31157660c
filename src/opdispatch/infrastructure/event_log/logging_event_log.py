from __future__ import annotations

from typing import List

from loguru import logger

from opdispatch.application.events import DispatchEvent


class LoggingEventLog:
    """
    Writes each event as one JSON line through loguru.

    Failed events go out at ``failure_level`` so they survive a quieter
    ``level``. Nothing is retained, so ``events_for`` is always empty.
    """

    def __init__(self, level: str = "INFO", failure_level: str = "WARNING"):
        self.level = level
        self.failure_level = failure_level

    def append(self, event: DispatchEvent) -> None:
        level = self.failure_level if event.type == "failed" else self.level
        logger.bind(operation=event.operation, invocation_id=event.invocation_id).log(level, event.to_json())

    def events_for(self, invocation_id: str) -> List[DispatchEvent]:
        return []

    def close(self) -> None:
        return None
