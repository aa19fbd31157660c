from __future__ import annotations

from time import perf_counter
from typing import Any, Optional

from opdispatch.application.events import DispatchEvent
from opdispatch.application.ports.event_log_port import EventLogPort
from opdispatch.core.abstractions import Operation
from opdispatch.core.errors import error_kind
from opdispatch.core.memo import current_scope
from opdispatch.core.pipeline import Middleware, Next


class EventLogMiddleware(Middleware):
    """Append started/completed/failed events for every operation to an event log."""

    name = "event_log"

    def __init__(self, event_log: EventLogPort, name: Optional[str] = None):
        super().__init__(name)
        self.event_log = event_log

    def _event(self, operation: Operation, type_: str, **kwargs: Any) -> DispatchEvent:
        scope = current_scope()
        return DispatchEvent(
            operation=operation.operation_name(),
            type=type_,
            category=operation.category.value,
            invocation_id=scope.invocation_id if scope is not None else "",
            **kwargs,
        )

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        self.event_log.append(self._event(operation, "started"))
        start = perf_counter()
        try:
            result = await call_next(operation)
        except Exception as exc:
            self.event_log.append(
                self._event(
                    operation,
                    "failed",
                    duration_ms=(perf_counter() - start) * 1000,
                    error=str(exc),
                    error_kind=error_kind(exc).value,
                )
            )
            raise
        self.event_log.append(
            self._event(operation, "completed", duration_ms=(perf_counter() - start) * 1000)
        )
        return result
