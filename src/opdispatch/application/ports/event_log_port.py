from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from opdispatch.application.events import DispatchEvent


@runtime_checkable
class EventLogPort(Protocol):
    """Sink for the started/completed/failed events EventLogMiddleware emits."""

    def append(self, event: DispatchEvent) -> None:
        ...

    def events_for(self, invocation_id: str) -> List[DispatchEvent]:
        """Events of one invocation context in append order. Write-only backends return []."""
        ...

    def close(self) -> None:
        ...
