from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Optional

from opdispatch.application.events import DispatchEvent


class InMemoryEventLog:
    """
    Keeps events grouped by invocation context.

    With ``max_invocations`` set, the oldest invocation's events are dropped
    once that many contexts have been recorded.
    """

    def __init__(self, max_invocations: Optional[int] = None) -> None:
        if max_invocations is not None and max_invocations < 1:
            raise ValueError("max_invocations must be >= 1")
        self.max_invocations = max_invocations
        self._by_invocation: "OrderedDict[str, List[DispatchEvent]]" = OrderedDict()

    def append(self, event: DispatchEvent) -> None:
        events = self._by_invocation.get(event.invocation_id)
        if events is None:
            events = self._by_invocation[event.invocation_id] = []
            if self.max_invocations is not None and len(self._by_invocation) > self.max_invocations:
                self._by_invocation.popitem(last=False)
        events.append(event)

    def events_for(self, invocation_id: str) -> List[DispatchEvent]:
        return list(self._by_invocation.get(invocation_id, ()))

    def invocations(self) -> List[str]:
        return list(self._by_invocation)

    def counts(self, invocation_id: str) -> Dict[str, int]:
        """Number of events per type (started/completed/failed) in one invocation."""
        counts: Dict[str, int] = {}
        for event in self._by_invocation.get(invocation_id, ()):
            counts[event.type] = counts.get(event.type, 0) + 1
        return counts

    def __len__(self) -> int:
        return sum(len(events) for events in self._by_invocation.values())

    def close(self) -> None:
        self._by_invocation.clear()
