"""
Light invocation style: the caller boots the operation at construction time
with dependencies it already holds, and only execution goes through the bus
machinery. Behaves exactly like ``bus.dispatch`` for the same dependencies.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Type

from opdispatch.core.abstractions import Operation
from opdispatch.core.bus import Bus
from opdispatch.core.di import Container
from opdispatch.core.pipeline import Middleware


class LightInvoker:
    def __init__(self, bus: Optional[Bus] = None, middleware: Iterable[Middleware] = ()):
        self.bus = bus or Bus.from_container(Container(), middleware)

    @staticmethod
    def make(
        operation_type: Type[Operation],
        dependencies: Optional[Mapping[str, Any]] = None,
        **params: Any,
    ) -> Operation:
        """Construct and boot in one step."""
        return operation_type(**params).boot_with(**dict(dependencies or {}))

    async def run(self, operation: Operation) -> Any:
        return await self.bus.run(operation)

    async def __call__(
        self,
        operation_type: Type[Operation],
        dependencies: Optional[Mapping[str, Any]] = None,
        **params: Any,
    ) -> Any:
        return await self.run(self.make(operation_type, dependencies, **params))
