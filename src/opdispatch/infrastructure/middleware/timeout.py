from __future__ import annotations

import asyncio
from typing import Any, Optional

from opdispatch.core.abstractions import Operation
from opdispatch.core.errors import OperationTimeout
from opdispatch.core.pipeline import Middleware, Next


class TimeoutMiddleware(Middleware):
    """
    Bound the rest of the chain to ``seconds``.

    An operation class may override the limit with a ``timeout`` attribute.
    """

    name = "timeout"

    def __init__(self, seconds: float, name: Optional[str] = None):
        super().__init__(name)
        if seconds <= 0:
            raise ValueError("timeout must be positive")
        self.seconds = seconds

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        seconds = getattr(type(operation), "timeout", None) or self.seconds
        try:
            return await asyncio.wait_for(call_next(operation), timeout=seconds)
        except asyncio.TimeoutError as exc:
            raise OperationTimeout(
                message=f"{operation.operation_name()} did not finish within {seconds}s",
                operation=operation.operation_name(),
                timeout=seconds,
            ) from exc
