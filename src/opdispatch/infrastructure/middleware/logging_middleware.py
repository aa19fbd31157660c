"""
Logging middleware: one line when an operation starts, one when it ends.
"""

from __future__ import annotations

from time import perf_counter
from typing import Any, Optional

from loguru import logger

from opdispatch.core.abstractions import Operation
from opdispatch.core.errors import error_kind
from opdispatch.core.pipeline import Middleware, Next


class LoggingMiddleware(Middleware):
    name = "logging"

    def __init__(self, level: str = "INFO", *, log_params: bool = False, name: Optional[str] = None):
        super().__init__(name)
        self.level = level
        self.log_params = log_params

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        log = logger.bind(operation=operation.operation_name())
        if self.log_params:
            log.log(self.level, f"started {operation.category.value} params={operation.params.model_dump()}")
        else:
            log.log(self.level, f"started {operation.category.value}")

        start = perf_counter()
        try:
            result = await call_next(operation)
        except Exception as exc:
            duration_ms = (perf_counter() - start) * 1000
            log.error(f"failed after {duration_ms:.1f}ms [{error_kind(exc).value}] {type(exc).__name__}: {exc}")
            raise
        duration_ms = (perf_counter() - start) * 1000
        log.log(self.level, f"completed in {duration_ms:.1f}ms")
        return result
