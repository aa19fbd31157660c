"""
Retry middleware with exponential backoff.

Only put it in front of operations that are safe to run again: it re-invokes
the rest of the chain, execution step included.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Tuple, Type

from loguru import logger

from opdispatch.core.abstractions import Operation
from opdispatch.core.pipeline import Middleware, Next


class RetryConfig:
    """Retry configuration"""

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_delay: float = 60.0,
        retry_on_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
    ):
        """
        Args:
            max_retries: retries after the first attempt
            initial_delay: seconds before the first retry
            backoff_factor: delay multiplier per retry
            max_delay: upper bound on a single delay
            retry_on_exceptions: exception types worth retrying
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.retry_on_exceptions = retry_on_exceptions or (ConnectionError, TimeoutError)

    def delay_for(self, attempt: int) -> float:
        return min(self.initial_delay * (self.backoff_factor ** attempt), self.max_delay)


class RetryMiddleware(Middleware):
    name = "retry"

    def __init__(self, config: Optional[RetryConfig] = None, name: Optional[str] = None):
        super().__init__(name)
        self.config = config or RetryConfig()

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        config = self.config
        log = logger.bind(operation=operation.operation_name())
        for attempt in range(config.max_retries + 1):
            try:
                result = await call_next(operation)
                if attempt > 0:
                    log.info(f"succeeded on attempt {attempt + 1}")
                return result
            except config.retry_on_exceptions as exc:
                if attempt == config.max_retries:
                    log.error(f"still failing after {config.max_retries + 1} attempts: {exc}")
                    raise
                delay = config.delay_for(attempt)
                log.warning(f"attempt {attempt + 1} failed: {exc}; retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
