"""
Middleware contract.

A middleware wraps one link of the chain: it receives the operation and the
next link, may act before and after calling it, may skip it entirely
(short-circuit) or translate the failure it raises. The same instance can be
shared by any number of operation types; it only reads from the operation and
its own configuration.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from opdispatch.core.abstractions import Operation

Next = Callable[[Operation], Awaitable[Any]]


class Middleware:
    """Base middleware: override ``handle``."""

    name: str = ""

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.name or type(self).__name__

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        return await call_next(operation)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class HookMiddleware(Middleware):
    """
    Middleware expressed as hooks.

    ``before`` runs on the way in, ``after`` receives the successful result
    and may replace it, ``on_failure`` sees the exception on the way out. If
    ``on_failure`` returns an exception it is raised instead of the original
    (chained with ``from``); returning None re-raises the original unchanged.
    """

    async def before(self, operation: Operation) -> None:
        return None

    async def after(self, operation: Operation, result: Any) -> Any:
        return result

    async def on_failure(self, operation: Operation, error: BaseException) -> Optional[BaseException]:
        return None

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        await self.before(operation)
        try:
            result = await call_next(operation)
        except Exception as exc:
            replacement = await self.on_failure(operation, exc)
            if replacement is not None and replacement is not exc:
                raise replacement from exc
            raise
        return await self.after(operation, result)
