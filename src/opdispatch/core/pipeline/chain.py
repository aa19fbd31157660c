"""
Middleware chain composition.

``compose([A, B], terminal)`` returns a callable equivalent to
``A(B(terminal))``: A is the outermost wrapper and observes the earliest
"before" and the latest "after".
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Iterable, List

from opdispatch.core.abstractions import Operation
from opdispatch.core.pipeline.middleware import Middleware, Next


def as_async(fn: Callable[[Operation], Any]) -> Next:
    """Adapt a sync or async one-argument callable to the chain's async signature."""

    async def call(operation: Operation) -> Any:
        result = fn(operation)
        if inspect.isawaitable(result):
            result = await result
        return result

    return call


def _link(middleware: Middleware, call_next: Next) -> Next:
    async def call(operation: Operation) -> Any:
        return await middleware.handle(operation, call_next)

    return call


def compose(middleware: Iterable[Middleware], terminal: Callable[[Operation], Any]) -> Next:
    chain: Next = as_async(terminal)
    for mw in reversed(list(middleware)):
        chain = _link(mw, chain)
    return chain


class MiddlewareChain:
    """An ordered, reusable middleware sequence."""

    def __init__(self, middleware: Iterable[Middleware] = ()):
        self._middleware: List[Middleware] = list(middleware)

    def add(self, middleware: Middleware) -> "MiddlewareChain":
        self._middleware.append(middleware)
        return self

    def extend(self, middleware: Iterable[Middleware]) -> "MiddlewareChain":
        self._middleware.extend(middleware)
        return self

    def wrap(self, terminal: Callable[[Operation], Any]) -> Next:
        return compose(self._middleware, terminal)

    def __iter__(self):
        return iter(list(self._middleware))

    def __len__(self) -> int:
        return len(self._middleware)
