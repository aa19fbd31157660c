"""
Operation bus: resolves, wraps and executes operations.

The bus holds only shared, read-only collaborators (resolver, bus-level
middleware), so one instance serves any number of concurrent dispatches.
"""

from __future__ import annotations

import asyncio
import inspect
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Tuple

from loguru import logger

from opdispatch.core.abstractions import Operation, OperationCategory, OperationState
from opdispatch.core.di import Container, DependencyResolver
from opdispatch.core.errors import DispatchResult, LifecycleError
from opdispatch.core.memo import (
    Entry,
    MemoScope,
    SharedMemoScope,
    current_scope,
    ensure_invocation_context,
    invocation_context,
)
from opdispatch.core.pipeline import Middleware, compose


async def execute_step(operation: Operation) -> Any:
    """Innermost link: the operation's own ``handle``."""
    result = operation.handle()
    if inspect.isawaitable(result):
        result = await result
    return result


class Bus:
    def __init__(
        self,
        resolver: DependencyResolver,
        middleware: Iterable[Middleware] = (),
        *,
        copy_memoized: bool = True,
    ):
        self.resolver = resolver
        self.middleware: Tuple[Middleware, ...] = tuple(middleware)
        self.copy_memoized = copy_memoized

    @classmethod
    def from_container(cls, container: Container, middleware: Iterable[Middleware] = (), **kwargs: Any) -> "Bus":
        return cls(DependencyResolver(container), middleware, **kwargs)

    # ------------------ dispatch ------------------
    async def dispatch(self, operation: Operation) -> Any:
        """
        Boot ``operation`` with resolved dependencies and run it.

        Failures propagate unchanged. Opens an invocation context when none
        is active, so everything this operation orchestrates shares one memo
        scope.
        """
        self.boot(operation)
        return await self.run(operation)

    async def dispatch_result(self, operation: Operation) -> DispatchResult[Any]:
        """Like ``dispatch`` but returns a DispatchResult. Lifecycle errors still raise."""
        name = operation.operation_name()
        try:
            value = await self.dispatch(operation)
        except LifecycleError:
            raise
        except Exception as exc:  # noqa: BLE001
            return DispatchResult.failed(name, exc)
        return DispatchResult.completed(name, value)

    def boot(self, operation: Operation) -> Operation:
        """CREATED -> BOOTED. A resolution failure discards the instance."""
        operation._require(OperationState.CREATED, "dispatch")
        try:
            dependencies = self.resolver.resolve_for(operation)
            operation.boot(**dependencies)
        except Exception:
            operation.discard()
            raise
        return operation

    async def run(self, operation: Operation) -> Any:
        """
        Execute an operation that has already been booted (by the bus or by hand).

        A memoized Read's result is committed to the scope only after the whole
        middleware chain has succeeded, so an op that ends FAILED never leaves
        its value behind for later hits.
        """
        operation._require(OperationState.BOOTED, "execute")
        log = logger.bind(operation=operation.operation_name())

        with ensure_invocation_context(self.copy_memoized) as scope:
            if not self._memoizable(operation):
                return await self._execute(operation, execute_step, log)

            key = operation.cache_key()
            async with scope.claim(key):
                pending: List[Entry] = []
                result = await self._execute(operation, self._memoized_step(scope, key, pending), log)
                if pending:
                    scope.commit(key, pending[-1])
                return result

    async def _execute(self, operation: Operation, terminal, log) -> Any:
        chain = compose(self.middleware_for(operation), terminal)
        operation._transition(OperationState.EXECUTING)
        try:
            result = await chain(operation)
        except BaseException as exc:
            operation._transition(OperationState.FAILED)
            log.debug(f"failed: {type(exc).__name__}")
            raise
        operation._transition(OperationState.COMPLETED)
        return result

    def middleware_for(self, operation: Operation) -> List[Middleware]:
        """Bus-level middleware first (outermost), then the operation's own."""
        return [*self.middleware, *operation.middleware]

    @staticmethod
    def _memoizable(operation: Operation) -> bool:
        return operation.category is OperationCategory.READ and bool(operation.memoize)

    @staticmethod
    def _memoized_step(scope: MemoScope, key: Any, pending: List[Entry]):
        async def memoized(op: Operation) -> Any:
            hit, value = scope.lookup(key)
            if hit:
                return value
            value = await execute_step(op)
            pending.append(scope.snapshot(value))
            return value

        return memoized

    # ------------------ invocation contexts ------------------
    @contextmanager
    def invocation(self, shared: bool = False) -> Iterator[MemoScope]:
        """Open an invocation context explicitly, e.g. once per external request."""
        scope_cls = SharedMemoScope if shared else MemoScope
        with invocation_context(scope_cls(copy_results=self.copy_memoized)) as scope:
            yield scope

    async def gather(self, *operations: Operation, shared: bool = False) -> List[Any]:
        """
        Dispatch ``operations`` concurrently.

        Each branch gets its own fresh scope. With ``shared=True`` the branches
        use the current scope instead, which must be a SharedMemoScope. When a
        branch fails the remaining ones are cancelled and awaited before the
        failure propagates.
        """
        if shared:
            scope = current_scope()
            if not isinstance(scope, SharedMemoScope) or not scope.active:
                raise LifecycleError(
                    message="shared fan-out requires an active SharedMemoScope "
                    "(open one with bus.invocation(shared=True))",
                )
            branches = [self.dispatch(op) for op in operations]
        else:
            branches = [self._isolated(op) for op in operations]

        tasks = [asyncio.ensure_future(branch) for branch in branches]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _isolated(self, operation: Operation) -> Any:
        with invocation_context(MemoScope(copy_results=self.copy_memoized)):
            return await self.dispatch(operation)
