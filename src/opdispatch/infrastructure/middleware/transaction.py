"""
Transactional bracketing for write operations.
"""

from __future__ import annotations

from typing import Any, AsyncContextManager, Iterable, Optional, Protocol, runtime_checkable

from opdispatch.core.abstractions import Operation, OperationCategory
from opdispatch.core.pipeline import Middleware, Next


@runtime_checkable
class TransactionManager(Protocol):
    def transaction(self) -> AsyncContextManager[Any]:
        """Commit when the block exits normally, roll back when it raises."""


class TransactionMiddleware(Middleware):
    """Run the rest of the chain inside ``manager.transaction()``."""

    name = "transaction"

    def __init__(
        self,
        manager: TransactionManager,
        categories: Iterable[OperationCategory] = (OperationCategory.WRITE, OperationCategory.ORCHESTRATION),
        name: Optional[str] = None,
    ):
        super().__init__(name)
        self.manager = manager
        self.categories = frozenset(categories)

    async def handle(self, operation: Operation, call_next: Next) -> Any:
        if operation.category not in self.categories:
            return await call_next(operation)
        async with self.manager.transaction():
            return await call_next(operation)
