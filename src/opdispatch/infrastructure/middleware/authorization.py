from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from opdispatch.core.abstractions import Operation
from opdispatch.core.errors import AuthorizationError
from opdispatch.core.pipeline import HookMiddleware

Policy = Callable[[Operation], Union[bool, Awaitable[bool]]]


def operation_policy(operation: Operation) -> Union[bool, Awaitable[bool]]:
    """Default policy: ask the operation's own ``authorize()``; allow when it has none."""
    authorize = getattr(operation, "authorize", None)
    if authorize is None:
        return True
    return authorize()


class AuthorizationMiddleware(HookMiddleware):
    """Refuse to run operations the policy rejects."""

    name = "authorization"

    def __init__(self, policy: Policy = operation_policy, name: Optional[str] = None):
        super().__init__(name)
        self.policy = policy

    async def before(self, operation: Operation) -> None:
        allowed: Any = self.policy(operation)
        if inspect.isawaitable(allowed):
            allowed = await allowed
        if not allowed:
            raise AuthorizationError(
                message=f"not authorized to run {operation.operation_name()}",
                operation=operation.operation_name(),
            )
