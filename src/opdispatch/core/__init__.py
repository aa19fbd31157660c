# opdispatch/core/__init__.py

from .abstractions import (
    Action,
    Command,
    Operation,
    OperationCategory,
    OperationParams,
    OperationState,
    Query,
)
from .di import Container, DependencyResolver, Requirement, requirements_of
from .errors import (
    AuthorizationError,
    DispatchError,
    DispatchResult,
    ErrorKind,
    ExecutionError,
    LifecycleError,
    OperationTimeout,
    ResolutionError,
    Result,
)
from .memo import MemoScope, SharedMemoScope, current_scope, invocation_context
from .pipeline import HookMiddleware, Middleware, MiddlewareChain, compose
from .bus import Bus

__all__ = [
    # operations
    "Action",
    "Command",
    "Operation",
    "OperationCategory",
    "OperationParams",
    "OperationState",
    "Query",
    # dependencies
    "Container",
    "DependencyResolver",
    "Requirement",
    "requirements_of",
    # errors
    "AuthorizationError",
    "DispatchError",
    "DispatchResult",
    "ErrorKind",
    "ExecutionError",
    "LifecycleError",
    "OperationTimeout",
    "ResolutionError",
    "Result",
    # memoization
    "MemoScope",
    "SharedMemoScope",
    "current_scope",
    "invocation_context",
    # middleware
    "HookMiddleware",
    "Middleware",
    "MiddlewareChain",
    "compose",
    # bus
    "Bus",
]
