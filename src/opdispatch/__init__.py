# opdispatch/__init__.py
"""
opdispatch - business operation dispatch runtime

- Commands, Queries and Actions with a boot-once / handle lifecycle
- Declarative dependency resolution from a frozen container
- Ordered middleware chains
- Invocation-scoped memoization of Read results
- Optional extension hook run once at bootstrap
"""

from __future__ import annotations

__version__ = "0.1.0"

from opdispatch.core import (
    Action,
    Bus,
    Command,
    Container,
    DispatchError,
    DispatchResult,
    ErrorKind,
    ExecutionError,
    HookMiddleware,
    LifecycleError,
    Middleware,
    Operation,
    OperationParams,
    OperationState,
    Query,
    ResolutionError,
)
from opdispatch.application.bootstrap import AppSurface, Application, bootstrap
from opdispatch.application.invokers import LightInvoker

__all__ = [
    "Action",
    "AppSurface",
    "Application",
    "Bus",
    "Command",
    "Container",
    "DispatchError",
    "DispatchResult",
    "ErrorKind",
    "ExecutionError",
    "HookMiddleware",
    "LifecycleError",
    "LightInvoker",
    "Middleware",
    "Operation",
    "OperationParams",
    "OperationState",
    "Query",
    "ResolutionError",
    "bootstrap",
    "__version__",
]
