"""
Dispatch error module.
"""

from .errors import (
    ErrorKind,
    DispatchError,
    ResolutionError,
    LifecycleError,
    ExecutionError,
    AuthorizationError,
    OperationTimeout,
    error_kind,
    Result,
    DispatchResult,
)

__all__ = [
    "ErrorKind",
    "DispatchError",
    "ResolutionError",
    "LifecycleError",
    "ExecutionError",
    "AuthorizationError",
    "OperationTimeout",
    "error_kind",
    "Result",
    "DispatchResult",
]
