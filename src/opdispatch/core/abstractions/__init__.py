"""
Core abstractions: the operation contract and its lifecycle.
"""

from .operation import (
    Action,
    Command,
    Operation,
    OperationCategory,
    OperationParams,
    OperationState,
    Query,
)

__all__ = [
    "Action",
    "Command",
    "Operation",
    "OperationCategory",
    "OperationParams",
    "OperationState",
    "Query",
]
