"""
Invocation-scoped memoization.
"""

from .scope import (
    Entry,
    MemoScope,
    SharedMemoScope,
    current_scope,
    ensure_invocation_context,
    invocation_context,
)

__all__ = [
    "Entry",
    "MemoScope",
    "SharedMemoScope",
    "current_scope",
    "ensure_invocation_context",
    "invocation_context",
]
