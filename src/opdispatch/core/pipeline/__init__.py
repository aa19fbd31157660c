"""
Middleware chain module.
"""

from .middleware import HookMiddleware, Middleware, Next
from .chain import MiddlewareChain, as_async, compose

__all__ = ["HookMiddleware", "Middleware", "MiddlewareChain", "Next", "as_async", "compose"]
