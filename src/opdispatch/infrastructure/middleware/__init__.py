"""
Stock middleware.
"""

from .authorization import AuthorizationMiddleware, operation_policy
from .event_log_middleware import EventLogMiddleware
from .logging_middleware import LoggingMiddleware
from .retry import RetryConfig, RetryMiddleware
from .timeout import TimeoutMiddleware
from .transaction import TransactionManager, TransactionMiddleware

__all__ = [
    "AuthorizationMiddleware",
    "EventLogMiddleware",
    "LoggingMiddleware",
    "RetryConfig",
    "RetryMiddleware",
    "TimeoutMiddleware",
    "TransactionManager",
    "TransactionMiddleware",
    "operation_policy",
]
