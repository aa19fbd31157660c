"""
Dispatch error taxonomy and the Result wrapper handed to hosting layers.

Every failure raised by the runtime itself carries a ``kind`` and the name of
the operation it originated from, so the invoking layer can map it to an
external response without parsing messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union, cast


class ErrorKind(Enum):
    RESOLUTION = "resolution"    # dependency could not be satisfied
    LIFECYCLE = "lifecycle"      # programmer error
    EXECUTION = "execution"      # business logic or middleware failure


@dataclass
class DispatchError(Exception):
    message: str
    kind: ErrorKind = ErrorKind.EXECUTION
    code: str = "DISPATCH_ERROR"
    operation: Optional[str] = None
    context: Dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass
class ResolutionError(DispatchError):
    kind: ErrorKind = ErrorKind.RESOLUTION
    code: str = "RESOLUTION_ERROR"
    requirement: Any = None


@dataclass
class LifecycleError(DispatchError):
    kind: ErrorKind = ErrorKind.LIFECYCLE
    code: str = "LIFECYCLE_ERROR"


@dataclass
class ExecutionError(DispatchError):
    """Base for failures raised by business logic or middleware."""

    kind: ErrorKind = ErrorKind.EXECUTION
    code: str = "EXECUTION_ERROR"


@dataclass
class AuthorizationError(ExecutionError):
    code: str = "UNAUTHORIZED"


@dataclass
class OperationTimeout(ExecutionError):
    code: str = "TIMEOUT"
    timeout: Optional[float] = None


def error_kind(exc: BaseException) -> ErrorKind:
    """Kind of an arbitrary exception; foreign exceptions count as execution failures."""
    if isinstance(exc, DispatchError):
        return exc.kind
    return ErrorKind.EXECUTION


T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass
class Result(Generic[T, E]):
    """Functional result wrapper, avoids scattering status dicts."""

    _value: Union[T, E]
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(_value=value, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(_value=error, _is_ok=False)

    def is_ok(self) -> bool:
        return self._is_ok

    @property
    def error(self) -> Optional[E]:
        return None if self._is_ok else cast(E, self._value)

    def unwrap(self) -> T:
        if not self._is_ok:
            raise cast(E, self._value)
        return cast(T, self._value)

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default

    def map(self, fn) -> "Result[T, E]":
        if self._is_ok:
            return Result.ok(fn(self._value))  # type: ignore[arg-type]
        return self


@dataclass
class DispatchResult(Result[T, BaseException]):
    """
    Outcome of one dispatch.

    ``operation`` is the originating operation's name; ``kind`` is only set
    for failures.
    """

    operation: str = ""
    kind: Optional[ErrorKind] = None

    @classmethod
    def completed(cls, operation: str, value: T) -> "DispatchResult[T]":
        return cls(_value=value, _is_ok=True, operation=operation)

    @classmethod
    def failed(cls, operation: str, error: BaseException) -> "DispatchResult[T]":
        return cls(_value=error, _is_ok=False, operation=operation, kind=error_kind(error))

    @property
    def value(self) -> Optional[T]:
        return cast(T, self._value) if self._is_ok else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "operation": self.operation,
            "status": "completed" if self._is_ok else "failed",
        }
        if self._is_ok:
            payload["result"] = self._value
        else:
            payload["kind"] = self.kind.value if self.kind else None
            payload["error"] = str(self._value)
        return payload
