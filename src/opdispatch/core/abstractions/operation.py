"""
Operation contract: the unit of business work handed to the bus.

- OperationParams: frozen pydantic model holding the business parameters
- Operation: two-phase lifecycle (boot once with resolved dependencies, then handle)
- Command / Query / Action: the Write, Read and Orchestration categories

Subclasses declare their parameters as a nested ``Params`` model, their
runtime needs as the signature of ``boot`` and their business logic in
``handle``::

    class Withdraw(Command):
        class Params(OperationParams):
            amount: int

        def boot(self, ledger: Ledger) -> None:
            self.ledger = ledger

        def handle(self) -> int:
            return self.ledger.debit(self.amount)
"""

from __future__ import annotations

import functools
import hashlib
from enum import Enum
from typing import Any, ClassVar, Dict, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict

from opdispatch.core.errors import LifecycleError


class OperationCategory(str, Enum):
    WRITE = "write"
    READ = "read"
    ORCHESTRATION = "orchestration"


class OperationState(str, Enum):
    CREATED = "created"
    BOOTED = "booted"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: Dict[OperationState, Tuple[OperationState, ...]] = {
    OperationState.CREATED: (OperationState.BOOTED,),
    OperationState.BOOTED: (OperationState.EXECUTING,),
    OperationState.EXECUTING: (OperationState.COMPLETED, OperationState.FAILED),
    OperationState.COMPLETED: (),
    OperationState.FAILED: (),
}


class OperationParams(BaseModel):
    """Immutable business parameters. Subclass to declare typed fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def fingerprint(self) -> str:
        payload = self.model_dump_json(round_trip=True).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()


class _AnyParams(OperationParams):
    model_config = ConfigDict(frozen=True, extra="allow")


def _guard_boot(boot):
    """Wrap a subclass ``boot`` so it runs at most once and moves the state to BOOTED."""

    @functools.wraps(boot)
    def guarded(self: "Operation", *args: Any, **kwargs: Any) -> None:
        if self._op_booting:
            # super().boot(...) from an overriding subclass
            return boot(self, *args, **kwargs)
        self._require(OperationState.CREATED, "boot")
        object.__setattr__(self, "_op_booting", True)
        try:
            boot(self, *args, **kwargs)
        finally:
            object.__setattr__(self, "_op_booting", False)
        self._transition(OperationState.BOOTED)

    guarded.__op_guarded__ = True  # type: ignore[attr-defined]
    return guarded


class Operation:
    """
    Base operation.

    Attributes may only be assigned while the operation is CREATED, so the
    slots written by ``boot`` are populated exactly once and never touched
    again during execution.
    """

    category: ClassVar[OperationCategory] = OperationCategory.WRITE
    memoize: ClassVar[bool] = False
    middleware: ClassVar[Sequence[Any]] = ()
    Params: ClassVar[type] = _AnyParams

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.memoize and cls.category is not OperationCategory.READ:
            raise TypeError(
                f"{cls.__qualname__}: only Read operations may be memoized "
                f"(category is {cls.category.value})"
            )
        if cls.memoize and cls.Params is _AnyParams:
            raise TypeError(f"{cls.__qualname__}: memoized queries must declare a Params model")
        boot = cls.__dict__.get("boot")
        if boot is not None and not getattr(boot, "__op_guarded__", False):
            cls.boot = _guard_boot(boot)  # type: ignore[method-assign]

    def __init__(self, **params: Any) -> None:
        object.__setattr__(self, "_op_state", OperationState.CREATED)
        object.__setattr__(self, "_op_booting", False)
        object.__setattr__(self, "_op_discarded", False)
        object.__setattr__(self, "params", self.Params(**params))

    # ------------------ identity ------------------
    @classmethod
    def operation_name(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    def cache_key(self) -> Tuple[str, str]:
        """Memoization key: operation identity plus parameter fingerprint."""
        return (self.operation_name(), self.params.fingerprint())

    # ------------------ lifecycle ------------------
    @property
    def state(self) -> OperationState:
        return self._op_state

    @property
    def discarded(self) -> bool:
        return self._op_discarded

    def boot(self) -> None:
        """Receive resolved dependencies. Subclasses declare them as parameters."""

    def boot_with(self, **dependencies: Any) -> "Operation":
        """Boot by hand (the light invocation style). Returns ``self`` for chaining."""
        self.boot(**dependencies)
        return self

    def handle(self) -> Any:
        """Execution step. Reads only ``params`` and booted slots."""
        raise NotImplementedError(f"{type(self).__qualname__} must implement handle()")

    def discard(self) -> None:
        object.__setattr__(self, "_op_discarded", True)

    def _require(self, expected: OperationState, action: str) -> None:
        if self._op_discarded:
            raise LifecycleError(
                message=f"cannot {action} {self.operation_name()}: instance was discarded "
                "after a failed boot, construct a new one",
                operation=self.operation_name(),
            )
        if self._op_state is not expected:
            raise LifecycleError(
                message=f"cannot {action} {self.operation_name()} in state "
                f"{self._op_state.value} (expected {expected.value})",
                operation=self.operation_name(),
            )

    def _transition(self, target: OperationState) -> None:
        if target not in _TRANSITIONS[self._op_state]:
            raise LifecycleError(
                message=f"illegal transition {self._op_state.value} -> {target.value} "
                f"for {self.operation_name()}",
                operation=self.operation_name(),
            )
        logger.bind(operation=self.operation_name()).debug(
            f"{self._op_state.value} -> {target.value}"
        )
        object.__setattr__(self, "_op_state", target)

    # ------------------ attribute guard ------------------
    def __setattr__(self, name: str, value: Any) -> None:
        if name == "params":
            raise LifecycleError(
                message=f"params of {self.operation_name()} are immutable",
                operation=self.operation_name(),
            )
        if self._op_state is not OperationState.CREATED:
            raise LifecycleError(
                message=f"cannot set {name!r} on {self.operation_name()} after boot",
                operation=self.operation_name(),
            )
        object.__setattr__(self, name, value)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails: expose params as attributes.
        if name.startswith("_"):
            raise AttributeError(name)
        params = self.__dict__.get("params")
        if params is not None:
            if name in type(params).model_fields:
                return getattr(params, name)
            extra = params.model_extra or {}
            if name in extra:
                return extra[name]
        raise AttributeError(f"{type(self).__qualname__!s} has no attribute {name!r}")

    def __repr__(self) -> str:
        return f"{type(self).__qualname__}({self.params!r}, state={self._op_state.value})"


Operation.boot = _guard_boot(Operation.boot)  # type: ignore[method-assign]


class Command(Operation):
    """Write operation: changes state, never memoized."""

    category = OperationCategory.WRITE


class Query(Operation):
    """
    Read operation.

    Set ``memoize = True`` to cache results in the current invocation
    context; the query must then declare a ``Params`` model, which keys the
    cache. Only do so when the data the query reads cannot change while
    that context is alive; the runtime cannot detect a violation, it will
    simply serve the stale first result.
    """

    category = OperationCategory.READ


class Action(Operation):
    """Orchestration operation: composes other operations through the bus."""

    category = OperationCategory.ORCHESTRATION
