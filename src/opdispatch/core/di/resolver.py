"""
Declarative dependency resolution driven by the shape of ``Operation.boot``.

Each parameter of ``boot`` is a requirement. The key is the parameter's type
annotation, or the first metadata item of ``Annotated[T, key]`` when a
string/named key is wanted. Parameters with a default are optional.
"""

from __future__ import annotations

import inspect
import threading
import types
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Hashable, List, Tuple, Union, get_args, get_origin, get_type_hints

from loguru import logger

from opdispatch.core.abstractions import Operation
from opdispatch.core.di.container import Container, describe_key
from opdispatch.core.errors import ResolutionError

_MISSING = inspect.Parameter.empty


@dataclass(frozen=True)
class Requirement:
    name: str
    key: Hashable
    default: Any = _MISSING

    @property
    def optional(self) -> bool:
        return self.default is not _MISSING


def requirements_of(operation_type: type) -> Tuple[Requirement, ...]:
    """Read the requirements declared by ``operation_type.boot``."""
    boot = inspect.unwrap(operation_type.boot)
    try:
        hints = get_type_hints(boot, include_extras=True)
    except NameError as exc:
        raise ResolutionError(
            message=f"cannot evaluate boot annotations of {operation_type.__qualname__}: {exc}",
            operation=operation_type.operation_name(),
        ) from exc

    reqs: List[Requirement] = []
    params = list(inspect.signature(boot).parameters.values())[1:]  # drop self
    for param in params:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        hint = hints.get(param.name, _MISSING)
        if hint is _MISSING:
            raise ResolutionError(
                message=f"boot parameter {param.name!r} of {operation_type.__qualname__} "
                "has no annotation to resolve it by",
                operation=operation_type.operation_name(),
            )
        reqs.append(Requirement(name=param.name, key=_key_for(hint), default=param.default))
    return tuple(reqs)


def _key_for(hint: Any) -> Hashable:
    if get_origin(hint) is Annotated:
        base, *metadata = get_args(hint)
        return metadata[0] if metadata else _key_for(base)
    if get_origin(hint) in (Union, types.UnionType):
        # Optional[T] is keyed by T
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return _key_for(args[0])
    return hint


class DependencyResolver:
    """Satisfies an operation's requirements from a container, once per instance."""

    def __init__(self, container: Container):
        self.container = container
        self._plans: Dict[type, Tuple[Requirement, ...]] = {}
        self._plans_lock = threading.Lock()

    def plan(self, operation_type: type) -> Tuple[Requirement, ...]:
        plan = self._plans.get(operation_type)
        if plan is None:
            plan = requirements_of(operation_type)
            with self._plans_lock:
                self._plans[operation_type] = plan
        return plan

    def resolve_for(self, operation: Operation) -> Dict[str, Any]:
        resolved: Dict[str, Any] = {}
        for req in self.plan(type(operation)):
            if not self.container.has(req.key) and req.optional:
                continue
            try:
                resolved[req.name] = self.container.resolve(req.key)
            except ResolutionError as exc:
                exc.operation = operation.operation_name()
                exc.context = {"parameter": req.name, "requirement": describe_key(req.key)}
                logger.bind(operation=exc.operation).warning(
                    f"unresolvable requirement {describe_key(req.key)} for boot parameter {req.name!r}"
                )
                raise
        return resolved
