from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Type

from opdispatch.core.abstractions import Operation
from opdispatch.core.errors import LifecycleError


@dataclass
class OperationDescriptor:
    name: str
    operation: Type[Operation]
    version: str = "v1"
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def category(self) -> str:
        return self.operation.category.value


def _summary(doc: Optional[str]) -> str:
    lines = (doc or "").strip().splitlines()
    return lines[0] if lines else ""


class OperationRegistry:
    """
    Routes: public names mapped to operation classes.

    Filled during bootstrap (by the host application or an extension), then
    frozen like the container.
    """

    def __init__(self) -> None:
        self._routes: Dict[str, OperationDescriptor] = {}
        self._frozen = False

    def register(self, desc: OperationDescriptor) -> None:
        if self._frozen:
            raise LifecycleError(message=f"cannot add route {desc.name!r}: routes are frozen after bootstrap")
        self._routes[desc.name] = desc

    def route(self, name: str, operation: Type[Operation], **metadata: Any) -> OperationDescriptor:
        desc = OperationDescriptor(
            name=name,
            operation=operation,
            description=_summary(operation.__doc__),
            metadata=metadata,
        )
        self.register(desc)
        return desc

    def get(self, name: str) -> Optional[OperationDescriptor]:
        return self._routes.get(name)

    def create(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Operation:
        if name not in self._routes:
            raise KeyError(f"Operation route not registered: {name}")
        return self._routes[name].operation(**dict(params or {}))

    def freeze(self) -> None:
        self._frozen = True

    def all(self) -> Dict[str, OperationDescriptor]:
        return dict(self._routes)
