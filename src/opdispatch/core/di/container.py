"""
Dependency registry: maps requirement keys to factories or instances.

Populated during bootstrap, frozen before the first dispatch. After that it
is read-only, so concurrent dispatches can resolve from it without locking.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Hashable, Tuple, TypeVar

from loguru import logger

from opdispatch.core.errors import LifecycleError, ResolutionError

T = TypeVar("T")


def describe_key(key: Any) -> str:
    return getattr(key, "__qualname__", None) or repr(key)


class Container:
    def __init__(self) -> None:
        self._factories: Dict[Hashable, Tuple[Callable[[], Any], bool]] = {}
        self._singletons: Dict[Hashable, Any] = {}
        self._singleton_lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, key: Hashable, factory: Callable[[], Any], singleton: bool = False) -> None:
        """Register a factory for ``key``. ``singleton`` caches the first instance."""
        self._ensure_writable(key)
        self._factories[key] = (factory, singleton)
        self._singletons.pop(key, None)
        logger.debug(f"registered {describe_key(key)} (singleton={singleton})")

    def instance(self, key: Hashable, obj: Any) -> None:
        """Bind an already-built object to ``key``."""
        self._ensure_writable(key)
        self._factories.pop(key, None)
        self._singletons[key] = obj
        logger.debug(f"bound instance for {describe_key(key)}")

    def has(self, key: Hashable) -> bool:
        return key in self._singletons or key in self._factories

    def resolve(self, key: Hashable) -> Any:
        """Return the instance for ``key`` or raise ResolutionError."""
        if key in self._singletons:
            return self._singletons[key]

        factory_tuple = self._factories.get(key)
        if not factory_tuple:
            raise ResolutionError(
                message=f"No factory registered for {describe_key(key)}",
                requirement=key,
            )

        factory, as_singleton = factory_tuple
        if not as_singleton:
            return factory()

        with self._singleton_lock:
            if key not in self._singletons:
                self._singletons[key] = factory()
            return self._singletons[key]

    def freeze(self) -> None:
        """End of bootstrap: no further registrations are accepted."""
        self._frozen = True
        logger.debug(f"container frozen with {len(self._factories) + len(self._singletons)} bindings")

    def keys(self) -> list:
        return list(self._factories) + [k for k in self._singletons if k not in self._factories]

    def _ensure_writable(self, key: Hashable) -> None:
        if self._frozen:
            raise LifecycleError(
                message=f"cannot register {describe_key(key)}: container is frozen after bootstrap",
            )
