"""
Optional extension hook.

The hosting application may name one extension descriptor in its settings
(``extension: "package.module:attribute"``). Whether one exists is decided
once, at bootstrap, and handed to ExtensionRegistry as a plain Optional; the
rest of the runtime never asks again.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from loguru import logger

from opdispatch.config.settings import Settings
from opdispatch.core.di import Container
from opdispatch.core.errors import LifecycleError

if TYPE_CHECKING:
    from opdispatch.application.bootstrap import AppSurface


@runtime_checkable
class ExtensionDescriptor(Protocol):
    def register(self, container: Container, app: "AppSurface") -> None:
        """Add bindings, routes or middleware. Called exactly once, before any dispatch."""


def load_extension(path: str) -> ExtensionDescriptor:
    """Import ``package.module:attribute``; classes are instantiated without arguments."""
    module_name, _, attr = path.partition(":")
    target = getattr(importlib.import_module(module_name), attr)
    return target() if isinstance(target, type) else target


def discover_extension(settings: Settings) -> Optional[ExtensionDescriptor]:
    if settings.extension is None:
        return None
    return load_extension(settings.extension)


class ExtensionRegistry:
    def __init__(self, extension: Optional[ExtensionDescriptor] = None):
        self.extension = extension
        self._booted = False

    @property
    def present(self) -> bool:
        return self.extension is not None

    def boot(self, container: Container, app: "AppSurface") -> None:
        if self._booted:
            raise LifecycleError(message="extension registry already booted")
        self._booted = True
        if self.extension is None:
            return
        logger.info(f"registering extension {type(self.extension).__qualname__}")
        self.extension.register(container, app)
