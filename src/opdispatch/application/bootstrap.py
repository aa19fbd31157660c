"""
Process bootstrap: build the container, routes and bus once, before any dispatch.

    app = bootstrap(settings, configure=register_bindings)
    result = await app.handle("withdraw", {"amount": 50})
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Type

from loguru import logger

from opdispatch.application.registries import (
    ExtensionDescriptor,
    ExtensionRegistry,
    OperationRegistry,
    discover_extension,
)
from opdispatch.config.settings import Settings
from opdispatch.config.validated_settings import load_validated_settings
from opdispatch.core.abstractions import Operation
from opdispatch.core.bus import Bus
from opdispatch.core.di import Container, DependencyResolver
from opdispatch.core.errors import DispatchResult
from opdispatch.core.pipeline import Middleware
from opdispatch.infrastructure.middleware import LoggingMiddleware, TimeoutMiddleware


@dataclass
class AppSurface:
    """
    What bootstrap callbacks and extensions may touch: settings, routes and
    the bus-level middleware list. The bus itself does not exist yet.
    """

    settings: Settings
    container: Container
    routes: OperationRegistry
    middleware: List[Middleware] = field(default_factory=list)

    def route(self, name: str, operation: Type[Operation], **metadata: Any) -> None:
        self.routes.route(name, operation, **metadata)

    def add_middleware(self, middleware: Middleware) -> None:
        self.middleware.append(middleware)


class Application:
    def __init__(
        self,
        settings: Settings,
        container: Container,
        bus: Bus,
        routes: OperationRegistry,
        extension_loaded: bool = False,
    ):
        self.settings = settings
        self.container = container
        self.bus = bus
        self.routes = routes
        self.extension_loaded = extension_loaded

    async def handle(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Build the routed operation and dispatch it in its own invocation context."""
        operation = self.routes.create(name, params)
        with self.bus.invocation():
            return await self.bus.dispatch(operation)

    async def handle_result(self, name: str, params: Optional[Mapping[str, Any]] = None) -> DispatchResult[Any]:
        operation = self.routes.create(name, params)
        with self.bus.invocation():
            return await self.bus.dispatch_result(operation)


def default_middleware(settings: Settings) -> List[Middleware]:
    middleware: List[Middleware] = []
    if settings.dispatch.log_operations:
        middleware.append(LoggingMiddleware())
    if settings.dispatch.default_timeout:
        middleware.append(TimeoutMiddleware(settings.dispatch.default_timeout))
    return middleware


def bootstrap(
    settings: Optional[Settings] = None,
    *,
    extension: Optional[ExtensionDescriptor] = None,
    configure: Optional[Callable[[AppSurface], None]] = None,
    middleware: Iterable[Middleware] = (),
) -> Application:
    """
    Build the application.

    Order: default middleware from settings, explicit ``middleware``,
    ``configure(surface)``, extension hook, then the bus is created and bound
    under ``Bus``, and container and routes are frozen.

    ``extension`` wins over ``settings.extension``; when neither is given the
    extension step is a no-op.
    """
    settings = settings or load_validated_settings()
    if extension is None:
        extension = discover_extension(settings)

    container = Container()
    routes = OperationRegistry()
    surface = AppSurface(
        settings=settings,
        container=container,
        routes=routes,
        middleware=[*default_middleware(settings), *middleware],
    )

    if configure is not None:
        configure(surface)

    extensions = ExtensionRegistry(extension)
    extensions.boot(container, surface)

    bus = Bus(
        DependencyResolver(container),
        surface.middleware,
        copy_memoized=settings.dispatch.copy_memoized,
    )
    container.instance(Bus, bus)
    container.freeze()
    routes.freeze()

    logger.debug(
        f"bootstrapped: {len(container.keys())} bindings, {len(routes.all())} routes, "
        f"{len(bus.middleware)} middleware, extension={'yes' if extensions.present else 'no'}"
    )
    return Application(settings, container, bus, routes, extension_loaded=extensions.present)
