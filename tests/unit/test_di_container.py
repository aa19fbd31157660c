"""
Dependency container unit tests
"""

import threading

import pytest

from opdispatch.core.di import Container
from opdispatch.core.errors import LifecycleError, ResolutionError


class TestContainer:
    """Container tests"""

    def setup_method(self):
        self.container = Container()

    def test_register_and_resolve(self):
        class MyService:
            pass

        self.container.register(MyService, lambda: MyService())

        instance = self.container.resolve(MyService)
        assert isinstance(instance, MyService)

    def test_singleton_returns_same_instance(self):
        class MySingleton:
            pass

        self.container.register(MySingleton, lambda: MySingleton(), singleton=True)

        assert self.container.resolve(MySingleton) is self.container.resolve(MySingleton)

    def test_non_singleton_returns_new_instance(self):
        class MyTransient:
            pass

        self.container.register(MyTransient, lambda: MyTransient(), singleton=False)

        assert self.container.resolve(MyTransient) is not self.container.resolve(MyTransient)

    def test_instance_binding_and_string_keys(self):
        marker = object()
        self.container.instance("audit_ledger", marker)
        assert self.container.has("audit_ledger")
        assert self.container.resolve("audit_ledger") is marker

    def test_register_replaces_previous_instance(self):
        self.container.instance("clock", "old")
        self.container.register("clock", lambda: "new")
        assert self.container.resolve("clock") == "new"

    def test_resolve_unregistered_raises(self):
        class Unregistered:
            pass

        with pytest.raises(ResolutionError) as info:
            self.container.resolve(Unregistered)
        assert info.value.requirement is Unregistered
        assert "Unregistered" in str(info.value)


class TestFreeze:
    """Bootstrap barrier"""

    def test_register_after_freeze_raises(self):
        container = Container()
        container.register("a", lambda: 1)
        container.freeze()

        with pytest.raises(LifecycleError):
            container.register("b", lambda: 2)
        with pytest.raises(LifecycleError):
            container.instance("c", 3)

    def test_resolve_still_works_after_freeze(self):
        container = Container()
        container.register("a", lambda: object(), singleton=True)
        container.freeze()
        assert container.resolve("a") is container.resolve("a")

    def test_concurrent_singleton_resolution_builds_once(self):
        container = Container()
        built = []

        def factory():
            built.append(1)
            return object()

        container.register("svc", factory, singleton=True)
        container.freeze()

        results = []
        threads = [threading.Thread(target=lambda: results.append(container.resolve("svc"))) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(built) == 1
        assert all(r is results[0] for r in results)
