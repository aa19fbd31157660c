"""
Declarative dependency resolution tests
"""

import pytest

from opdispatch.core.abstractions import Command, OperationState
from opdispatch.core.di import Container, DependencyResolver, requirements_of
from opdispatch.core.errors import ResolutionError
from tests.fakes import AuditedRead, Clock, Ledger, Ping, Withdraw


class TestRequirements:
    def test_requirements_follow_boot_signature(self):
        (req,) = requirements_of(Withdraw)
        assert req.name == "ledger"
        assert req.key is Ledger
        assert not req.optional

    def test_annotated_key_and_optional_parameter(self):
        ledger_req, clock_req = requirements_of(AuditedRead)
        assert ledger_req.key == "audit_ledger"
        assert clock_req.key is Clock
        assert clock_req.optional

    def test_no_boot_parameters_means_no_requirements(self):
        assert requirements_of(Ping) == ()

    def test_unannotated_parameter_is_rejected(self):
        class Sloppy(Command):
            def boot(self, thing) -> None:
                self.thing = thing

        with pytest.raises(ResolutionError):
            requirements_of(Sloppy)


class TestResolver:
    def test_resolves_declared_dependencies(self, container, ledger):
        resolver = DependencyResolver(container)
        assert resolver.resolve_for(Withdraw(amount=1)) == {"ledger": ledger}

    def test_resolution_does_not_boot(self, container):
        op = Withdraw(amount=1)
        DependencyResolver(container).resolve_for(op)
        assert op.state is OperationState.CREATED

    def test_optional_dependency_skipped_when_unregistered(self, ledger):
        container = Container()
        container.instance("audit_ledger", ledger)
        assert DependencyResolver(container).resolve_for(AuditedRead()) == {"ledger": ledger}

    def test_optional_dependency_resolved_when_registered(self, ledger):
        container = Container()
        clock = Clock()
        container.instance("audit_ledger", ledger)
        container.instance(Clock, clock)
        assert DependencyResolver(container).resolve_for(AuditedRead())["clock"] is clock

    def test_missing_dependency_names_operation_and_parameter(self):
        resolver = DependencyResolver(Container())
        with pytest.raises(ResolutionError) as info:
            resolver.resolve_for(Withdraw(amount=1))
        err = info.value
        assert err.operation == Withdraw.operation_name()
        assert err.context == {"parameter": "ledger", "requirement": "Ledger"}

    def test_plan_is_cached_per_class(self, container):
        resolver = DependencyResolver(container)
        assert resolver.plan(Withdraw) is resolver.plan(Withdraw)
