"""
Bus dispatch tests: boot-then-execute, middleware order, memoization scopes
"""

import asyncio
import threading

import pytest

from opdispatch import LightInvoker
from opdispatch.core import Bus, Command, Container, HookMiddleware, OperationParams, OperationState, Query
from opdispatch.core.errors import ErrorKind, ExecutionError, LifecycleError, ResolutionError
from tests.fakes import (
    AsyncWithdraw,
    BalanceReport,
    Failing,
    GetBalance,
    GetBalanceUncached,
    InsufficientFunds,
    Ledger,
    PayTwice,
    Ping,
    Withdraw,
)


class Trace(HookMiddleware):
    def __init__(self, name, trace):
        super().__init__(name)
        self.trace = trace

    async def before(self, operation):
        self.trace.append(f"{self.name}.before:{type(operation).__name__}:{operation.state.value}")

    async def after(self, operation, result):
        self.trace.append(f"{self.name}.after:{type(operation).__name__}")
        return result

    async def on_failure(self, operation, error):
        self.trace.append(f"{self.name}.on_failure:{type(operation).__name__}")


class Recorded(Command):
    """Records the order of its own lifecycle steps."""

    steps = []

    def boot(self, ledger: Ledger) -> None:
        Recorded.steps.append(("boot", ledger.balance))
        self.ledger = ledger

    def handle(self):
        Recorded.steps.append(("handle", self.state.value))
        return "ok"


class RejectFirst(HookMiddleware):
    """Fails the first successful result it sees on the way out."""

    def __init__(self):
        super().__init__("reject-first")
        self.rejected = False

    async def after(self, operation, result):
        if not self.rejected:
            self.rejected = True
            raise ExecutionError(message="result rejected")
        return result


class Guarded:
    def __init__(self):
        self.lock = threading.Lock()


class GetGuarded(Query):
    memoize = True

    class Params(OperationParams):
        name: str = "main"

    def boot(self, ledger: Ledger) -> None:
        self.ledger = ledger

    def handle(self):
        self.ledger.read()
        return Guarded()


class Sleeper(Command):
    cancelled = []

    async def handle(self):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            Sleeper.cancelled.append(self)
            raise


class TestDispatch:
    @pytest.mark.asyncio
    async def test_withdraw(self, bus, ledger):
        op = Withdraw(amount=50)
        assert await bus.dispatch(op) == 50
        assert ledger.balance == 50
        assert op.state is OperationState.COMPLETED

    @pytest.mark.asyncio
    async def test_async_handle(self, bus, ledger):
        assert await bus.dispatch(AsyncWithdraw(amount=30)) == 70

    @pytest.mark.asyncio
    async def test_boot_once_before_execute(self, bus):
        Recorded.steps.clear()
        await bus.dispatch(Recorded())
        assert Recorded.steps == [("boot", 100), ("handle", "executing")]

    @pytest.mark.asyncio
    async def test_middleware_sees_booted_operation(self, container):
        trace = []
        bus = Bus.from_container(container, [Trace("A", trace)])
        await bus.dispatch(Withdraw(amount=1))
        assert trace[0] == "A.before:Withdraw:executing"

    @pytest.mark.asyncio
    async def test_bus_middleware_wraps_operation_middleware(self, container):
        trace = []

        class Guarded(Command):
            middleware = (Trace("op", trace),)

            def handle(self):
                trace.append("E")
                return None

        bus = Bus.from_container(container, [Trace("bus", trace)])
        await bus.dispatch(Guarded())
        assert trace == [
            "bus.before:Guarded:executing",
            "op.before:Guarded:executing",
            "E",
            "op.after:Guarded",
            "bus.after:Guarded",
        ]

    @pytest.mark.asyncio
    async def test_failure_propagates_and_marks_failed(self, bus):
        op = Failing()
        with pytest.raises(Exception, match="always fails"):
            await bus.dispatch(op)
        assert op.state is OperationState.FAILED

    @pytest.mark.asyncio
    async def test_concurrent_dispatch_on_one_bus(self, bus, ledger):
        await asyncio.gather(*(bus.dispatch(Withdraw(amount=1)) for _ in range(10)))
        assert ledger.balance == 90


class TestLifecycleErrors:
    @pytest.mark.asyncio
    async def test_completed_operation_cannot_be_dispatched_again(self, bus):
        op = Ping()
        await bus.dispatch(op)
        with pytest.raises(LifecycleError):
            await bus.dispatch(op)

    @pytest.mark.asyncio
    async def test_run_requires_booted_operation(self, bus):
        with pytest.raises(LifecycleError):
            await bus.run(Withdraw(amount=1))

    @pytest.mark.asyncio
    async def test_failed_resolution_discards_instance(self):
        bus = Bus.from_container(Container())
        op = Withdraw(amount=1)
        with pytest.raises(ResolutionError):
            await bus.dispatch(op)
        assert op.discarded
        assert op.state is OperationState.CREATED
        with pytest.raises(LifecycleError, match="discarded"):
            await bus.dispatch(op)

    @pytest.mark.asyncio
    async def test_dispatch_result_does_not_wrap_lifecycle_errors(self, bus):
        op = Ping()
        await bus.dispatch(op)
        with pytest.raises(LifecycleError):
            await bus.dispatch_result(op)


class TestDispatchResult:
    @pytest.mark.asyncio
    async def test_completed(self, bus):
        result = await bus.dispatch_result(Withdraw(amount=10))
        assert result.is_ok()
        assert result.value == 90
        assert result.operation == Withdraw.operation_name()

    @pytest.mark.asyncio
    async def test_execution_failure(self, bus, ledger):
        result = await bus.dispatch_result(Withdraw(amount=500))
        assert not result.is_ok()
        assert result.kind is ErrorKind.EXECUTION
        assert ledger.balance == 100

    @pytest.mark.asyncio
    async def test_resolution_failure(self):
        result = await Bus.from_container(Container()).dispatch_result(Withdraw(amount=10))
        assert result.kind is ErrorKind.RESOLUTION
        assert result.error.context["parameter"] == "ledger"
        assert result.to_dict()["status"] == "failed"


class TestMemoization:
    @pytest.mark.asyncio
    async def test_nested_dispatches_share_the_parent_scope(self, bus, ledger):
        first, second = await bus.dispatch(BalanceReport())
        assert first == second == {"account": "main", "balance": 100}
        assert ledger.reads == 1

    @pytest.mark.asyncio
    async def test_separate_top_level_dispatches_do_not_share(self, bus, ledger):
        await bus.dispatch(GetBalance())
        await bus.dispatch(GetBalance())
        assert ledger.reads == 2

    @pytest.mark.asyncio
    async def test_explicit_invocation_context(self, bus, ledger):
        with bus.invocation() as scope:
            await bus.dispatch(GetBalance())
            await bus.dispatch(GetBalance())
            await bus.dispatch(GetBalance(account="other"))
        assert ledger.reads == 2
        assert scope.hits == 1
        assert not scope.active

    @pytest.mark.asyncio
    async def test_unmemoized_reads_always_execute(self, bus, ledger):
        with bus.invocation():
            await bus.dispatch(GetBalanceUncached())
            await bus.dispatch(GetBalanceUncached())
        assert ledger.reads == 2

    @pytest.mark.asyncio
    async def test_middleware_runs_on_cache_hits(self, container, ledger):
        trace = []
        bus = Bus.from_container(container, [Trace("A", trace)])
        container.instance(Bus, bus)
        await bus.dispatch(BalanceReport())
        assert trace.count("A.after:GetBalance") == 2
        assert ledger.reads == 1

    @pytest.mark.asyncio
    async def test_hit_is_isolated_from_caller_mutation(self, bus):
        with bus.invocation():
            first = await bus.dispatch(GetBalance())
            first["balance"] = -1
            second = await bus.dispatch(GetBalance())
        assert second["balance"] == 100

    @pytest.mark.asyncio
    async def test_orchestration_sees_its_own_writes(self, bus, ledger):
        seen = await bus.dispatch(PayTwice(amount=10))
        assert [s["balance"] for s in seen] == [90, 80]
        assert ledger.balance == 80

    @pytest.mark.asyncio
    async def test_failed_read_is_not_memoized(self, container, ledger):
        bus = Bus.from_container(container, [RejectFirst()])
        with bus.invocation() as scope:
            op = GetBalance()
            with pytest.raises(ExecutionError):
                await bus.dispatch(op)
            assert op.state is OperationState.FAILED
            assert len(scope) == 0

            assert await bus.dispatch(GetBalance()) == {"account": "main", "balance": 100}
            assert len(scope) == 1
        assert ledger.reads == 2

    @pytest.mark.asyncio
    async def test_uncopyable_result_is_memoized_as_is(self, bus, ledger):
        with bus.invocation():
            first = await bus.dispatch(GetGuarded())
            second = await bus.dispatch(GetGuarded())
        assert isinstance(first, Guarded)
        assert second is first
        assert ledger.reads == 1


class TestGather:
    @pytest.mark.asyncio
    async def test_branches_get_isolated_scopes(self, bus, ledger):
        results = await bus.gather(GetBalance(), GetBalance())
        assert results == [{"account": "main", "balance": 100}] * 2
        assert ledger.reads == 2

    @pytest.mark.asyncio
    async def test_shared_fan_out(self, bus, ledger):
        with bus.invocation(shared=True):
            await bus.gather(GetBalance(), GetBalance(), GetBalance(), shared=True)
        assert ledger.reads == 1

    @pytest.mark.asyncio
    async def test_shared_fan_out_requires_shared_scope(self, bus):
        with pytest.raises(LifecycleError):
            await bus.gather(GetBalance(), shared=True)
        with bus.invocation():
            with pytest.raises(LifecycleError):
                await bus.gather(GetBalance(), shared=True)

    @pytest.mark.asyncio
    async def test_failing_branch_cancels_the_rest(self, bus):
        Sleeper.cancelled.clear()
        sleeper = Sleeper()
        with pytest.raises(InsufficientFunds):
            await bus.gather(sleeper, Failing())
        assert Sleeper.cancelled == [sleeper]
        assert sleeper.state is OperationState.FAILED


class TestLightInvocation:
    @pytest.mark.asyncio
    async def test_same_result_as_bus(self, bus):
        light_ledger = Ledger(100)
        light = await LightInvoker()(Withdraw, {"ledger": light_ledger}, amount=30)
        assert light == await bus.dispatch(Withdraw(amount=30)) == 70

    @pytest.mark.asyncio
    async def test_same_middleware_order_as_bus(self, container):
        bus_trace, light_trace = [], []

        await Bus.from_container(container, [Trace("A", bus_trace), Trace("B", bus_trace)]).dispatch(
            Withdraw(amount=1)
        )
        invoker = LightInvoker(middleware=[Trace("A", light_trace), Trace("B", light_trace)])
        await invoker(Withdraw, {"ledger": Ledger()}, amount=1)
        assert bus_trace == light_trace

    @pytest.mark.asyncio
    async def test_manual_boot_then_run(self, bus, ledger):
        op = Withdraw(amount=5).boot_with(ledger=ledger)
        assert await bus.run(op) == 95

    @pytest.mark.asyncio
    async def test_same_failure_as_bus(self, bus):
        with pytest.raises(Exception) as bus_error:
            await bus.dispatch(Withdraw(amount=500))
        with pytest.raises(Exception) as light_error:
            await LightInvoker()(Withdraw, {"ledger": Ledger(100)}, amount=500)
        assert type(bus_error.value) is type(light_error.value)
        assert str(bus_error.value) == str(light_error.value)

    @pytest.mark.asyncio
    async def test_light_reads_memoize_too(self):
        ledger = Ledger()
        invoker = LightInvoker()
        with invoker.bus.invocation():
            await invoker(GetBalance, {"ledger": ledger})
            await invoker(GetBalance, {"ledger": ledger})
        assert ledger.reads == 1
