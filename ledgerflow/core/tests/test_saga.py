"""Tests for SagaCoordinator unwind semantics."""

import pytest

from ledgerflow.core.saga import SagaCoordinator


class TestCancel:
    @pytest.mark.asyncio
    async def test_runs_newest_first(self):
        saga = SagaCoordinator(name="order")
        ran = []
        saga.dispatch(lambda: ran.append(1))
        saga.dispatch(lambda: ran.append(2))
        saga.dispatch(lambda: ran.append(3))

        await saga.cancel()

        assert ran == [3, 2, 1]
        assert len(saga) == 0

    @pytest.mark.asyncio
    async def test_failing_compensation_does_not_stop_the_rest(self):
        saga = SagaCoordinator(name="isolation")
        ran = []

        async def _first():
            ran.append(1)

        async def _second():
            raise RuntimeError("release failed")

        async def _third():
            ran.append(3)

        saga.dispatch(_first)
        saga.dispatch(_second)
        saga.dispatch(_third)

        results = await saga.cancel()

        assert ran == [3, 1]
        assert [(r.index, r.succeeded) for r in results] == [(3, True), (2, False), (1, True)]
        assert isinstance(results[1].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_second_cancel_is_noop(self):
        saga = SagaCoordinator()
        ran = []
        saga.dispatch(lambda: ran.append(1))

        await saga.cancel()
        assert await saga.cancel() == []
        assert ran == [1]

    @pytest.mark.asyncio
    async def test_success_discards_compensations(self):
        saga = SagaCoordinator()
        ran = []
        saga.dispatch(lambda: ran.append(1))

        saga.success()

        assert await saga.cancel() == []
        assert ran == []


class TestContextManager:
    @pytest.mark.asyncio
    async def test_exception_unwinds_and_propagates(self):
        ran = []

        with pytest.raises(ValueError):
            async with SagaCoordinator(name="ctx") as saga:
                saga.dispatch(lambda: ran.append("rollback"))
                raise ValueError("publish failed")

        assert ran == ["rollback"]

    @pytest.mark.asyncio
    async def test_clean_exit_keeps_side_effects(self):
        ran = []

        async with SagaCoordinator(name="ctx") as saga:
            saga.dispatch(lambda: ran.append("rollback"))

        assert ran == []
