"""Saga coordinator: best-effort unwind for multi-step side effects.

A ``SagaCoordinator`` holds the compensations registered by one logical
operation. When a later step fails the caller cancels the saga and every
compensation runs, newest first. A compensation that raises is logged and
skipped; the remaining ones still run and ``cancel()`` itself never raises.

The stack lives in memory only. It unwinds the current process's failure;
it is not a durable recovery log and does not retry.

Usage:
    saga = SagaCoordinator(name="create_batch")
    claim = await store.claim_pending_batch(1000)
    saga.dispatch(lambda: store.rollback_claim(claim.batch_id))
    try:
        await publish(...)
    except Exception:
        await saga.cancel()
        raise
    saga.success()

or as an async context manager:

    async with SagaCoordinator(name="create_batch") as saga:
        ...
"""

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from ledgerflow.core.logging import ContextualLogger
from ledgerflow.core.logging import logger as default_logger

Compensation = Callable[[], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class CompensationResult:
    """Outcome of one compensation during ``cancel()``."""

    index: int
    succeeded: bool
    error: Optional[BaseException] = None


class SagaCoordinator:
    """Ordered stack of compensating actions for one operation."""

    def __init__(self, name: str = "saga", logger: Optional[ContextualLogger] = None) -> None:
        self.name = name
        self._logger = (logger or default_logger).with_context(saga=name)
        self._compensations: list[Compensation] = []

    def __len__(self) -> int:
        return len(self._compensations)

    def dispatch(self, compensation: Compensation) -> None:
        """Register a rollback action for a step that has just succeeded."""
        self._compensations.append(compensation)

    async def cancel(self) -> list[CompensationResult]:
        """Run every registered compensation, newest first.

        Failures are isolated per compensation. The stack is empty afterwards.
        """
        compensations = list(reversed(self._compensations))
        self._compensations = []
        total = len(compensations)
        results: list[CompensationResult] = []

        for position, compensation in enumerate(compensations):
            index = total - position
            try:
                outcome = compensation()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                self._logger.error(
                    f"Compensation {index}/{total} failed: {e}",
                    exc_info=True,
                )
                results.append(CompensationResult(index=index, succeeded=False, error=e))
                continue
            self._logger.info(f"Compensation {index}/{total} completed")
            results.append(CompensationResult(index=index, succeeded=True))

        return results

    def success(self) -> None:
        """Discard the stack without running it."""
        self._compensations = []

    async def __aenter__(self) -> "SagaCoordinator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.success()
        else:
            self._logger.warning(f"Saga '{self.name}' failed, unwinding: {exc}")
            await self.cancel()
        return False
