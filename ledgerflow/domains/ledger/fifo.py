"""Pure FIFO planning of a debit against ordered credit layers.

The planner never mutates anything. The debit engine applies the plan only
when it covers the whole amount, so a shortfall leaves every layer as it
was. Integers only.
"""

from dataclasses import dataclass
from typing import Sequence
from uuid import UUID

from ledgerflow.domains.ledger.exceptions import LedgerInvariantError


@dataclass(frozen=True)
class LayerBalance:
    """What is left of one credit layer."""

    layer_id: UUID
    remaining: int


@dataclass(frozen=True)
class LayerDraw:
    """Amount taken from one layer and what it leaves behind."""

    layer_id: UUID
    amount: int
    remaining_after: int


@dataclass(frozen=True)
class DebitPlan:
    """Draws needed to pay ``requested``, oldest layer first."""

    requested: int
    draws: tuple[LayerDraw, ...]

    @property
    def covered(self) -> int:
        return sum(draw.amount for draw in self.draws)

    @property
    def shortfall(self) -> int:
        return self.requested - self.covered

    @property
    def is_covered(self) -> bool:
        return self.shortfall == 0


def plan_fifo_debit(layers: Sequence[LayerBalance], amount: int) -> DebitPlan:
    """Consume ``min(remaining, owed)`` from each layer in the given order.

    ``layers`` must already be sorted oldest first. Exhausted layers are
    skipped.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError("Debit amount must be an integer")
    if amount < 0:
        raise ValueError("Debit amount cannot be negative")

    owed = amount
    draws: list[LayerDraw] = []
    for layer in layers:
        if owed == 0:
            break
        if layer.remaining < 0:
            raise LedgerInvariantError(f"Credit layer {layer.layer_id} has negative remaining")
        if layer.remaining == 0:
            continue
        take = min(layer.remaining, owed)
        draws.append(
            LayerDraw(layer_id=layer.layer_id, amount=take, remaining_after=layer.remaining - take)
        )
        owed -= take
    return DebitPlan(requested=amount, draws=tuple(draws))
