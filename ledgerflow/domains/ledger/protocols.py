"""Ledger domain protocols."""

from typing import Iterable, Optional, Protocol, runtime_checkable
from uuid import UUID

from ledgerflow.schemas.ledger import Balance, CreditLayer, DebitResult, TransactionType


@runtime_checkable
class LedgerProtocol(Protocol):
    """Idempotent FIFO debits against pre-paid credit.

    Implementations own their DB sessions; callers never pass one.
    """

    async def debit(
        self,
        organization_id: str,
        job_id: UUID,
        batch_id: UUID,
        total_cost_in_units: int,
    ) -> DebitResult:
        """Debit a billing job at most once.

        Raises InsufficientBalanceError, with nothing written, when the
        organization's credit cannot cover the whole amount.
        """
        ...

    async def credit(
        self,
        organization_id: str,
        amount_in_usd_cents: int,
        type: TransactionType = TransactionType.RECHARGE,
        description: Optional[str] = None,
    ) -> CreditLayer:
        """Grant a new credit layer."""
        ...

    async def open_account(self, organization_id: str) -> bool:
        """Create the organization's zero balance. Returns True if created."""
        ...

    async def get_balance(self, organization_id: str) -> Balance:
        """Current balance; raises AccountNotFoundError if there is no account."""
        ...

    async def list_credit_layers(self, organization_id: str) -> list[CreditLayer]:
        """Every credit layer of an organization, oldest first."""
        ...

    async def get_proof_of_payment(self, batch_ids: Iterable[UUID]) -> dict[UUID, int]:
        """Distinct organizations debited per batch; every requested batch is present."""
        ...

    async def get_settled_organizations(self, batch_id: UUID) -> set[str]:
        """Organizations already debited for a batch."""
        ...
