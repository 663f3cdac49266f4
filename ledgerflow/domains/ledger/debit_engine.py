"""Ledger debit engine.

A debit settles one billing job against an organization's credit layers:

1. A job that already has a debit record is a successful no-op.
2. The organization's balance row is locked, which serializes debits of the
   same organization while other organizations proceed in parallel. The
   job is re-checked under that lock so two deliveries of the same job
   racing each other settle once.
3. Open credit layers are locked and consumed oldest first.
4. If they cannot cover the whole amount nothing is written and
   InsufficientBalanceError is raised.
5. Otherwise layer decrements, the balance decrement and one ``usage_fee``
   record commit together.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from ledgerflow.db.unit_of_work import UnitOfWork
from ledgerflow.domains.ledger.exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    LedgerInvariantError,
)
from ledgerflow.domains.ledger.fifo import LayerBalance, plan_fifo_debit
from ledgerflow.domains.ledger.repository import LedgerRepositoryProtocol
from ledgerflow.models.balance_transaction import BalanceTransaction
from ledgerflow.schemas.ledger import (
    CREDIT_LAYER_TYPES,
    Balance,
    CreditLayer,
    DebitOutcome,
    DebitResult,
    TransactionType,
)

logger = logging.getLogger(__name__)


class LedgerDebitEngine:
    """Implements LedgerProtocol on top of a ledger repository."""

    def __init__(self, repository: LedgerRepositoryProtocol) -> None:
        """Initialize with a ledger repository."""
        self._repo = repository

    async def debit(
        self,
        organization_id: str,
        job_id: UUID,
        batch_id: UUID,
        total_cost_in_units: int,
    ) -> DebitResult:
        """Debit one billing job, at most once per ``job_id``."""
        if isinstance(total_cost_in_units, bool) or not isinstance(total_cost_in_units, int):
            raise TypeError("total_cost_in_units must be an integer")
        if total_cost_in_units < 0:
            raise ValueError("total_cost_in_units cannot be negative")

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            existing = await self._repo.get_debit_by_job_id(db, job_id=job_id)
            if existing is not None:
                return self._duplicate(existing)

            async with UnitOfWork(db) as uow:
                balance = await self._repo.get_balance(
                    db, organization_id=organization_id, for_update=True
                )
                existing = await self._repo.get_debit_by_job_id(db, job_id=job_id)
                if existing is not None:
                    return self._duplicate(existing)

                if balance is None:
                    if await self._repo.count_layers(db, organization_id=organization_id):
                        raise LedgerInvariantError(
                            f"Organization {organization_id} has credit layers but no balance"
                        )
                    if total_cost_in_units > 0:
                        raise InsufficientBalanceError(
                            organization_id, required=total_cost_in_units, available=0
                        )
                    await self._repo.create_balance_if_absent(db, organization_id=organization_id)

                layers = await self._repo.lock_open_layers(db, organization_id=organization_id)
                plan = plan_fifo_debit(
                    [LayerBalance(layer.id, layer.remaining_in_usd_cents) for layer in layers],
                    total_cost_in_units,
                )
                if not plan.is_covered:
                    raise InsufficientBalanceError(
                        organization_id,
                        required=total_cost_in_units,
                        available=plan.covered,
                    )

                for draw in plan.draws:
                    await self._repo.set_layer_remaining(
                        db, layer_id=draw.layer_id, remaining=draw.remaining_after
                    )
                new_balance = await self._repo.adjust_balance(
                    db, organization_id=organization_id, delta=-total_cost_in_units
                )
                await self._repo.add_entry(
                    db,
                    organization_id=organization_id,
                    type=TransactionType.USAGE_FEE,
                    amount_in_usd_cents=-total_cost_in_units,
                    description=f"Usage fee for batch {batch_id}",
                    job_id=job_id,
                    batch_id=batch_id,
                )
                await uow.commit()

        logger.info(
            "Debited %d from organization %s for job %s across %d layer(s)",
            total_cost_in_units,
            organization_id,
            job_id,
            len(plan.draws),
        )
        return DebitResult(
            organization_id=organization_id,
            job_id=job_id,
            batch_id=batch_id,
            outcome=DebitOutcome.DEBITED,
            amount_in_usd_cents=total_cost_in_units,
            balance_in_usd_cents=new_balance,
        )

    async def credit(
        self,
        organization_id: str,
        amount_in_usd_cents: int,
        type: TransactionType = TransactionType.RECHARGE,
        description: Optional[str] = None,
    ) -> CreditLayer:
        """Grant a credit layer and raise the balance in one transaction."""
        if type not in CREDIT_LAYER_TYPES:
            raise ValueError(f"{type.value} does not open a credit layer")
        if amount_in_usd_cents <= 0:
            raise ValueError("Credit amount must be positive")

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            async with UnitOfWork(db) as uow:
                await self._repo.create_balance_if_absent(db, organization_id=organization_id)
                await self._repo.get_balance(db, organization_id=organization_id, for_update=True)
                layer = await self._repo.add_entry(
                    db,
                    organization_id=organization_id,
                    type=type,
                    amount_in_usd_cents=amount_in_usd_cents,
                    remaining_in_usd_cents=amount_in_usd_cents,
                    description=description,
                )
                await self._repo.adjust_balance(
                    db, organization_id=organization_id, delta=amount_in_usd_cents
                )
                await uow.commit()

        logger.info(
            "Credited %d (%s) to organization %s", amount_in_usd_cents, type.value, organization_id
        )
        return CreditLayer.model_validate(layer)

    async def open_account(self, organization_id: str) -> bool:
        """Create a zero balance for the organization unless it has one."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            async with UnitOfWork(db) as uow:
                created = await self._repo.create_balance_if_absent(
                    db, organization_id=organization_id
                )
                await uow.commit()
        return created

    async def get_balance(self, organization_id: str) -> Balance:
        """Current balance of an organization."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            row = await self._repo.get_balance(db, organization_id=organization_id)
        if row is None:
            raise AccountNotFoundError(organization_id)
        return Balance.model_validate(row)

    async def list_credit_layers(self, organization_id: str) -> list[CreditLayer]:
        """Every credit layer of an organization, oldest first."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            layers = await self._repo.list_layers(db, organization_id=organization_id)
        return [CreditLayer.model_validate(layer) for layer in layers]

    async def get_proof_of_payment(self, batch_ids: Iterable[UUID]) -> dict[UUID, int]:
        """Count distinct organizations with a committed usage fee, per batch."""
        ids = list(batch_ids)
        if not ids:
            return {}

        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            counts = await self._repo.count_settled_organizations(db, batch_ids=ids)
        return {batch_id: counts.get(batch_id, 0) for batch_id in ids}

    async def get_settled_organizations(self, batch_id: UUID) -> set[str]:
        """Organizations already debited for a batch."""
        from ledgerflow.db.session import get_db_context

        async with get_db_context() as db:
            return await self._repo.get_settled_organization_ids(db, batch_id=batch_id)

    @staticmethod
    def _duplicate(record: BalanceTransaction) -> DebitResult:
        logger.info("Job %s already settled; skipping debit", record.job_id)
        return DebitResult(
            organization_id=record.organization_id,
            job_id=record.job_id,
            batch_id=record.batch_id,
            outcome=DebitOutcome.DUPLICATE,
            amount_in_usd_cents=-record.amount_in_usd_cents,
        )
