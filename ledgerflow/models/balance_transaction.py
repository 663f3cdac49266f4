"""Balance transaction model (credit layers and debit records)."""

from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from ledgerflow.models._base import OrganizationBase
from ledgerflow.schemas.ledger import TransactionType


class BalanceTransaction(OrganizationBase):
    """One ledger entry.

    Credit layers (``recharge``, ``promotion_credit``) carry a positive
    ``amount_in_usd_cents`` and a ``remaining_in_usd_cents`` consumed FIFO by
    debits. Debit records (``usage_fee``) carry a negative amount and the
    ``job_id`` that makes each billing job settle at most once.
    """

    __tablename__ = "balance_transaction"

    type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount_in_usd_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    remaining_in_usd_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fee_in_usd_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    job_id: Mapped[Optional[UUID]] = mapped_column(nullable=True, unique=True)
    batch_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "remaining_in_usd_cents >= 0 "
            "AND remaining_in_usd_cents <= GREATEST(amount_in_usd_cents, 0)",
            name="ck_balance_transaction_remaining_within_amount",
        ),
        CheckConstraint(
            f"type <> '{TransactionType.USAGE_FEE.value}' OR job_id IS NOT NULL",
            name="ck_balance_transaction_usage_fee_has_job_id",
        ),
        # FIFO layer scan: oldest open layers of one organization
        Index(
            "idx_balance_transaction_open_layers",
            "organization_id",
            "created_at",
            postgresql_where=text("remaining_in_usd_cents > 0"),
        ),
        Index("idx_balance_transaction_batch_id_type", "batch_id", "type"),
    )
