"""Balance model."""

from sqlalchemy import BigInteger, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledgerflow.models._base import OrganizationBase


class Balance(OrganizationBase):
    """Running balance of one organization, updated with every ledger write."""

    __tablename__ = "balance"

    balance_in_usd_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("organization_id", name="uq_balance_organization_id"),)
