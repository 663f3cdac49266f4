"""Usage event model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ledgerflow.models._base import OrganizationBase
from ledgerflow.schemas.usage_event import UsageEventStatus


class UsageEvent(OrganizationBase):
    """One metered unit of usage, appended by ingestion and billed in batches.

    ``batch_id`` is set exactly when the event has left PENDING; the CHECK
    constraint keeps that true even for writes that bypass the service.
    """

    __tablename__ = "usage_event"

    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    cost_units: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UsageEventStatus.PENDING.value
    )
    batch_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Opaque gateway metadata, kept for auditing invoices
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    input_tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    output_tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    connection_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    event_metadata: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    __table_args__ = (
        CheckConstraint("cost_units >= 0", name="ck_usage_event_cost_units_non_negative"),
        CheckConstraint(
            "(status = 'PENDING') = (batch_id IS NULL)",
            name="ck_usage_event_batch_id_matches_status",
        ),
        # Claim scans PENDING rows oldest-first
        Index("idx_usage_event_status_created_at", "status", "created_at"),
        Index("idx_usage_event_batch_id_status", "batch_id", "status"),
        Index("idx_usage_event_status_claimed_at", "status", "claimed_at"),
    )
