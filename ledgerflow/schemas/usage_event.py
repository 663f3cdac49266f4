"""Usage event schemas."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UsageEventStatus(str, Enum):
    """Lifecycle of a usage event.

    PENDING -> QUEUING -> QUEUED -> PROCESSED, with QUEUING -> PENDING as the
    only way back. PROCESSED is terminal.
    """

    PENDING = "PENDING"
    QUEUING = "QUEUING"
    QUEUED = "QUEUED"
    PROCESSED = "PROCESSED"


class UsageEventCreate(BaseModel):
    """Schema for appending one usage event."""

    idempotency_key: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Caller-supplied key; re-sending the same key has no effect.",
    )
    organization_id: str = Field(..., min_length=1, max_length=255)
    cost_units: int = Field(..., ge=0, description="Cost in the smallest currency unit.")
    created_at: Optional[datetime] = None
    model: Optional[str] = None
    input_tokens: Optional[int] = Field(default=None, ge=0)
    output_tokens: Optional[int] = Field(default=None, ge=0)
    connection_type: Optional[str] = None
    event_metadata: Optional[dict] = None

    @field_validator("created_at")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store timestamps as naive UTC like every other column."""
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class UsageEvent(BaseModel):
    """Schema for a stored usage event."""

    id: UUID
    idempotency_key: str
    organization_id: str
    cost_units: int
    status: UsageEventStatus
    batch_id: Optional[UUID] = None
    claimed_at: Optional[datetime] = None
    created_at: datetime
    model: Optional[str] = None
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    connection_type: Optional[str] = None
    event_metadata: Optional[dict] = None

    model_config = ConfigDict(from_attributes=True)


class UsageEventBatch(BaseModel):
    """Request body for bulk ingestion."""

    events: list[UsageEventCreate] = Field(..., min_length=1, max_length=10_000)


class GatewayLogBatch(BaseModel):
    """Raw gateway log lines to parse and ingest."""

    lines: list[str] = Field(..., min_length=1, max_length=10_000)


class IngestResult(BaseModel):
    """Outcome of a bulk ingestion."""

    received: int
    inserted: int
    skipped: int = Field(default=0, description="Lines that could not be parsed.")

    @property
    def duplicates(self) -> int:
        """Events dropped because their idempotency key already existed."""
        return self.received - self.skipped - self.inserted


class ClaimResult(BaseModel):
    """A fresh batch id and how many PENDING events moved under it."""

    batch_id: UUID
    claimed: int

    @property
    def is_empty(self) -> bool:
        """Whether the claim found nothing to do."""
        return self.claimed == 0


class OrganizationCost(BaseModel):
    """Summed cost of one organization's events within one batch."""

    organization_id: str
    total_cost_in_units: int
