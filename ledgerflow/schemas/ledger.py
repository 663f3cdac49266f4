"""Ledger schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionType(str, Enum):
    """Ledger entry types."""

    RECHARGE = "recharge"
    PROMOTION_CREDIT = "promotion_credit"
    USAGE_FEE = "usage_fee"


# Entry types that open a consumable credit layer
CREDIT_LAYER_TYPES = (TransactionType.RECHARGE, TransactionType.PROMOTION_CREDIT)


class Balance(BaseModel):
    """Schema for an organization's running balance."""

    organization_id: str
    balance_in_usd_cents: int
    modified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CreditLayer(BaseModel):
    """A credit grant and what is left of it."""

    id: UUID
    organization_id: str
    type: TransactionType
    amount_in_usd_cents: int
    remaining_in_usd_cents: int
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DebitRecord(BaseModel):
    """A settled usage fee."""

    id: UUID
    organization_id: str
    job_id: UUID
    batch_id: Optional[UUID] = None
    amount_in_usd_cents: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CreditCreate(BaseModel):
    """Schema for topping up an organization."""

    amount_in_usd_cents: int = Field(..., gt=0)
    type: TransactionType = TransactionType.RECHARGE
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("type")
    @classmethod
    def _credit_layer_type(cls, v: TransactionType) -> TransactionType:
        """Reject credits typed as usage fees."""
        if v not in CREDIT_LAYER_TYPES:
            raise ValueError(f"Credit type must be one of {[t.value for t in CREDIT_LAYER_TYPES]}")
        return v


class DebitRequest(BaseModel):
    """Debit one billing job from an organization's credit."""

    organization_id: str = Field(..., min_length=1, max_length=255)
    job_id: UUID
    batch_id: UUID
    total_cost_in_units: int = Field(..., ge=0)


class DebitOutcome(str, Enum):
    """How a successful debit request was satisfied."""

    DEBITED = "debited"
    DUPLICATE = "duplicate"


class DebitResult(BaseModel):
    """Successful debit; DUPLICATE means the job had already been settled."""

    organization_id: str
    job_id: UUID
    batch_id: Optional[UUID] = None
    outcome: DebitOutcome
    amount_in_usd_cents: int = 0
    balance_in_usd_cents: Optional[int] = None
