"""Ledger endpoints: balances, credit layers and direct debits."""

from typing import List

from fastapi import APIRouter, Path, status

from ledgerflow.api.deps import Inject
from ledgerflow.domains.ledger.protocols import LedgerProtocol
from ledgerflow.schemas.ledger import Balance, CreditCreate, CreditLayer, DebitRequest, DebitResult

router = APIRouter()

_ORGANIZATION_ID = Path(..., min_length=1, max_length=255)


@router.get("/{organization_id}/balance", response_model=Balance, summary="Get Balance")
async def get_balance(
    organization_id: str = _ORGANIZATION_ID,
    ledger: LedgerProtocol = Inject(LedgerProtocol),
) -> Balance:
    """Current balance of an organization; 404 when it has no account."""
    return await ledger.get_balance(organization_id)


@router.get(
    "/{organization_id}/credits", response_model=List[CreditLayer], summary="List Credit Layers"
)
async def list_credits(
    organization_id: str = _ORGANIZATION_ID,
    ledger: LedgerProtocol = Inject(LedgerProtocol),
) -> List[CreditLayer]:
    """Every credit layer of an organization, oldest first."""
    return await ledger.list_credit_layers(organization_id)


@router.post(
    "/{organization_id}/credits",
    response_model=CreditLayer,
    status_code=status.HTTP_201_CREATED,
    summary="Add Credit",
)
async def add_credit(
    credit: CreditCreate,
    organization_id: str = _ORGANIZATION_ID,
    ledger: LedgerProtocol = Inject(LedgerProtocol),
) -> CreditLayer:
    """Grant a recharge or promotional credit layer."""
    return await ledger.credit(
        organization_id,
        credit.amount_in_usd_cents,
        type=credit.type,
        description=credit.description,
    )


@router.post("/debits", response_model=DebitResult, summary="Debit")
async def debit(
    request: DebitRequest,
    ledger: LedgerProtocol = Inject(LedgerProtocol),
) -> DebitResult:
    """Debit one billing job; 402 when the balance cannot cover it."""
    return await ledger.debit(
        organization_id=request.organization_id,
        job_id=request.job_id,
        batch_id=request.batch_id,
        total_cost_in_units=request.total_cost_in_units,
    )
