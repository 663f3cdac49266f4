"""Internal billing command endpoint.

Not for public exposure: it lets operators claim, roll back, finalize and
republish batches by hand. The body is one variant of the command union,
selected by its ``method``; an unknown method is a 422.
"""

from typing import Any

from fastapi import APIRouter, Body
from pydantic import TypeAdapter

from ledgerflow.api.deps import Inject
from ledgerflow.domains.billing.protocols import BillingCommandHandlerProtocol
from ledgerflow.schemas.billing_commands import BillingCommand, BillingCommandResponse

router = APIRouter()

_command_adapter: TypeAdapter[BillingCommand] = TypeAdapter(BillingCommand)


@router.post("/commands", response_model=BillingCommandResponse, summary="Run Billing Command")
async def run_command(
    payload: dict[str, Any] = Body(...),
    handler: BillingCommandHandlerProtocol = Inject(BillingCommandHandlerProtocol),
) -> BillingCommandResponse:
    """Validate the command and dispatch it."""
    command = _command_adapter.validate_python(payload)
    return await handler.handle(command)
