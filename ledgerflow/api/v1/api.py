"""API routes for the FastAPI application."""

from fastapi import APIRouter

from ledgerflow.api.v1.endpoints import billing_commands, health, ledger, usage_events

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(usage_events.router, prefix="/v1/usage-events", tags=["usage-events"])
api_router.include_router(ledger.router, prefix="/v1/ledger", tags=["ledger"])
api_router.include_router(
    billing_commands.router, prefix="/v1/internal/billing", tags=["internal"]
)
