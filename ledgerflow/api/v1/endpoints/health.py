"""Liveness endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("", summary="Health")
async def health() -> dict[str, str]:
    """The process is up."""
    return {"status": "ok"}
