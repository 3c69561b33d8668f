"""Liveness endpoint."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health():
    """Report that the service is up."""
    return {"status": "ok"}
