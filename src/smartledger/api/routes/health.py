"""Health check endpoints."""

from fastapi import APIRouter

from smartledger.config import get_settings
from smartledger.oracle.factory import get_oracle

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "smartledger"}


@router.get("/health/detailed")
async def detailed_health():
    """Detailed health check with configuration and last oracle read."""
    settings = get_settings()
    last = get_oracle().last_price
    return {
        "status": "healthy",
        "service": "smartledger",
        "version": "0.1.0",
        "config": settings.get_safe_dict(),
        "last_price": (
            {"price": str(last.price), "round_id": last.round_id, "updated_at": last.updated_at}
            if last
            else None
        ),
    }
