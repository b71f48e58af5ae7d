"""Health check endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_session
from ..errors import ValidationError
from ..services.config_loader import load_report_thresholds

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(session: AsyncSession = Depends(get_session)) -> dict:
    """Check database connectivity and the thresholds file."""
    checks = {
        "database": "connected",
        "thresholds": "loaded",
        "notifications": "configured" if settings.notifications_configured else "disabled",
    }
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = str(e)
    try:
        load_report_thresholds(settings.thresholds_file)
    except ValidationError as e:
        checks["thresholds"] = str(e)

    ready = checks["database"] == "connected" and checks["thresholds"] == "loaded"
    return {"status": "ready" if ready else "not ready", **checks}
