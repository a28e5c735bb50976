"""
Health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from autowait import __version__
from autowait.config import settings
from autowait.scenarios import list_suites

router = APIRouter()


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - verifies suites are registered and targets configured.
    """
    checks = {
        "api": True,
        "suites_registered": bool(list_suites()),
        "ajax_demo_configured": bool(settings.ajax_demo_url),
        "form_layouts_configured": bool(settings.form_layouts_url),
    }

    all_ready = all(checks.values())

    return {
        "ready": all_ready,
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
