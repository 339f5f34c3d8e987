"""Liveness and readiness endpoints."""
from typing import Any, Dict

from fastapi import APIRouter, Request

from src.server.settings import settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def liveness() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readiness(request: Request) -> Dict[str, Any]:
    """Report whether upstream URLs are configured and the session bootstrap finished.

    Returns:
        status ("ok" | "not_ready")와 항목별 checks
    """
    services = request.app.state.services
    checks = {
        "blog_api_url": bool(services.blog_client.base_url or settings.BLOG_API_URL),
        "auth_provider_url": bool(services.provider.base_url),
        "session_bootstrapped": not services.store.loading,
    }
    return {
        "status": "ok" if all(checks.values()) else "not_ready",
        "checks": checks,
    }
