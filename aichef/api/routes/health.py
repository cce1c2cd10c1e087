"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> Dict[str, str]:
    """Liveness: the process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(request: Request) -> Dict[str, Any]:
    """
    Readiness for Cloud Run: the store and model clients have been wired.
    """
    ready = getattr(request.app.state, "context", None) is not None
    return {"status": "ready" if ready else "starting", "dependencies": {"context": ready}}
