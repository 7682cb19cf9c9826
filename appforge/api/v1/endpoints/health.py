from fastapi import APIRouter, Request

from appforge.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request):
    """Liveness check"""
    manager = getattr(request.app.state, "session_manager", None)
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "open_sessions": len(manager.list_sessions()) if manager is not None else 0
    }
