"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe - checks the document store answers."""
    settings = request.app.state.settings
    store_ok = await request.app.state.store.ping()
    if not store_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if store_ok else "not_ready",
        "environment": settings.environment,
        "debug": settings.debug,
        "store": settings.store_backend,
    }


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """General health check endpoint."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
