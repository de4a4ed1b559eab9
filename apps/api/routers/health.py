"""
Health check endpoints.
"""

from fastapi import APIRouter
from sqlalchemy import text
import redis.asyncio as redis

from config import settings, validate_security_settings
from services.api_response import api_error_response, api_response

router = APIRouter()


@router.get("/")
async def health_check():
    """
    Health check endpoint.
    Reports database, redis and media store status in the success envelope.
    """
    health_status = {
        "status": "OK",
        "database": "unknown",
        "redis": "unknown",
        "mediaStore": "configured" if settings.CLOUDINARY_CLOUD_NAME else "missing",
    }

    # Check database connection
    try:
        from database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    # Redis only backs rate limits, so it does not degrade the service
    try:
        r = redis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"

    return api_response(health_status, "Health check passed.")


@router.get("/ready")
async def readiness_check():
    """Ready once token secrets are safe and the media store is configured."""
    missing = [
        name
        for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
        if not getattr(settings, name)
    ]
    try:
        validate_security_settings()
    except ValueError as exc:
        missing.append(str(exc))

    if missing:
        return api_error_response(503, "Service is not ready.", missing)
    return api_response({"ready": True}, "Ready.")


@router.get("/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return api_response({"alive": True}, "Alive.")
