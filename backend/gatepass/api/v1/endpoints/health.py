"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database and Redis reachable)
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from typing import Dict, Any
import time

from gatepass.core.config import settings
from gatepass.core.logging_config import logger
from gatepass.services.notification_rooms import notification_room_manager


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity"""
    start = time.time()
    try:
        from gatepass.core.database import get_session_local
        from sqlalchemy import text

        async with get_session_local()() as session:
            await session.execute(text("SELECT 1"))

        return {"status": "healthy", "latency_ms": round((time.time() - start) * 1000, 2)}
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
        }


async def check_redis() -> Dict[str, Any]:
    """Check Redis connectivity (used by the notification relay)"""
    if not settings.NOTIFICATION_RELAY_ENABLED:
        return {"status": "skipped"}

    start = time.time()
    try:
        import redis.asyncio as redis

        client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        try:
            await client.ping()
        finally:
            await client.aclose()

        return {"status": "healthy", "latency_ms": round((time.time() - start) * 1000, 2)}
    except Exception as e:
        logger.error(f"[HealthCheck] Redis check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
        }


@router.get("/live")
async def liveness():
    return {"status": "alive", "app_name": settings.APP_NAME}


@router.get("/ready")
async def readiness():
    """Ready when the database and (if enabled) Redis answer"""
    checks = {
        "database": await check_database(),
        "redis": await check_redis(),
    }
    ready = all(c["status"] in ("healthy", "skipped") for c in checks.values())
    body = {
        "status": "ready" if ready else "not_ready",
        "checks": checks,
        "websocket_users_online": len(notification_room_manager.online_user_ids()),
    }
    return JSONResponse(status_code=200 if ready else 503, content=body)
