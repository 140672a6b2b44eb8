from fastapi import APIRouter
from gatepass.api.v1.endpoints import passes, notifications, notification_websocket, users, health

api_router = APIRouter()

api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "campusgate-backend"}


api_router.include_router(passes.router, prefix="/passes", tags=["Gate Passes"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(notification_websocket.router, prefix="/notifications", tags=["Notifications WebSocket"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
