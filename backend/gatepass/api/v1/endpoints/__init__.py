# API endpoints
from . import passes, notifications, notification_websocket, users, health

__all__ = ["passes", "notifications", "notification_websocket", "users", "health"]
