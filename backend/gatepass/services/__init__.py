from gatepass.services.notification_rooms import NotificationRoomManager, notification_room_manager
from gatepass.services.notification_service import NotificationService
from gatepass.services.notification_relay import NotificationRelay, RedisNotificationPublisher, notification_relay
from gatepass.services.pass_service import PassWorkflowService
from gatepass.services.sweep_service import PassSweeper

__all__ = [
    # Workflow
    "PassWorkflowService",
    "PassSweeper",
    # Notifications
    "NotificationService",
    "NotificationRoomManager",
    "notification_room_manager",
    "NotificationRelay",
    "RedisNotificationPublisher",
    "notification_relay",
]
