# Re-export all models for convenient imports
from gatepass.models.user import User, UserRole
from gatepass.models.gate_pass import GatePass, PassStatus, PassType, ApprovalDecision
from gatepass.models.notification import Notification, NotificationType

__all__ = [
    # User
    "User",
    "UserRole",
    # Gate pass
    "GatePass",
    "PassStatus",
    "PassType",
    "ApprovalDecision",
    # Notifications
    "Notification",
    "NotificationType",
]
