from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
import enum

from gatepass.core.database import Base
from gatepass.core.types import GUID, generate_uuid, utcnow


class NotificationType(str, enum.Enum):
    """Severity shown to the user"""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(Base):
    """Persisted notification, pushed to the user's room when created"""
    __tablename__ = "notifications"

    __table_args__ = (
        Index('ix_notifications_user_id', 'user_id'),
        Index('ix_notifications_user_read', 'user_id', 'is_read'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SQLEnum(NotificationType), default=NotificationType.INFO, nullable=False)
    data = Column(JSON, nullable=True)  # {"pass_id": "...", "action": "reminder"}

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")

    def __repr__(self):
        return f"<Notification {self.title} -> {self.user_id}>"
