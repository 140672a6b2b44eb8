"""
Notification Service Layer
Persists notifications and pushes them to real-time rooms
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple
from sqlalchemy import select, func, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.exceptions import NotificationNotFoundError
from gatepass.core.logging_config import logger
from gatepass.core.types import utcnow
from gatepass.models.notification import Notification, NotificationType
from gatepass.models.user import User, UserRole
from gatepass.services.notification_rooms import (
    notification_room_manager, user_room, hod_room, role_room,
)
from gatepass.utils.pagination import paginate


class NotificationPublisher(Protocol):
    async def publish(self, room: str, payload: Dict[str, Any]) -> int:
        ...


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    """Payload pushed over the WebSocket"""
    return {
        "id": str(notification.id),
        "title": notification.title,
        "message": notification.message,
        "type": notification.type.value,
        "data": notification.data or {},
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


class NotificationService:
    """Service for creating, pushing and reading notifications"""

    def __init__(self, db: AsyncSession, publisher: Optional[NotificationPublisher] = None):
        self.db = db
        self.publisher = publisher or notification_room_manager

    # =====================================================
    # DISPATCH
    # =====================================================

    async def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        data: Optional[Dict[str, Any]] = None,
        room: Optional[str] = None,
    ) -> Notification:
        """
        Persist a notification for one user and push it to their room.

        ``room`` overrides the push target, e.g. the mentor room for
        approval requests.
        """
        notification = Notification(
            user_id=str(user_id),
            title=title,
            message=message,
            type=type,
            data=data or {},
            created_at=utcnow(),
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)

        await self.publisher.publish(room or user_room(str(user_id)), serialize_notification(notification))
        return notification

    async def notify_role(
        self,
        role: UserRole,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        data: Optional[Dict[str, Any]] = None,
        department: Optional[str] = None,
    ) -> List[Notification]:
        """
        Persist a notification for every active user of a role and broadcast
        it once to the role's room (the HOD room of the department when one
        is given).
        """
        query = select(User).where(and_(User.role == role, User.is_active == True))
        if department:
            query = query.where(User.department == department)
        result = await self.db.execute(query)
        recipients = result.scalars().all()

        now = utcnow()
        notifications = [
            Notification(
                user_id=str(user.id),
                title=title,
                message=message,
                type=type,
                data=data or {},
                created_at=now,
            )
            for user in recipients
        ]
        self.db.add_all(notifications)
        await self.db.commit()

        if role == UserRole.HOD and department:
            room = hod_room(department)
        else:
            room = role_room(role.value)

        payload = {
            "title": title,
            "message": message,
            "type": type.value,
            "data": data or {},
            "created_at": now.isoformat(),
        }
        await self.publisher.publish(room, payload)

        logger.info(f"Notified {len(notifications)} {role.value} users via {room}: {title}")
        return notifications

    async def send_emergency_notification(
        self,
        title: str,
        message: str,
        role: UserRole = UserRole.SECURITY,
        data: Optional[Dict[str, Any]] = None,
    ) -> List[Notification]:
        """Broadcast an urgent alert to everyone holding a role"""
        logger.warning(f"Emergency notification to {role.value}: {title}")
        return await self.notify_role(
            role,
            title,
            message,
            type=NotificationType.ERROR,
            data={"action": "emergency", **(data or {})},
        )

    # =====================================================
    # INBOX
    # =====================================================

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Notification], Dict[str, int], int]:
        """Return (notifications, pagination, unread_count) newest first"""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)

        notifications, pagination = await paginate(
            self.db, query.order_by(Notification.created_at.desc()), page, limit
        )
        unread_count = await self.unread_count(user_id)
        return notifications, pagination, unread_count

    async def unread_count(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                and_(Notification.user_id == user_id, Notification.is_read == False)
            )
        )
        return result.scalar() or 0

    async def _get_owned(self, user_id: str, notification_id: str) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                and_(Notification.id == notification_id, Notification.user_id == user_id)
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotificationNotFoundError(notification_id)
        return notification

    async def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = await self._get_owned(user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.db.commit()
            await self.db.refresh(notification)
        return notification

    async def mark_all_read(self, user_id: str) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(and_(Notification.user_id == user_id, Notification.is_read == False))
            .values(is_read=True, read_at=utcnow())
        )
        await self.db.commit()
        return result.rowcount or 0

    async def delete(self, user_id: str, notification_id: str) -> None:
        notification = await self._get_owned(user_id, notification_id)
        await self.db.delete(notification)
        await self.db.commit()
