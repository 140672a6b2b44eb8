"""
Notifications API

The user's notification inbox. Live delivery happens over the WebSocket
in ``notification_websocket``.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.database import get_db
from gatepass.models.user import User
from gatepass.modules.auth.dependencies import get_current_user
from gatepass.schemas.notification import NotificationResponse, NotificationListResponse
from gatepass.services.notification_service import NotificationService


router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    notifications, pagination, unread_count = await NotificationService(db).list_for_user(
        str(current_user.id), unread_only=unread_only, page=page, limit=limit
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread_count,
        total=pagination["total"],
        page=pagination["page"],
        limit=pagination["limit"],
        pages=pagination["pages"],
    )


@router.patch("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    updated = await NotificationService(db).mark_all_read(str(current_user.id))
    return {"success": True, "updated": updated}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    notification = await NotificationService(db).mark_read(str(current_user.id), notification_id)
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await NotificationService(db).delete(str(current_user.id), notification_id)
    return {"success": True, "message": "Notification deleted"}
