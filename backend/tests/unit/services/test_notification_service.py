"""
Unit Tests for the Notification Service
"""
import pytest
from datetime import timedelta

from gatepass.core.exceptions import NotificationNotFoundError
from gatepass.core.types import utcnow
from gatepass.models.notification import Notification, NotificationType
from gatepass.models.user import UserRole
from gatepass.services.notification_service import NotificationService


class TestDispatch:
    """Test persisting and pushing notifications"""

    async def test_create_notification_persists_and_pushes(self, db_session, student, publisher):
        service = NotificationService(db_session, publisher)

        notification = await service.create_notification(
            student.id, 'Pass Approved', 'Your pass is approved',
            type=NotificationType.SUCCESS, data={'pass_id': 'abc', 'action': 'approved'},
        )

        assert notification.id is not None
        assert notification.is_read is False
        room, payload = publisher.published[0]
        assert room == f'user_{student.id}'
        assert payload['id'] == notification.id
        assert payload['type'] == 'success'
        assert payload['data'] == {'pass_id': 'abc', 'action': 'approved'}

    async def test_room_override(self, db_session, mentor, publisher):
        service = NotificationService(db_session, publisher)

        await service.create_notification(mentor.id, 'Pass Approval Request', 'x', room=f'mentor_{mentor.id}')

        assert publisher.rooms() == [f'mentor_{mentor.id}']

    async def test_notify_role_persists_per_user_and_pushes_once(self, db_session, security_guard, make_user, publisher):
        await make_user(UserRole.SECURITY, department=None)
        await make_user(UserRole.SECURITY, department=None, is_active=False)
        service = NotificationService(db_session, publisher)

        notifications = await service.notify_role(UserRole.SECURITY, 'Gate', 'Check the east gate')

        assert len(notifications) == 2
        assert publisher.rooms() == ['role_security']

    async def test_notify_hod_role_uses_department_room(self, db_session, hod, other_hod, publisher):
        service = NotificationService(db_session, publisher)

        notifications = await service.notify_role(
            UserRole.HOD, 'Pass Approval Request', 'Pending', department=hod.department
        )

        assert [n.user_id for n in notifications] == [hod.id]
        assert publisher.rooms() == [f'hod_{hod.department}']

    async def test_emergency_notification(self, db_session, security_guard, publisher):
        service = NotificationService(db_session, publisher)

        notifications = await service.send_emergency_notification('Overdue Passes Alert', '2 passes are overdue')

        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.ERROR
        assert notifications[0].data['action'] == 'emergency'
        assert publisher.rooms() == ['role_security']


class TestInbox:
    """Test listing and read state"""

    async def _seed(self, db_session, user, count):
        now = utcnow()
        for i in range(count):
            db_session.add(Notification(
                user_id=user.id,
                title=f'Notice {i}',
                message='Body',
                type=NotificationType.INFO,
                data={},
                created_at=now - timedelta(minutes=i),
            ))
        await db_session.commit()

    async def test_list_newest_first_with_unread_count(self, db_session, student, publisher):
        await self._seed(db_session, student, 3)
        service = NotificationService(db_session, publisher)

        notifications, pagination, unread = await service.list_for_user(student.id)

        assert [n.title for n in notifications] == ['Notice 0', 'Notice 1', 'Notice 2']
        assert pagination['total'] == 3
        assert unread == 3

    async def test_mark_read_and_unread_filter(self, db_session, student, publisher):
        await self._seed(db_session, student, 2)
        service = NotificationService(db_session, publisher)
        notifications, _, _ = await service.list_for_user(student.id)

        read = await service.mark_read(student.id, notifications[0].id)
        unread_only, pagination, unread = await service.list_for_user(student.id, unread_only=True)

        assert read.is_read is True
        assert read.read_at is not None
        assert [n.id for n in unread_only] == [notifications[1].id]
        assert pagination['total'] == 1
        assert unread == 1

    async def test_mark_all_read(self, db_session, student, other_student, publisher):
        await self._seed(db_session, student, 3)
        await self._seed(db_session, other_student, 1)
        service = NotificationService(db_session, publisher)

        updated = await service.mark_all_read(student.id)

        assert updated == 3
        assert await service.unread_count(student.id) == 0
        assert await service.unread_count(other_student.id) == 1

    async def test_cannot_touch_another_users_notification(self, db_session, student, other_student, publisher):
        await self._seed(db_session, student, 1)
        service = NotificationService(db_session, publisher)
        notifications, _, _ = await service.list_for_user(student.id)

        with pytest.raises(NotificationNotFoundError):
            await service.mark_read(other_student.id, notifications[0].id)
        with pytest.raises(NotificationNotFoundError):
            await service.delete(other_student.id, notifications[0].id)

    async def test_delete(self, db_session, student, publisher):
        await self._seed(db_session, student, 1)
        service = NotificationService(db_session, publisher)
        notifications, _, _ = await service.list_for_user(student.id)

        await service.delete(student.id, notifications[0].id)

        remaining, pagination, _ = await service.list_for_user(student.id)
        assert remaining == []
        assert pagination['total'] == 0
