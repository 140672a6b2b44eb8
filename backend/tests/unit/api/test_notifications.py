"""
Unit Tests for Notification API Endpoints
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.models.notification import Notification, NotificationType


API = '/api/v1/notifications'


async def add_notification(db: AsyncSession, user, title: str = 'Pass Approved', is_read: bool = False) -> Notification:
    notification = Notification(
        user_id=user.id,
        title=title,
        message=f'{title} message',
        type=NotificationType.INFO,
        data={'action': 'test'},
        is_read=is_read,
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification


class TestInbox:

    async def test_list_with_unread_count(self, client: AsyncClient, db_session, student, student_headers):
        await add_notification(db_session, student, 'One')
        await add_notification(db_session, student, 'Two', is_read=True)

        response = await client.get(API, headers=student_headers)

        assert response.status_code == 200
        body = response.json()
        assert body['total'] == 2
        assert body['unread_count'] == 1
        assert {n['title'] for n in body['notifications']} == {'One', 'Two'}

    async def test_unread_only(self, client: AsyncClient, db_session, student, student_headers):
        await add_notification(db_session, student, 'One')
        await add_notification(db_session, student, 'Two', is_read=True)

        response = await client.get(API, params={'unread_only': True}, headers=student_headers)

        assert [n['title'] for n in response.json()['notifications']] == ['One']

    async def test_paged_listing_reports_page_count(self, client: AsyncClient, db_session, student, student_headers):
        for title in ('One', 'Two', 'Three'):
            await add_notification(db_session, student, title)

        response = await client.get(API, params={'page': 2, 'limit': 2}, headers=student_headers)

        body = response.json()
        assert body['total'] == 3
        assert body['page'] == 2
        assert body['limit'] == 2
        assert body['pages'] == 2
        assert len(body['notifications']) == 1

    async def test_other_users_notifications_hidden(self, client: AsyncClient, db_session, mentor, student_headers):
        await add_notification(db_session, mentor, 'For mentor')

        response = await client.get(API, headers=student_headers)

        assert response.json()['total'] == 0


class TestReadState:

    async def test_mark_read(self, client: AsyncClient, db_session, student, student_headers):
        notification = await add_notification(db_session, student)

        response = await client.patch(f'{API}/{notification.id}/read', headers=student_headers)

        assert response.status_code == 200
        assert response.json()['is_read'] is True
        assert response.json()['read_at'] is not None

    async def test_mark_read_of_other_user_is_not_found(self, client: AsyncClient, db_session, mentor, student_headers):
        notification = await add_notification(db_session, mentor)

        response = await client.patch(f'{API}/{notification.id}/read', headers=student_headers)

        assert response.status_code == 404
        assert response.json()['error']['code'] == 'NOTIFICATION_NOT_FOUND'

    async def test_mark_all_read(self, client: AsyncClient, db_session, student, student_headers):
        await add_notification(db_session, student, 'One')
        await add_notification(db_session, student, 'Two')

        response = await client.patch(f'{API}/read-all', headers=student_headers)

        assert response.status_code == 200
        assert response.json() == {'success': True, 'updated': 2}

    async def test_delete(self, client: AsyncClient, db_session, student, student_headers):
        notification = await add_notification(db_session, student)

        response = await client.delete(f'{API}/{notification.id}', headers=student_headers)
        assert response.status_code == 200

        listing = await client.get(API, headers=student_headers)
        assert listing.json()['total'] == 0
