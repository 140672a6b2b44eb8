"""
Unit Tests for the scheduled pass sweeps
Tests for: reminders, overdue detection, expiry, security alerts
"""
import pytest
from datetime import timedelta
from sqlalchemy import select

from gatepass.core.config import settings
from gatepass.core.types import utcnow
from gatepass.models.gate_pass import GatePass, PassStatus
from gatepass.models.notification import Notification, NotificationType
from gatepass.services.sweep_service import PassSweeper


async def reload(db, gate_pass) -> GatePass:
    result = await db.execute(
        select(GatePass).where(GatePass.id == gate_pass.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestPendingReminders:
    """Test approver reminders"""

    async def test_old_pending_mentor_pass_reminds_mentor(self, db_session, student, mentor, make_pass, publisher):
        now = utcnow()
        await make_pass(student, created_at=now - timedelta(minutes=settings.REMINDER_AFTER_MINUTES + 5))
        sweeper = PassSweeper(db_session, publisher)

        count = await sweeper.send_pending_reminders(now)

        assert count == 1
        room, payload = publisher.published[0]
        assert room == f'mentor_{mentor.id}'
        assert payload['title'] == 'Pending Pass Approval'
        assert payload['type'] == 'warning'
        assert payload['data']['action'] == 'reminder'

    async def test_pending_hod_pass_reminds_department_room(self, db_session, student, hod, make_pass, publisher):
        now = utcnow()
        await make_pass(student, PassStatus.PENDING_HOD, created_at=now - timedelta(hours=3))
        sweeper = PassSweeper(db_session, publisher)

        count = await sweeper.send_pending_reminders(now)

        assert count == 1
        assert publisher.rooms() == [f'hod_{student.department}']
        result = await db_session.execute(select(Notification).where(Notification.user_id == hod.id))
        assert len(result.scalars().all()) == 1

    async def test_recent_pass_not_reminded(self, db_session, student, make_pass, publisher):
        now = utcnow()
        await make_pass(student, created_at=now - timedelta(minutes=10))
        sweeper = PassSweeper(db_session, publisher)

        assert await sweeper.send_pending_reminders(now) == 0
        assert publisher.published == []


class TestOverdueSweep:
    """Test active -> overdue reclassification"""

    async def test_active_pass_past_return_becomes_overdue(self, db_session, student, mentor, make_pass, publisher):
        now = utcnow()
        gate_pass = await make_pass(
            student, PassStatus.ACTIVE, qr_token='sweep-active-1',
            exit_time=now - timedelta(hours=4), return_time=now - timedelta(minutes=1),
        )
        sweeper = PassSweeper(db_session, publisher)

        count = await sweeper.mark_overdue_passes(now)

        assert count == 1
        assert (await reload(db_session, gate_pass)).status == PassStatus.OVERDUE
        assert publisher.titles(f'user_{student.id}') == ['Pass Overdue']
        assert publisher.titles(f'user_{mentor.id}') == ['Student Overdue']

    async def test_sweep_is_idempotent(self, db_session, student, make_pass, publisher):
        now = utcnow()
        await make_pass(
            student, PassStatus.ACTIVE, qr_token='sweep-active-2',
            exit_time=now - timedelta(hours=4), return_time=now - timedelta(minutes=1),
        )
        sweeper = PassSweeper(db_session, publisher)

        assert await sweeper.mark_overdue_passes(now) == 1
        assert await sweeper.mark_overdue_passes(now) == 0

    async def test_active_pass_within_window_untouched(self, db_session, student, make_pass, publisher):
        now = utcnow()
        gate_pass = await make_pass(student, PassStatus.ACTIVE, qr_token='sweep-active-3')
        sweeper = PassSweeper(db_session, publisher)

        assert await sweeper.mark_overdue_passes(now) == 0
        assert (await reload(db_session, gate_pass)).status == PassStatus.ACTIVE

    async def test_unused_approved_pass_is_not_overdue(self, db_session, student, make_pass, publisher):
        """Passes never checked out expire instead of going overdue"""
        now = utcnow()
        await make_pass(
            student, PassStatus.APPROVED, qr_token='sweep-approved-1',
            exit_time=now - timedelta(hours=4), return_time=now - timedelta(hours=1),
        )
        sweeper = PassSweeper(db_session, publisher)

        assert await sweeper.mark_overdue_passes(now) == 0


class TestExpirySweep:
    """Test unused pass expiry"""

    @pytest.mark.parametrize('status', [PassStatus.PENDING_MENTOR, PassStatus.PENDING_HOD, PassStatus.APPROVED])
    async def test_unused_pass_past_return_expires(self, db_session, student, make_pass, publisher, status):
        now = utcnow()
        gate_pass = await make_pass(
            student, status,
            exit_time=now - timedelta(hours=5), return_time=now - timedelta(hours=1),
        )
        sweeper = PassSweeper(db_session, publisher)

        count = await sweeper.expire_unused_passes(now)

        assert count == 1
        assert (await reload(db_session, gate_pass)).status == PassStatus.EXPIRED
        room, payload = publisher.published[0]
        assert room == f'user_{student.id}'
        assert payload['type'] == NotificationType.INFO.value

    async def test_active_and_future_passes_untouched(self, db_session, student, other_student, make_pass, publisher):
        now = utcnow()
        await make_pass(student, PassStatus.APPROVED, qr_token='sweep-future-1')
        await make_pass(
            other_student, PassStatus.ACTIVE, qr_token='sweep-active-4',
            exit_time=now - timedelta(hours=5), return_time=now - timedelta(hours=1),
        )
        sweeper = PassSweeper(db_session, publisher)

        assert await sweeper.expire_unused_passes(now) == 0


class TestOverdueAlert:
    """Test the security emergency alert"""

    async def test_recent_overdue_alerts_security(self, db_session, student, security_guard, make_pass, publisher):
        now = utcnow()
        await make_pass(student, PassStatus.OVERDUE, qr_token='alert-1', updated_at=now - timedelta(minutes=5))
        sweeper = PassSweeper(db_session, publisher)

        count = await sweeper.alert_security_overdue(now)

        assert count == 1
        room, payload = publisher.published[0]
        assert room == 'role_security'
        assert payload['title'] == 'Overdue Passes Alert'
        assert payload['type'] == 'error'
        assert payload['data']['action'] == 'emergency'
        result = await db_session.execute(select(Notification).where(Notification.user_id == security_guard.id))
        assert len(result.scalars().all()) == 1

    async def test_old_overdue_not_alerted_again(self, db_session, student, security_guard, make_pass, publisher):
        now = utcnow()
        await make_pass(
            student, PassStatus.OVERDUE, qr_token='alert-2',
            updated_at=now - timedelta(minutes=settings.OVERDUE_ALERT_WINDOW_MINUTES + 10),
        )
        sweeper = PassSweeper(db_session, publisher)

        assert await sweeper.alert_security_overdue(now) == 0
        assert publisher.published == []
