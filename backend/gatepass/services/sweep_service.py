"""
Scheduled pass sweeps.

Each sweep is a batch query plus a reclassification and is safe to run
repeatedly: a pass that was already moved no longer matches the query,
and each reclassification is conditional on the status it was selected in,
so a check-in racing the sweep is never overwritten.
The Celery tasks in ``gatepass.modules.passes.tasks`` call these on the
beat schedule.
"""

import time
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gatepass.core.config import settings
from gatepass.core.logging_config import logger
from gatepass.core.types import utcnow
from gatepass.models.gate_pass import GatePass, PassStatus, AWAITING_DECISION
from gatepass.models.notification import NotificationType
from gatepass.models.user import UserRole
from gatepass.services.notification_rooms import mentor_room
from gatepass.services.notification_service import NotificationService, NotificationPublisher
from gatepass.services.pass_service import transition_pass


UNUSED_STATUSES = (PassStatus.PENDING_MENTOR, PassStatus.PENDING_HOD, PassStatus.APPROVED)


def _student_name(gate_pass: GatePass) -> str:
    return gate_pass.student.full_name if gate_pass.student else "A student"


class PassSweeper:
    """Runs the time-driven pass jobs"""

    def __init__(
        self,
        db: AsyncSession,
        publisher: Optional[NotificationPublisher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.notifications = NotificationService(db, publisher)
        self.clock = clock

    async def _select(self, *conditions) -> List[GatePass]:
        result = await self.db.execute(
            select(GatePass)
            .options(selectinload(GatePass.student))
            .where(and_(*conditions))
            .order_by(GatePass.created_at)
        )
        return list(result.scalars().all())

    # =====================================================
    # REMINDERS
    # =====================================================

    async def send_pending_reminders(self, now: Optional[datetime] = None) -> int:
        """Remind approvers about passes that have waited too long"""
        started = time.perf_counter()
        now = now or self.clock()
        cutoff = now - timedelta(minutes=settings.REMINDER_AFTER_MINUTES)

        passes = await self._select(
            GatePass.status.in_(AWAITING_DECISION),
            GatePass.created_at <= cutoff,
        )

        for gate_pass in passes:
            pass_type = gate_pass.pass_type.value
            data = {"pass_id": str(gate_pass.id), "action": "reminder"}

            if gate_pass.status == PassStatus.PENDING_MENTOR:
                if not gate_pass.mentor_id:
                    logger.warning(f"Pass {gate_pass.id} awaits a mentor but has none assigned")
                    continue
                await self.notifications.create_notification(
                    str(gate_pass.mentor_id),
                    "Pending Pass Approval",
                    f"{_student_name(gate_pass)}'s {pass_type} pass is still pending your approval",
                    type=NotificationType.WARNING,
                    data=data,
                    room=mentor_room(str(gate_pass.mentor_id)),
                )
            else:
                await self.notifications.notify_role(
                    UserRole.HOD,
                    "Pending Pass Approval",
                    f"A {pass_type} pass is still pending your approval",
                    type=NotificationType.WARNING,
                    data=data,
                    department=gate_pass.department,
                )

        logger.log_sweep("pass-reminders", len(passes), (time.perf_counter() - started) * 1000)
        return len(passes)

    # =====================================================
    # RECLASSIFICATION
    # =====================================================

    async def mark_overdue_passes(self, now: Optional[datetime] = None) -> int:
        """Checked-out passes past their return time become overdue"""
        started = time.perf_counter()
        now = now or self.clock()

        passes = await self._select(
            GatePass.status == PassStatus.ACTIVE,
            GatePass.return_time < now,
            GatePass.actual_return_time.is_(None),
        )
        moved = []
        for gate_pass in passes:
            values = {"status": PassStatus.OVERDUE, "updated_at": now}
            if await transition_pass(self.db, str(gate_pass.id), PassStatus.ACTIVE, values):
                moved.append(gate_pass)
        await self.db.commit()

        for gate_pass in moved:
            pass_id = str(gate_pass.id)
            pass_type = gate_pass.pass_type.value
            logger.log_pass_transition(pass_id, PassStatus.ACTIVE.value, PassStatus.OVERDUE.value, job="overdue-sweep")

            await self.notifications.create_notification(
                str(gate_pass.student_id),
                "Pass Overdue",
                f"Your {pass_type} pass is overdue. Please return immediately.",
                type=NotificationType.ERROR,
                data={"pass_id": pass_id, "action": "overdue"},
            )
            if gate_pass.mentor_id:
                await self.notifications.create_notification(
                    str(gate_pass.mentor_id),
                    "Student Overdue",
                    f"{_student_name(gate_pass)} has not returned on a {pass_type} pass",
                    type=NotificationType.WARNING,
                    data={"pass_id": pass_id, "action": "overdue"},
                )

        logger.log_sweep("overdue-sweep", len(moved), (time.perf_counter() - started) * 1000)
        return len(moved)

    async def expire_unused_passes(self, now: Optional[datetime] = None) -> int:
        """Passes never used before their return time become expired"""
        started = time.perf_counter()
        now = now or self.clock()

        passes = await self._select(
            GatePass.status.in_(UNUSED_STATUSES),
            GatePass.return_time < now,
        )
        moved = []
        for gate_pass in passes:
            values = {"status": PassStatus.EXPIRED, "updated_at": now}
            if await transition_pass(self.db, str(gate_pass.id), gate_pass.status, values):
                moved.append(gate_pass)
        await self.db.commit()

        for gate_pass in moved:
            pass_id = str(gate_pass.id)
            logger.log_pass_transition(pass_id, gate_pass.status.value, PassStatus.EXPIRED.value, job="expired-pass-cleanup")
            await self.notifications.create_notification(
                str(gate_pass.student_id),
                "Pass Expired",
                f"Your {gate_pass.pass_type.value} pass expired without being used",
                type=NotificationType.INFO,
                data={"pass_id": pass_id, "action": "expired"},
            )

        logger.log_sweep("expired-pass-cleanup", len(moved), (time.perf_counter() - started) * 1000)
        return len(moved)

    # =====================================================
    # ALERTS
    # =====================================================

    async def alert_security_overdue(self, now: Optional[datetime] = None) -> int:
        """Alert security when passes became overdue within the alert window"""
        started = time.perf_counter()
        now = now or self.clock()
        window_start = now - timedelta(minutes=settings.OVERDUE_ALERT_WINDOW_MINUTES)

        result = await self.db.execute(
            select(func.count(GatePass.id)).where(
                and_(
                    GatePass.status == PassStatus.OVERDUE,
                    GatePass.updated_at >= window_start,
                )
            )
        )
        count = result.scalar() or 0

        if count > 0:
            await self.notifications.send_emergency_notification(
                "Overdue Passes Alert",
                f"{count} passes are currently overdue. Immediate action required.",
                role=UserRole.SECURITY,
                data={"overdue_count": count},
            )

        logger.log_sweep("overdue-notifications", count, (time.perf_counter() - started) * 1000)
        return count
