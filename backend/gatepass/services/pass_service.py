"""
Gate Pass Workflow Service

Owns every status change of a gate pass outside the scheduled sweeps:

    pending_mentor -> pending_hod -> approved -> active -> completed
          |               |             |          |
       rejected        rejected     cancelled   overdue -> completed
       cancelled       cancelled

Each transition is a conditional UPDATE on the status the caller saw, so
of two concurrent actors only one wins; the other gets a conflict. The
transition is committed first and notifications are dispatched after, so a
failed push never rolls back a decision.
"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gatepass.core.config import settings
from gatepass.core.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    OpenPassExistsError,
    PassNotFoundError,
    QRCodeNotFoundError,
    ValidationError,
)
from gatepass.core.logging_config import logger
from gatepass.core.types import utcnow
from gatepass.models.gate_pass import (
    GatePass, PassStatus, ApprovalDecision,
    OPEN_STATUSES, CANCELLABLE_STATUSES,
)
from gatepass.models.notification import NotificationType
from gatepass.models.user import User, UserRole
from gatepass.schemas.gate_pass import GatePassCreate, DecisionEnum, GateAction
from gatepass.services.notification_rooms import mentor_room
from gatepass.services.notification_service import NotificationService, NotificationPublisher
from gatepass.utils.pagination import paginate


GATE_ROLES = (UserRole.SECURITY, UserRole.ADMIN)
STATS_ROLES = (UserRole.MENTOR, UserRole.HOD, UserRole.SECURITY, UserRole.ADMIN)


def issue_qr_token() -> str:
    """Opaque, unguessable token encoded in the pass QR code"""
    return secrets.token_urlsafe(settings.QR_TOKEN_BYTES)


def next_gate_action(gate_pass: GatePass, now: datetime) -> GateAction:
    """What the gate may do next with a scanned pass"""
    if gate_pass.status == PassStatus.APPROVED and gate_pass.return_time > now:
        return GateAction.CHECKOUT
    if gate_pass.status in (PassStatus.ACTIVE, PassStatus.OVERDUE):
        return GateAction.CHECKIN
    return GateAction.NONE


async def transition_pass(
    db: AsyncSession,
    pass_id: str,
    from_status: PassStatus,
    values: Dict[str, Any],
) -> bool:
    """
    Apply ``values`` only if the pass is still in ``from_status``.

    Returns False when another writer moved the pass first. Does not commit.
    """
    result = await db.execute(
        update(GatePass)
        .where(GatePass.id == pass_id, GatePass.status == from_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


class PassWorkflowService:
    """Service for requesting, approving and moving passes through the gate"""

    def __init__(
        self,
        db: AsyncSession,
        publisher: Optional[NotificationPublisher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.notifications = NotificationService(db, publisher)
        self.clock = clock

    # =====================================================
    # LOADING
    # =====================================================

    async def _load(self, pass_id: str) -> GatePass:
        result = await self.db.execute(
            select(GatePass)
            .options(selectinload(GatePass.student))
            .where(GatePass.id == pass_id)
            .execution_options(populate_existing=True)
        )
        gate_pass = result.scalar_one_or_none()
        if not gate_pass:
            raise PassNotFoundError(pass_id)
        return gate_pass

    async def _load_by_token(self, qr_token: str) -> GatePass:
        result = await self.db.execute(
            select(GatePass)
            .options(selectinload(GatePass.student))
            .where(GatePass.qr_token == qr_token)
            .execution_options(populate_existing=True)
        )
        gate_pass = result.scalar_one_or_none()
        if not gate_pass:
            raise QRCodeNotFoundError()
        return gate_pass

    async def _apply_transition(
        self,
        gate_pass: GatePass,
        action: str,
        values: Dict[str, Any],
        actor: User,
    ) -> GatePass:
        """Commit a status change from the status loaded in ``gate_pass``"""
        pass_id = str(gate_pass.id)
        actor_id = str(actor.id)
        from_status = gate_pass.status

        if not await transition_pass(self.db, pass_id, from_status, values):
            await self.db.rollback()
            current = await self._load(pass_id)
            logger.warning(
                f"Pass {pass_id} moved to {current.status.value} before {action} by {actor_id}",
                extra={"event_type": "transition_conflict", "pass_id": pass_id},
            )
            raise InvalidTransitionError(current.status.value, action)

        await self.db.commit()
        logger.log_pass_transition(pass_id, from_status.value, values["status"].value, actor_id=actor_id)
        return await self._load(pass_id)

    async def _open_pass_id(self, student_id: str) -> Optional[str]:
        result = await self.db.execute(
            select(GatePass.id).where(
                and_(GatePass.student_id == student_id, GatePass.status.in_(OPEN_STATUSES))
            ).limit(1)
        )
        return result.scalar_one_or_none()

    # =====================================================
    # CREATE / READ
    # =====================================================

    async def create_pass(self, student: User, data: GatePassCreate) -> GatePass:
        """Create a pass for a student and ask their mentor for approval"""
        if student.role != UserRole.STUDENT:
            raise AuthorizationError("Only students can request gate passes", required_role=UserRole.STUDENT.value)

        if not student.mentor_id:
            raise ValidationError("No mentor is assigned to you; contact your department", field="mentor_id")

        mentor = await self.db.get(User, str(student.mentor_id))
        if not mentor or not mentor.is_active or mentor.role != UserRole.MENTOR:
            raise ValidationError("Your assigned mentor cannot approve passes; contact your department", field="mentor_id")

        # the HOD step is routed by department
        if not student.department:
            raise ValidationError("No department is recorded for you; contact your department", field="department")

        now = self.clock()
        if data.exit_time < now:
            raise ValidationError("exit_time cannot be in the past", field="exit_time")
        if data.return_time - data.exit_time > timedelta(hours=settings.PASS_MAX_DURATION_HOURS):
            raise ValidationError(
                f"A pass cannot last longer than {settings.PASS_MAX_DURATION_HOURS} hours",
                field="return_time",
            )

        student_id = str(student.id)
        open_pass_id = await self._open_pass_id(student_id)
        if open_pass_id:
            raise OpenPassExistsError(str(open_pass_id))

        gate_pass = GatePass(
            student_id=str(student.id),
            mentor_id=str(student.mentor_id),
            department=student.department,
            pass_type=data.pass_type,
            reason=data.reason,
            destination=data.destination,
            exit_time=data.exit_time,
            return_time=data.return_time,
            emergency_contact=data.emergency_contact,
            additional_notes=data.additional_notes,
            status=PassStatus.PENDING_MENTOR,
            mentor_decision=ApprovalDecision.PENDING,
            hod_decision=ApprovalDecision.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.db.add(gate_pass)
        try:
            await self.db.commit()
        except IntegrityError:
            # a concurrent request opened a pass first (uq_gate_passes_open_per_student)
            await self.db.rollback()
            open_pass_id = await self._open_pass_id(student_id)
            if open_pass_id:
                raise OpenPassExistsError(str(open_pass_id))
            raise

        logger.info(
            f"Pass {gate_pass.id} requested by student {student.id}",
            extra={"event_type": "pass_created", "pass_id": str(gate_pass.id)},
        )

        await self.notifications.create_notification(
            str(student.mentor_id),
            "Pass Approval Request",
            f"{student.full_name} has requested a {gate_pass.pass_type.value} pass",
            type=NotificationType.INFO,
            data={"pass_id": str(gate_pass.id), "action": "approval_request"},
            room=mentor_room(str(student.mentor_id)),
        )
        return await self._load(str(gate_pass.id))

    def can_view(self, actor: User, gate_pass: GatePass) -> bool:
        if actor.role in GATE_ROLES:
            return True
        if actor.role == UserRole.STUDENT:
            return gate_pass.student_id == actor.id
        if actor.role == UserRole.MENTOR:
            return gate_pass.mentor_id == actor.id
        if actor.role == UserRole.HOD:
            return bool(actor.department) and gate_pass.department == actor.department
        return False

    async def get_pass(self, actor: User, pass_id: str) -> GatePass:
        gate_pass = await self._load(pass_id)
        if not self.can_view(actor, gate_pass):
            raise AuthorizationError("You do not have access to this pass")
        return gate_pass

    def _scope(self, actor: User, query):
        """Restrict a pass query to what the actor may see"""
        if actor.role == UserRole.STUDENT:
            return query.where(GatePass.student_id == actor.id)
        if actor.role == UserRole.MENTOR:
            return query.where(GatePass.mentor_id == actor.id)
        if actor.role == UserRole.HOD:
            return query.where(GatePass.department == actor.department)
        return query

    async def list_passes(
        self,
        actor: User,
        status: Optional[PassStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[GatePass], Dict[str, int]]:
        """Role-scoped, newest-first listing with pagination info"""
        query = self._scope(actor, select(GatePass))
        if status:
            query = query.where(GatePass.status == status)

        return await paginate(
            self.db,
            query.options(selectinload(GatePass.student)).order_by(GatePass.created_at.desc()),
            page,
            limit,
        )

    async def pass_stats(self, actor: User) -> Dict[str, int]:
        """Pass counts per status, scoped like the listing"""
        if actor.role not in STATS_ROLES:
            raise AuthorizationError("Pass statistics are not available to students")

        query = self._scope(
            actor,
            select(GatePass.status, func.count(GatePass.id)),
        ).group_by(GatePass.status)
        result = await self.db.execute(query)

        stats = {status.value: 0 for status in PassStatus}
        for status, count in result.all():
            stats[status.value] = count
        stats["total"] = sum(stats.values())
        return stats

    # =====================================================
    # APPROVAL CHAIN
    # =====================================================

    def _check_approver(self, actor: User, gate_pass: GatePass) -> UserRole:
        """Return the role whose decision the pass is waiting for"""
        if gate_pass.status == PassStatus.PENDING_MENTOR:
            required = UserRole.MENTOR
        elif gate_pass.status == PassStatus.PENDING_HOD:
            required = UserRole.HOD
        else:
            raise InvalidTransitionError(
                gate_pass.status.value,
                "decide",
                f"Pass is not awaiting a decision (status '{gate_pass.status.value}')",
            )

        if actor.role != required:
            raise AuthorizationError(
                f"This pass is waiting for {required.value} approval",
                required_role=required.value,
            )
        if required == UserRole.MENTOR and gate_pass.mentor_id != actor.id:
            raise AuthorizationError("Only the assigned mentor can decide on this pass", required_role=required.value)
        if required == UserRole.HOD and (not actor.department or actor.department != gate_pass.department):
            raise AuthorizationError("Only the HOD of the pass department can decide on this pass", required_role=required.value)
        return required

    async def decide(
        self,
        actor: User,
        pass_id: str,
        decision: DecisionEnum,
        comments: Optional[str] = None,
    ) -> GatePass:
        """Record the mentor or HOD decision on a pending pass"""
        gate_pass = await self._load(pass_id)
        step = self._check_approver(actor, gate_pass)

        now = self.clock()
        approved = decision == DecisionEnum.APPROVE
        step_decision = ApprovalDecision.APPROVED if approved else ApprovalDecision.REJECTED

        if step == UserRole.MENTOR:
            values = {
                "mentor_decision": step_decision,
                "mentor_comments": comments,
                "mentor_decided_at": now,
                "status": PassStatus.PENDING_HOD if approved else PassStatus.REJECTED,
            }
        else:
            values = {
                "hod_id": str(actor.id),
                "hod_decision": step_decision,
                "hod_comments": comments,
                "hod_decided_at": now,
                "status": PassStatus.APPROVED if approved else PassStatus.REJECTED,
            }
            if approved:
                values["qr_token"] = issue_qr_token()
        values["updated_at"] = now

        gate_pass = await self._apply_transition(gate_pass, "decide", values, actor)
        await self._notify_decision(gate_pass, step, approved, comments)
        return gate_pass

    async def _notify_decision(
        self,
        gate_pass: GatePass,
        step: UserRole,
        approved: bool,
        comments: Optional[str],
    ):
        pass_id = str(gate_pass.id)
        pass_type = gate_pass.pass_type.value
        student_id = str(gate_pass.student_id)

        if not approved:
            message = f"Your {pass_type} pass was rejected by the {step.value}"
            if comments:
                message += f": {comments}"
            await self.notifications.create_notification(
                student_id, "Pass Rejected", message,
                type=NotificationType.ERROR,
                data={"pass_id": pass_id, "action": "rejected"},
            )
            return

        if step == UserRole.MENTOR:
            await self.notifications.create_notification(
                student_id,
                "Pass Approved by Mentor",
                f"Your {pass_type} pass was approved by your mentor and is awaiting HOD approval",
                type=NotificationType.INFO,
                data={"pass_id": pass_id, "action": "mentor_approved"},
            )
            student_name = gate_pass.student.full_name if gate_pass.student else "A student"
            await self.notifications.notify_role(
                UserRole.HOD,
                "Pass Approval Request",
                f"{student_name}'s {pass_type} pass is awaiting your approval",
                type=NotificationType.INFO,
                data={"pass_id": pass_id, "action": "approval_request"},
                department=gate_pass.department,
            )
        else:
            await self.notifications.create_notification(
                student_id,
                "Pass Approved",
                f"Your {pass_type} pass has been approved. Show the QR code at the gate.",
                type=NotificationType.SUCCESS,
                data={"pass_id": pass_id, "action": "approved"},
            )

    async def cancel(self, actor: User, pass_id: str) -> GatePass:
        """Student withdraws their own pass before leaving"""
        gate_pass = await self._load(pass_id)
        if gate_pass.student_id != actor.id:
            raise AuthorizationError("Only the student who requested the pass can cancel it")
        if gate_pass.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(gate_pass.status.value, "cancel")

        now = self.clock()
        if gate_pass.exit_time <= now:
            raise InvalidTransitionError(
                gate_pass.status.value,
                "cancel",
                "A pass cannot be cancelled after its exit time",
            )

        return await self._apply_transition(
            gate_pass,
            "cancel",
            {"status": PassStatus.CANCELLED, "cancelled_at": now, "updated_at": now},
            actor,
        )

    # =====================================================
    # GATE
    # =====================================================

    def _require_gate_role(self, actor: User):
        if actor.role not in GATE_ROLES:
            raise AuthorizationError("Only security staff can operate the gate", required_role=UserRole.SECURITY.value)

    async def scan(self, actor: User, qr_token: str) -> Tuple[GatePass, GateAction]:
        """Resolve a scanned QR code to its pass and the next gate action"""
        self._require_gate_role(actor)
        gate_pass = await self._load_by_token(qr_token)
        action = next_gate_action(gate_pass, self.clock())
        logger.info(f"QR scanned for pass {gate_pass.id} by {actor.id}: next action {action.value}")
        return gate_pass, action

    async def checkout(self, actor: User, qr_token: str) -> GatePass:
        """Student leaves campus on an approved pass"""
        self._require_gate_role(actor)
        gate_pass = await self._load_by_token(qr_token)
        if gate_pass.status != PassStatus.APPROVED:
            raise InvalidTransitionError(gate_pass.status.value, "checkout")

        now = self.clock()
        if gate_pass.return_time <= now:
            raise InvalidTransitionError(
                gate_pass.status.value,
                "checkout",
                "The return time of this pass has already passed",
            )

        gate_pass = await self._apply_transition(
            gate_pass,
            "checkout",
            {
                "status": PassStatus.ACTIVE,
                "checkout_time": now,
                "checked_out_by": str(actor.id),
                "updated_at": now,
            },
            actor,
        )

        await self.notifications.create_notification(
            str(gate_pass.student_id),
            "Checked Out",
            f"You checked out at the gate. Please return by {gate_pass.return_time:%Y-%m-%d %H:%M} UTC.",
            type=NotificationType.INFO,
            data={"pass_id": str(gate_pass.id), "action": "checked_out"},
        )
        return gate_pass

    async def checkin(self, actor: User, qr_token: str) -> GatePass:
        """Student returns to campus"""
        self._require_gate_role(actor)
        gate_pass = await self._load_by_token(qr_token)
        if gate_pass.status not in (PassStatus.ACTIVE, PassStatus.OVERDUE):
            raise InvalidTransitionError(gate_pass.status.value, "checkin")

        now = self.clock()
        from_status = gate_pass.status
        gate_pass = await self._apply_transition(
            gate_pass,
            "checkin",
            {
                "status": PassStatus.COMPLETED,
                "actual_return_time": now,
                "checked_in_by": str(actor.id),
                "updated_at": now,
            },
            actor,
        )

        pass_id = str(gate_pass.id)
        await self.notifications.create_notification(
            str(gate_pass.student_id),
            "Checked In",
            "Welcome back. Your pass is now completed.",
            type=NotificationType.SUCCESS,
            data={"pass_id": pass_id, "action": "checked_in"},
        )

        if from_status == PassStatus.OVERDUE and gate_pass.mentor_id:
            student_name = gate_pass.student.full_name if gate_pass.student else "A student"
            await self.notifications.create_notification(
                str(gate_pass.mentor_id),
                "Overdue Pass Returned",
                f"{student_name} returned late on a {gate_pass.pass_type.value} pass",
                type=NotificationType.WARNING,
                data={"pass_id": pass_id, "action": "overdue_returned"},
            )
        return gate_pass
