"""
Gate Pass API

Thin HTTP layer over PassWorkflowService: request, review, cancel,
and move passes through the campus gate.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from gatepass.core.database import get_db
from gatepass.core.exceptions import AuthorizationError
from gatepass.core.rate_limiter import rate_limit
from gatepass.models.gate_pass import GatePass, PassStatus, QR_VISIBLE_STATUSES
from gatepass.models.user import User, UserRole
from gatepass.modules.auth.dependencies import get_current_user, get_current_security
from gatepass.schemas.gate_pass import (
    GatePassCreate, ApprovalRequest, QRScanRequest,
    GatePassResponse, GatePassListResponse, GatePassEnvelope,
    ScanResponse, QRImageResponse, PassStatsResponse,
    ApprovalStep, PersonSummary, Pagination, DecisionEnum,
)
from gatepass.services.pass_service import PassWorkflowService
from gatepass.services.qr_service import render_pass_qr


router = APIRouter()


# ==================== Helper Functions ====================

def may_hold_qr(gate_pass: GatePass, viewer: Optional[User]) -> bool:
    """The token is shown to the holder and gate staff only"""
    if viewer is None:
        return True
    return viewer.id == gate_pass.student_id or viewer.role in (UserRole.SECURITY, UserRole.ADMIN)


def can_see_qr(gate_pass: GatePass, viewer: Optional[User]) -> bool:
    return gate_pass.status in QR_VISIBLE_STATUSES and may_hold_qr(gate_pass, viewer)


def build_pass_response(gate_pass: GatePass, viewer: Optional[User] = None) -> GatePassResponse:
    """Build GatePassResponse from GatePass model"""
    student = None
    if gate_pass.student is not None:
        student = PersonSummary.model_validate(gate_pass.student)

    return GatePassResponse(
        id=str(gate_pass.id),
        student_id=str(gate_pass.student_id),
        mentor_id=str(gate_pass.mentor_id) if gate_pass.mentor_id else None,
        hod_id=str(gate_pass.hod_id) if gate_pass.hod_id else None,
        department=gate_pass.department,
        pass_type=gate_pass.pass_type,
        reason=gate_pass.reason,
        destination=gate_pass.destination,
        exit_time=gate_pass.exit_time,
        return_time=gate_pass.return_time,
        emergency_contact=gate_pass.emergency_contact,
        additional_notes=gate_pass.additional_notes,
        status=gate_pass.status,
        mentor_approval=ApprovalStep(
            decision=gate_pass.mentor_decision,
            comments=gate_pass.mentor_comments,
            decided_at=gate_pass.mentor_decided_at,
            approver_id=str(gate_pass.mentor_id) if gate_pass.mentor_decided_at else None,
        ),
        hod_approval=ApprovalStep(
            decision=gate_pass.hod_decision,
            comments=gate_pass.hod_comments,
            decided_at=gate_pass.hod_decided_at,
            approver_id=str(gate_pass.hod_id) if gate_pass.hod_id else None,
        ),
        qr_code=gate_pass.qr_token if can_see_qr(gate_pass, viewer) else None,
        checkout_time=gate_pass.checkout_time,
        actual_return_time=gate_pass.actual_return_time,
        cancelled_at=gate_pass.cancelled_at,
        created_at=gate_pass.created_at,
        updated_at=gate_pass.updated_at,
        student=student,
    )


# ==================== Student ====================

@router.post("", response_model=GatePassEnvelope, status_code=status.HTTP_201_CREATED)
@rate_limit("10/(1 minute)")
async def create_pass(
    request: Request,
    data: GatePassCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Request a new gate pass; the assigned mentor is notified"""
    service = PassWorkflowService(db)
    gate_pass = await service.create_pass(current_user, data)
    return GatePassEnvelope(
        message="Gate pass requested",
        gate_pass=build_pass_response(gate_pass, current_user),
    )


@router.get("", response_model=GatePassListResponse)
async def list_passes(
    status_filter: Optional[PassStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List passes visible to the current user, newest first"""
    service = PassWorkflowService(db)
    passes, pagination = await service.list_passes(current_user, status_filter, page, limit)
    return GatePassListResponse(
        passes=[build_pass_response(p, current_user) for p in passes],
        pagination=Pagination(**pagination),
    )


@router.get("/stats", response_model=PassStatsResponse)
async def pass_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Pass counts per status (department-scoped for HODs)"""
    stats = await PassWorkflowService(db).pass_stats(current_user)
    return PassStatsResponse(stats=stats)


# ==================== Gate ====================

@router.post("/scan", response_model=ScanResponse)
async def scan_pass(
    data: QRScanRequest,
    current_user: User = Depends(get_current_security),
    db: AsyncSession = Depends(get_db)
):
    """Resolve a scanned QR code and report the allowed gate action"""
    gate_pass, action = await PassWorkflowService(db).scan(current_user, data.qr_code)
    return ScanResponse(gate_pass=build_pass_response(gate_pass, current_user), next_action=action)


@router.post("/checkout", response_model=GatePassEnvelope)
async def checkout_pass(
    data: QRScanRequest,
    current_user: User = Depends(get_current_security),
    db: AsyncSession = Depends(get_db)
):
    """Let the student out on an approved pass"""
    gate_pass = await PassWorkflowService(db).checkout(current_user, data.qr_code)
    return GatePassEnvelope(message="Student checked out", gate_pass=build_pass_response(gate_pass, current_user))


@router.post("/checkin", response_model=GatePassEnvelope)
async def checkin_pass(
    data: QRScanRequest,
    current_user: User = Depends(get_current_security),
    db: AsyncSession = Depends(get_db)
):
    """Record the student's return"""
    gate_pass = await PassWorkflowService(db).checkin(current_user, data.qr_code)
    return GatePassEnvelope(message="Student checked in", gate_pass=build_pass_response(gate_pass, current_user))


# ==================== Single Pass ====================

@router.get("/{pass_id}", response_model=GatePassEnvelope)
async def get_pass(
    pass_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    gate_pass = await PassWorkflowService(db).get_pass(current_user, pass_id)
    return GatePassEnvelope(gate_pass=build_pass_response(gate_pass, current_user))


@router.patch("/{pass_id}/approve", response_model=GatePassEnvelope)
async def decide_pass(
    pass_id: str,
    data: ApprovalRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mentor or HOD approves or rejects the pass waiting on them"""
    gate_pass = await PassWorkflowService(db).decide(current_user, pass_id, data.decision, data.comments)
    verb = "approved" if data.decision == DecisionEnum.APPROVE else "rejected"
    return GatePassEnvelope(message=f"Pass {verb}", gate_pass=build_pass_response(gate_pass, current_user))


@router.patch("/{pass_id}/cancel", response_model=GatePassEnvelope)
async def cancel_pass(
    pass_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    gate_pass = await PassWorkflowService(db).cancel(current_user, pass_id)
    return GatePassEnvelope(message="Pass cancelled", gate_pass=build_pass_response(gate_pass, current_user))


@router.get("/{pass_id}/qr", response_model=QRImageResponse)
async def get_pass_qr(
    pass_id: str,
    size: int = Query(256, ge=128, le=1024),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """PNG QR code (base64) for the pass holder to present at the gate"""
    gate_pass = await PassWorkflowService(db).get_pass(current_user, pass_id)
    if not may_hold_qr(gate_pass, current_user):
        raise AuthorizationError("Only the pass holder can display its QR code")
    image = render_pass_qr(gate_pass, size)
    return QRImageResponse(qr_code=gate_pass.qr_token, image_base64=image)
