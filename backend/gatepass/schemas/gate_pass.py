"""Pydantic schemas for gate passes"""
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime, timezone
from enum import Enum

from gatepass.models.gate_pass import PassType, PassStatus, ApprovalDecision


def to_naive_utc(value: datetime) -> datetime:
    """Store every timestamp as naive UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DecisionEnum(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class GateAction(str, Enum):
    CHECKOUT = "checkout"
    CHECKIN = "checkin"
    NONE = "none"


# ==================== Requests ====================

class GatePassCreate(BaseModel):
    """Student request for a new gate pass"""
    pass_type: PassType = Field(default=PassType.LOCAL)
    reason: str = Field(..., min_length=10, max_length=500, description="Reason for leaving campus")
    destination: str = Field(..., min_length=1, max_length=255)
    exit_time: datetime
    return_time: datetime
    emergency_contact: Optional[str] = Field(None, max_length=20)
    additional_notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("reason", "destination")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("exit_time", "return_time")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.return_time <= self.exit_time:
            raise ValueError("return_time must be after exit_time")
        return self


class ApprovalRequest(BaseModel):
    """Mentor or HOD decision on a pending pass"""
    decision: DecisionEnum
    comments: Optional[str] = Field(None, max_length=500)


class QRScanRequest(BaseModel):
    """QR token read by the gate scanner"""
    qr_code: str = Field(..., min_length=8, max_length=64)


# ==================== Responses ====================

class PersonSummary(BaseModel):
    id: str
    full_name: str
    email: str
    department: Optional[str] = None
    phone: Optional[str] = None
    student_id: Optional[str] = None
    year: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ApprovalStep(BaseModel):
    decision: ApprovalDecision
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None
    approver_id: Optional[str] = None


class GatePassResponse(BaseModel):
    """Gate pass details response"""
    id: str
    student_id: str
    mentor_id: Optional[str] = None
    hod_id: Optional[str] = None
    department: Optional[str] = None
    pass_type: PassType
    reason: str
    destination: str
    exit_time: datetime
    return_time: datetime
    emergency_contact: Optional[str] = None
    additional_notes: Optional[str] = None
    status: PassStatus

    mentor_approval: ApprovalStep
    hod_approval: ApprovalStep

    qr_code: Optional[str] = None
    checkout_time: Optional[datetime] = None
    actual_return_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    student: Optional[PersonSummary] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class GatePassListResponse(BaseModel):
    success: bool = True
    passes: List[GatePassResponse]
    pagination: Pagination


class GatePassEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    gate_pass: GatePassResponse


class ScanResponse(BaseModel):
    success: bool = True
    gate_pass: GatePassResponse
    next_action: GateAction


class QRImageResponse(BaseModel):
    success: bool = True
    qr_code: str
    image_base64: str


class PassStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, int]
