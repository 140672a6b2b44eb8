"""Gate pass model and its status chain"""
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Text, ForeignKey, Index, text
from sqlalchemy.orm import relationship
import enum

from gatepass.core.database import Base
from gatepass.core.types import GUID, generate_uuid, utcnow


class PassType(str, enum.Enum):
    """Kind of exit the student is requesting"""
    LOCAL = "local"
    HOME = "home"
    MEDICAL = "medical"
    EMERGENCY = "emergency"


class PassStatus(str, enum.Enum):
    """Gate pass status"""
    PENDING_MENTOR = "pending_mentor"  # Waiting for the student's mentor
    PENDING_HOD = "pending_hod"        # Mentor approved, waiting for the HOD
    APPROVED = "approved"              # Both approvals given, QR issued
    ACTIVE = "active"                  # Checked out at the gate
    COMPLETED = "completed"            # Checked back in
    OVERDUE = "overdue"                # Out past the expected return time
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"                # Never used before the return time


class ApprovalDecision(str, enum.Enum):
    """Decision recorded on one approval step"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# A student may hold only one pass in any of these at a time
OPEN_STATUSES = (
    PassStatus.PENDING_MENTOR,
    PassStatus.PENDING_HOD,
    PassStatus.APPROVED,
    PassStatus.ACTIVE,
    PassStatus.OVERDUE,
)

AWAITING_DECISION = (PassStatus.PENDING_MENTOR, PassStatus.PENDING_HOD)

CANCELLABLE_STATUSES = (
    PassStatus.PENDING_MENTOR,
    PassStatus.PENDING_HOD,
    PassStatus.APPROVED,
)

# Statuses in which the holder may present the QR code at the gate
QR_VISIBLE_STATUSES = (PassStatus.APPROVED, PassStatus.ACTIVE, PassStatus.OVERDUE)


class GatePass(Base):
    """Gate pass - a student's request to leave campus"""
    __tablename__ = "gate_passes"

    __table_args__ = (
        Index('ix_gate_passes_student_id', 'student_id'),
        Index('ix_gate_passes_mentor_id', 'mentor_id'),
        Index('ix_gate_passes_status', 'status'),
        Index('ix_gate_passes_department_status', 'department', 'status'),
        Index('ix_gate_passes_status_return_time', 'status', 'return_time'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    mentor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    hod_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    department = Column(String(100), nullable=True)

    pass_type = Column(SQLEnum(PassType), default=PassType.LOCAL, nullable=False)
    reason = Column(Text, nullable=False)
    destination = Column(String(255), nullable=False)
    exit_time = Column(DateTime, nullable=False)
    return_time = Column(DateTime, nullable=False)
    emergency_contact = Column(String(20), nullable=True)
    additional_notes = Column(Text, nullable=True)

    status = Column(SQLEnum(PassStatus), default=PassStatus.PENDING_MENTOR, nullable=False)

    # Mentor step
    mentor_decision = Column(SQLEnum(ApprovalDecision), default=ApprovalDecision.PENDING, nullable=False)
    mentor_comments = Column(Text, nullable=True)
    mentor_decided_at = Column(DateTime, nullable=True)

    # HOD step
    hod_decision = Column(SQLEnum(ApprovalDecision), default=ApprovalDecision.PENDING, nullable=False)
    hod_comments = Column(Text, nullable=True)
    hod_decided_at = Column(DateTime, nullable=True)

    # Gate
    qr_token = Column(String(64), unique=True, nullable=True)
    checkout_time = Column(DateTime, nullable=True)
    checked_out_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actual_return_time = Column(DateTime, nullable=True)
    checked_in_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    mentor = relationship("User", foreign_keys=[mentor_id])
    hod = relationship("User", foreign_keys=[hod_id])

    def __repr__(self):
        return f"<GatePass {self.id} {self.status.value if self.status else '-'}>"


# At most one open pass per student; SQLEnum stores member names
_OPEN_STATUS_CLAUSE = text(
    "status IN ({})".format(", ".join(f"'{status.name}'" for status in OPEN_STATUSES))
)

Index(
    "uq_gate_passes_open_per_student",
    GatePass.student_id,
    unique=True,
    sqlite_where=_OPEN_STATUS_CLAUSE,
    postgresql_where=_OPEN_STATUS_CLAUSE,
)
