from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship
import enum

from gatepass.core.database import Base
from gatepass.core.types import GUID, generate_uuid, utcnow


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "student"
    MENTOR = "mentor"
    HOD = "hod"
    SECURITY = "security"
    ADMIN = "admin"


class User(Base):
    """User model"""
    __tablename__ = "users"

    __table_args__ = (
        Index('ix_users_role_department', 'role', 'department'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    department = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True)

    # Student fields
    year = Column(Integer, nullable=True)
    student_id = Column(String(50), unique=True, nullable=True)  # roll number
    hostel_block = Column(String(20), nullable=True)
    room_number = Column(String(20), nullable=True)
    mentor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    mentor = relationship("User", remote_side=[id], foreign_keys=[mentor_id])

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
