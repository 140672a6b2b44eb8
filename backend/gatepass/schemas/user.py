"""Pydantic schemas for user profiles"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from gatepass.models.user import UserRole


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str
    phone: Optional[str] = None
    role: UserRole
    department: Optional[str] = None
    year: Optional[int] = None
    student_id: Optional[str] = None
    hostel_block: Optional[str] = None
    room_number: Optional[str] = None
    mentor_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(BaseModel):
    """Fields a user may change on their own profile"""
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    hostel_block: Optional[str] = Field(None, max_length=20)
    room_number: Optional[str] = Field(None, max_length=20)
