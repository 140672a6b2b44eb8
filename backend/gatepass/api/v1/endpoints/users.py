from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.database import get_db
from gatepass.core.logging_config import logger
from gatepass.models.user import User
from gatepass.modules.auth.dependencies import get_current_user
from gatepass.schemas.user import UserResponse, UserProfileUpdate


router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user"""
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update the contact details of the authenticated user"""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)

    logger.info(f"User {current_user.id} updated profile fields: {sorted(changes)}")
    return UserResponse.model_validate(current_user)
