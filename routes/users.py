from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
import logging

from utils.auth import get_current_active_user, get_current_super_admin, get_password_hash, verify_password
from utils.database import get_db
from utils.validators import validate_field_uniqueness
from models.user import User, UserRole
from models.order_management import Order
from schemas.user import UserResponse, UserUpdate, ProfileUpdate, PerformanceUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


def get_user_or_404(db: Session, user_id: int) -> User:
    db_user = db.query(User).filter(User.id == user_id).first()
    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return db_user


@router.get("", response_model=List[UserResponse])
async def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    return query.order_by(User.created_at.desc()).all()

@router.get("/role/waiters", response_model=List[UserResponse])
async def list_active_waiters(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    return db.query(User).filter(
        User.role == UserRole.WAITER,
        User.is_active == True
    ).order_by(User.name).all()

@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    try:
        if profile.name is not None:
            current_user.name = profile.name
        if profile.email is not None and profile.email != current_user.email:
            validate_field_uniqueness(db, User, "email", profile.email, exclude_id=current_user.id)
            current_user.email = profile.email

        if profile.new_password:
            if not profile.current_password or not verify_password(profile.current_password, current_user.hashed_password):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Current password is incorrect"
                )
            current_user.hashed_password = get_password_hash(profile.new_password)

        current_user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(current_user)
        logger.info(f"User {current_user.id} updated their profile")
        return current_user
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Profile update rejected for user {current_user.id}: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating profile of user {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    return get_user_or_404(db, user_id)

@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    try:
        db_user = get_user_or_404(db, user_id)
        update_data = user_update.dict(exclude_unset=True)

        if update_data.get("email") and update_data["email"] != db_user.email:
            validate_field_uniqueness(db, User, "email", update_data["email"], exclude_id=user_id)

        for field, value in update_data.items():
            if value is not None:
                setattr(db_user, field, value)

        db_user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(db_user)
        logger.info(f"User {user_id} updated by user {current_user.id}")
        return db_user
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user"
        )

@router.delete("/{user_id}")
async def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    db_user = get_user_or_404(db, user_id)
    db_user.is_active = False
    db_user.updated_at = datetime.utcnow()
    db.commit()
    logger.info(f"User {user_id} deactivated by user {current_user.id}")
    return {"detail": "User deactivated"}

@router.delete("/{user_id}/permanent")
async def delete_user_permanently(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    try:
        db_user = get_user_or_404(db, user_id)
        if db_user.role == UserRole.SUPERADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Super admin accounts cannot be permanently deleted"
            )
        if db.query(Order).filter(Order.waiter_id == user_id).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete a user with associated orders"
            )

        db_user.assigned_tables = []
        db.delete(db_user)
        db.commit()
        logger.info(f"User {user_id} permanently deleted by user {current_user.id}")
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Permanent deletion of user {user_id} rejected: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting user {user_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete user"
        )

    return {"detail": "User permanently deleted"}

@router.put("/{user_id}/performance", response_model=UserResponse)
async def update_performance(
    user_id: int,
    performance: PerformanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    db_user = get_user_or_404(db, user_id)

    if performance.orders_served is not None:
        db_user.orders_served = performance.orders_served
    if performance.average_service_time is not None:
        db_user.average_service_time = performance.average_service_time
    if performance.customer_rating is not None:
        # Reassign so the JSON column is flagged dirty
        db_user.customer_ratings = list(db_user.customer_ratings or []) + [performance.customer_rating]

    db.commit()
    db.refresh(db_user)
    return db_user
