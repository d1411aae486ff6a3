from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from utils.database import get_db
from utils.auth import (
    verify_password,
    get_password_hash,
    create_access_token,
    get_current_active_user,
    get_current_super_admin,
)
from utils.validators import validate_field_uniqueness
from models.user import User
from schemas.user import UserCreate, UserResponse, Token, LoginRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning(f"Failed login attempt for {login_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning(f"Login attempt on deactivated account {user.id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated, contact an administrator",
        )

    access_token = create_access_token(data={"sub": str(user.id)})
    logger.info(f"User {user.id} logged in")
    return {"access_token": access_token, "token_type": "bearer", "user": user}

@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_super_admin)
):
    try:
        validate_field_uniqueness(db, User, "email", user.email)

        db_user = User(
            name=user.name,
            email=user.email,
            hashed_password=get_password_hash(user.password),
            role=user.role,
            is_active=True,
        )
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info(f"User registered: {db_user.email} (ID: {db_user.id}, Role: {db_user.role.value}) by user {current_user.id}")
        return db_user
    except HTTPException as e:
        db.rollback()
        logger.warning(f"Registration failed for {user.email}: {e.detail}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error registering user {user.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to register user"
        )
