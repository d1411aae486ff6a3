from pydantic import BaseModel, EmailStr, Field, validator
from typing import List, Optional
from datetime import datetime
from models.user import UserRole

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserBase(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.WAITER

class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6)

class PerformanceUpdate(BaseModel):
    orders_served: Optional[int] = Field(None, ge=0)
    average_service_time: Optional[float] = Field(None, ge=0)
    customer_rating: Optional[float] = Field(None, ge=0, le=5)

class UserResponse(UserBase):
    id: int
    role: UserRole
    is_active: bool
    orders_served: int
    average_service_time: float
    customer_ratings: List[float] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @validator('customer_ratings', pre=True)
    def default_ratings(cls, v):
        return v or []

class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse

class TokenData(BaseModel):
    user_id: Optional[int] = None
