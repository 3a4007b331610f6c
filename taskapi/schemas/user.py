from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ..models import UserRole


class RegisterRequest(BaseModel):
    # Optional so incomplete bodies get the 400 contract instead of a 422
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserPublic(BaseModel):
    email: str
    name: str
    role: UserRole


class UserRead(UserPublic):
    id: str
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
