"""User, auth and permission schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, EmailStr


class CreateUserRequest(BaseModel):
    """create-user payload. Role and password rules are checked by the service."""

    email: EmailStr
    password: str
    full_name: str
    role: str
    whatsapp: Optional[str] = None
    restaurant_name: Optional[str] = None
    locale: Optional[str] = None
    currency: Optional[str] = None
    restaurant_id: Optional[int] = None


class CreatedUser(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    restaurant_id: Optional[int] = None


class CreateUserResponse(BaseModel):
    success: bool = True
    user: CreatedUser


class UpdateUserRequest(BaseModel):
    user_id: int
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    whatsapp: Optional[str] = None
    role: Optional[str] = None


class DeleteUserRequest(BaseModel):
    user_id: int


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    whatsapp: Optional[str] = None
    role: Optional[str] = None
    restaurant_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


class SyncEmailsResponse(BaseModel):
    success: bool = True
    updated: int


class PermissionsUpdate(BaseModel):
    permissions: Dict[str, bool]


class PermissionsResponse(BaseModel):
    user_id: int
    role: Optional[str] = None
    permissions: Dict[str, bool]


class MeResponse(BaseModel):
    """The signed-in user's session context."""

    user_id: int
    email: str
    full_name: str
    role: str
    restaurant_id: Optional[int] = None
    is_super_admin: bool
    is_host: bool
    is_admin: bool
    is_kitchen: bool
    permissions: Dict[str, bool]
