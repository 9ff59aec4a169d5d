from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from intake.utils.constants import AppRole


class ProfileOut(BaseModel):
    id: str
    email: str
    username: Optional[str]
    full_name: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class UserRoleOut(BaseModel):
    id: str
    user_id: str
    role: AppRole
    can_view: bool
    can_edit: bool
    can_checkin: bool
    can_checkout: bool

    class Config:
        from_attributes = True


class UserWithRoleOut(ProfileOut):
    user_role: Optional[UserRoleOut] = None


class RoleUpdate(BaseModel):
    role: AppRole
    can_view: bool = True
    can_edit: bool = False
    can_checkin: bool = False
    can_checkout: bool = False


class UserCreate(BaseModel):
    email: str
    password: str
    full_name: str
    username: str
    role: AppRole = AppRole.VIEWER
    can_view: bool = True
    can_edit: bool = False
    can_checkin: bool = False
    can_checkout: bool = False


class BootstrapRequest(BaseModel):
    email: str
    password: str
    full_name: str
    username: str


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenOut(BaseModel):
    token: str
    expires_at: datetime
    user_id: str


class MeOut(BaseModel):
    profile: ProfileOut
    permissions: dict


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
