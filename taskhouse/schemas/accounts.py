from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["Admin", "ProjectManager", "TeamLead", "Member", "Client"]
TaskStatusName = Literal["ToDo", "InProgress", "Review", "Done"]


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, max_length=50)
    admin_name: str = Field(..., min_length=1, max_length=120)
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8)


class LoginRequest(BaseModel):
    tenant_slug: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class InviteRequest(BaseModel):
    email: EmailStr
    role: RoleName


class AcceptInviteRequest(BaseModel):
    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=120)
    password: str = Field(..., min_length=8)


class TenantBranding(BaseModel):
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None


class TenantSettings(BaseModel):
    allow_client_access: Optional[bool] = None
    default_task_statuses: Optional[list[TaskStatusName]] = None


class TenantUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    branding: Optional[TenantBranding] = None
    settings: Optional[TenantSettings] = None


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    role: Optional[RoleName] = None
    is_active: Optional[bool] = None
    avatar_url: Optional[str] = Field(default=None, max_length=500)
