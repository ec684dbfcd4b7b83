from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from digital_forms.models.user import UserRole


class UserResponse(BaseModel):
    """Public view of a user (never includes the password hash)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str
    role: UserRole
    department: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class UserCreateRequest(BaseModel):
    """Request schema for admin user creation."""
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)
    email: EmailStr
    full_name: str = Field(min_length=1, max_length=200)
    role: UserRole = UserRole.AGENT
    department: Optional[str] = None
    is_active: bool = True


class UserUpdateRequest(BaseModel):
    """Request schema for admin user edits; only provided fields change."""
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    role: Optional[UserRole] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=1)


class UserListResponse(BaseModel):
    users: list[UserResponse]
