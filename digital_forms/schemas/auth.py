from typing import Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field
from digital_forms.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Request schema for username/password login."""
    username: str
    password: str


class LoginResponse(BaseModel):
    """Response schema for a successful login."""
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class PrincipalResponse(BaseModel):
    """The identity a valid token resolves to."""
    user_id: int
    username: str
    role: str
    token_expires_at: Optional[datetime] = None


class ValidateResponse(BaseModel):
    """Response schema for token validation."""
    valid: bool
    user: Optional[PrincipalResponse] = None


class ChangePasswordRequest(BaseModel):
    """Request schema for changing the caller's own password (camelCase keys accepted)."""
    current_password: str = Field(validation_alias=AliasChoices("current_password", "currentPassword"))
    new_password: str = Field(validation_alias=AliasChoices("new_password", "newPassword"))


class MessageResponse(BaseModel):
    message: str
