from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from digital_forms.models.form_link import EffectiveLinkStatus


class LinkCreateRequest(BaseModel):
    """Request schema for creating a form link."""
    unit_number: str
    sales_agent: str
    client_email: Optional[EmailStr] = None
    expiry_days: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class LinkUpdateRequest(BaseModel):
    """Request schema for a partial link update."""
    unit_number: Optional[str] = None
    sales_agent: Optional[str] = None
    client_email: Optional[EmailStr] = None
    expiry_days: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class LinkResponse(BaseModel):
    """Form link with its effective (read-time) status."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_user_id: int
    owner_username: Optional[str] = None
    unit_number: str
    sales_agent: str
    link_code: str
    public_url: str
    client_email: Optional[str] = None
    expiry_days: int
    created_at: datetime
    expires_at: datetime
    status: EffectiveLinkStatus
    is_expired: bool
    submissions_count: int
    notes: Optional[str] = None


class LinkDetailResponse(BaseModel):
    message: str
    link: LinkResponse


class LinkListResponse(BaseModel):
    links: list[LinkResponse]


class PublicLinkResponse(BaseModel):
    """What the public form page may know about a usable link."""
    unit_number: str
    sales_agent: str
    expires_at: datetime
