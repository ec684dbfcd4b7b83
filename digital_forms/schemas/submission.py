from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr
from digital_forms.models.submission import SubmissionStatus


class SubmissionCreateRequest(BaseModel):
    """Request schema for the public submission endpoint."""
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    form_data: Optional[Dict[str, Any]] = None


class SubmissionCreateResponse(BaseModel):
    message: str = "Form submitted successfully"
    submission_id: str


class ReviewRequest(BaseModel):
    """Request schema for reviewing a submission."""
    status: str
    review_notes: Optional[str] = None


class SubmissionResponse(BaseModel):
    """Submission with the unit details of the link it came through."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    link_id: str
    owner_user_id: int
    customer_name: str
    customer_email: Optional[str] = None
    submission_data: Dict[str, Any]
    submitted_at: datetime
    status: SubmissionStatus
    review_notes: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    unit_number: Optional[str] = None
    sales_agent: Optional[str] = None


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]


class SubmissionDetailResponse(BaseModel):
    message: str
    submission: SubmissionResponse
