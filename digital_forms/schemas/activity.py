from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from digital_forms.models.activity_log import ActivityAction


class ActivityLogResponse(BaseModel):
    """Response schema for an activity log entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    action: ActivityAction
    details: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    """Response schema for a page of activity log entries."""
    logs: list[ActivityLogResponse]
    total: int
    limit: int
    offset: int
