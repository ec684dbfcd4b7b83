"""Pydantic schemas for request/response contracts."""
from digital_forms.schemas.user import (
    UserResponse,
    UserCreateRequest,
    UserUpdateRequest,
    UserListResponse,
)
from digital_forms.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PrincipalResponse,
    ValidateResponse,
    ChangePasswordRequest,
    MessageResponse,
)
from digital_forms.schemas.link import (
    LinkCreateRequest,
    LinkUpdateRequest,
    LinkResponse,
    LinkDetailResponse,
    LinkListResponse,
    PublicLinkResponse,
)
from digital_forms.schemas.submission import (
    SubmissionCreateRequest,
    SubmissionCreateResponse,
    ReviewRequest,
    SubmissionResponse,
    SubmissionListResponse,
    SubmissionDetailResponse,
)
from digital_forms.schemas.dashboard import (
    SystemStats,
    DashboardStats,
    DashboardStatsResponse,
)
from digital_forms.schemas.activity import (
    ActivityLogResponse,
    ActivityLogListResponse,
)

__all__ = [
    "UserResponse",
    "UserCreateRequest",
    "UserUpdateRequest",
    "UserListResponse",
    "LoginRequest",
    "LoginResponse",
    "PrincipalResponse",
    "ValidateResponse",
    "ChangePasswordRequest",
    "MessageResponse",
    "LinkCreateRequest",
    "LinkUpdateRequest",
    "LinkResponse",
    "LinkDetailResponse",
    "LinkListResponse",
    "PublicLinkResponse",
    "SubmissionCreateRequest",
    "SubmissionCreateResponse",
    "ReviewRequest",
    "SubmissionResponse",
    "SubmissionListResponse",
    "SubmissionDetailResponse",
    "SystemStats",
    "DashboardStats",
    "DashboardStatsResponse",
    "ActivityLogResponse",
    "ActivityLogListResponse",
]
