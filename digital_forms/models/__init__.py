"""Database models."""
from digital_forms.models.user import User, UserRole
from digital_forms.models.form_link import FormLink, LinkStatus, EffectiveLinkStatus
from digital_forms.models.submission import FormSubmission, SubmissionStatus
from digital_forms.models.activity_log import ActivityLog, ActivityAction

__all__ = [
    "User",
    "UserRole",
    "FormLink",
    "LinkStatus",
    "EffectiveLinkStatus",
    "FormSubmission",
    "SubmissionStatus",
    "ActivityLog",
    "ActivityAction",
]
