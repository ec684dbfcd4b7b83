from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Enum as SQLEnum
import enum
from digital_forms.database import Base


class ActivityAction(str, enum.Enum):
    """Action type enumeration for the activity log."""
    LOGIN = "login"
    LOGOUT = "logout"
    CHANGE_PASSWORD = "change_password"
    CREATE_FORM_LINK = "create_form_link"
    UPDATE_FORM_LINK = "update_form_link"
    DELETE_FORM_LINK = "delete_form_link"
    FORM_SUBMISSION = "form_submission"
    REVIEW_SUBMISSION = "review_submission"
    EXPORT_SUBMISSIONS = "export_submissions"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DEACTIVATE_USER = "deactivate_user"
    BOOTSTRAP_ADMIN = "bootstrap_admin"


class ActivityLog(Base):
    """Append-only audit trail of state-changing operations."""

    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # None for public actions without an owner
    action = Column(SQLEnum(ActivityAction), nullable=False, index=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    request_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
