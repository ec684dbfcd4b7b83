from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
from digital_forms.database import Base


class SubmissionStatus(str, enum.Enum):
    """Review status of a submission."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FormSubmission(Base):
    """Form submission model - customer data received through a link. Never deleted."""

    __tablename__ = "form_submissions"

    id = Column(String(36), primary_key=True)
    link_id = Column(String(36), ForeignKey("form_links.id"), nullable=False, index=True)
    # Copied from the link at creation time
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    submission_data = Column(JSON, nullable=False)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.PENDING, nullable=False, index=True)
    review_notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    # Relationships
    link = relationship("FormLink", back_populates="submissions")
    owner = relationship("User", foreign_keys=[owner_user_id])
