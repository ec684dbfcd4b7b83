from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
from digital_forms.database import Base


class LinkStatus(str, enum.Enum):
    """Stored link status. DELETED is terminal."""
    ACTIVE = "active"
    DELETED = "deleted"


class EffectiveLinkStatus(str, enum.Enum):
    """Status derived at read time from stored status and the clock."""
    ACTIVE = "active"
    EXPIRED = "expired"
    DELETED = "deleted"


class FormLink(Base):
    """Form link model - a time-limited public link tied to a unit."""

    __tablename__ = "form_links"

    id = Column(String(36), primary_key=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    unit_number = Column(String(100), nullable=False)
    sales_agent = Column(String(200), nullable=False)
    link_code = Column(String(64), unique=True, nullable=False, index=True)
    client_email = Column(String(255), nullable=True)
    expiry_days = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    status = Column(SQLEnum(LinkStatus), default=LinkStatus.ACTIVE, nullable=False, index=True)
    submissions_count = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    owner = relationship("User", back_populates="form_links")
    submissions = relationship("FormSubmission", back_populates="link")

    def effective_status(self, now: Optional[datetime] = None) -> EffectiveLinkStatus:
        """Deleted wins; otherwise a link is expired once now >= expires_at."""
        if self.status == LinkStatus.DELETED:
            return EffectiveLinkStatus.DELETED
        now = now or datetime.utcnow()
        if now >= self.expires_at:
            return EffectiveLinkStatus.EXPIRED
        return EffectiveLinkStatus.ACTIVE

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """True if the public submission path may accept submissions."""
        return self.effective_status(now) == EffectiveLinkStatus.ACTIVE
