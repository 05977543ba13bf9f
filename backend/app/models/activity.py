"""Activity ORM model and its lifecycle states."""
import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from app.database import Base


class ActivityStatus(str, enum.Enum):
    unpublished_under_review = "unpublished_under_review"
    published_under_review = "published_under_review"
    published = "published"


# Statuses that appear in public listings and are readable by anyone.
LISTABLE_STATUSES = (ActivityStatus.published, ActivityStatus.published_under_review)
REVIEW_STATUSES = (ActivityStatus.unpublished_under_review, ActivityStatus.published_under_review)


class Activity(Base):
    __tablename__ = "activities"

    activity_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    leader_name = Column(String(100), nullable=False)
    # Weak references: resolved through user_service, never hydrated automatically.
    leader_user_id = Column(String(36), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    creator_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    status = Column(SAEnum(ActivityStatus), nullable=False, default=ActivityStatus.unpublished_under_review)
    expire_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    rsvps = relationship(
        "ActivityRsvp",
        back_populates="activity",
        cascade="all, delete-orphan",
        order_by="ActivityRsvp.rsvp_id",
        lazy="selectin",
    )
