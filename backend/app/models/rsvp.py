"""ActivityRsvp ORM model: one row per RSVP, ordered by submission."""
from sqlalchemy import Boolean, Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class ActivityRsvp(Base):
    __tablename__ = "activity_rsvps"

    rsvp_id = Column(Integer, primary_key=True, autoincrement=True)
    activity_id = Column(
        String(36), ForeignKey("activities.activity_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    # False for sign-ups stored under the "<name> (no email)" placeholder.
    has_email = Column(Boolean, nullable=False, default=True)

    activity = relationship("Activity", back_populates="rsvps")
