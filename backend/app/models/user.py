"""User ORM model."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, DateTime
from app.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    password_hash = Column(String(255), nullable=False)
    signature = Column(String(255), nullable=False)
    admin = Column(Boolean, nullable=False, default=False)  # set out-of-band only
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
