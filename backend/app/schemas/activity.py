"""Pydantic schemas for Activities and RSVPs."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.models.activity import ActivityStatus


class ActivityCreate(BaseModel):
    title: str
    body: str
    date: datetime
    leader_name: Optional[str] = None
    leader_username: Optional[str] = None  # must match a registered user when given


class ActivityUpdate(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    date: Optional[datetime] = None
    leader_name: Optional[str] = None
    leader_username: Optional[str] = None  # "" clears the leader user


class ActivityReject(BaseModel):
    feedback: str = ""


class RsvpOut(BaseModel):
    name: str
    email: str
    phone: str

    model_config = {"from_attributes": True}


class ActivityOut(BaseModel):
    activity_id: str
    title: str
    body: str
    date: datetime
    leader_name: str
    leader_user_id: Optional[str] = None
    creator_user_id: str
    status: ActivityStatus
    expire_at: datetime
    created_at: datetime
    rsvp_count: int = 0

    model_config = {"from_attributes": True}

    @classmethod
    def from_activity(cls, activity) -> ActivityOut:
        out = cls.model_validate(activity)
        out.rsvp_count = len(activity.rsvps)
        return out


class RsvpCreate(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None  # blank means "no email"


class DigestRequest(BaseModel):
    email: str
