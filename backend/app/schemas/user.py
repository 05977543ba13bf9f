"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserRegister(BaseModel):
    name: str
    username: str
    phone: str
    password: str
    password2: str
    signature: str
    email: Optional[str] = None


class UserLogin(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    user_id: str
    name: str
    username: str
    email: str
    phone: Optional[str] = None
    signature: str
    admin: bool
    created_at: datetime

    model_config = {"from_attributes": True}
