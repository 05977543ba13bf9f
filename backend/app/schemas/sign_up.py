"""Pydantic schemas for the sign-up cart, batch sign-ups and questions."""
from typing import Optional
from pydantic import BaseModel


class CartItemIn(BaseModel):
    activity_id: str


class CartItemOut(BaseModel):
    activity_id: str
    title: str

    model_config = {"from_attributes": True}


class CartOut(BaseModel):
    items: list[CartItemOut] = []

    model_config = {"from_attributes": True}


class CartChange(BaseModel):
    changed: bool
    cart: CartOut


class BatchSignUpRequest(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    activity_ids: Optional[list[str]] = None  # falls back to the session's cart


class BatchSignUpOut(BaseModel):
    joined: list[str]
    duplicates: list[str]
    failures: dict[str, str]


class QuestionIn(BaseModel):
    name: str
    question: str
    email: Optional[str] = None


class AnswerIn(BaseModel):
    recipient: str
    answer: str
    subject: str = ""
