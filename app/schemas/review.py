# app/schemas/review.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ReviewCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    rating: int = Field(ge=1, le=5)
    comment: str = Field(max_length=500)

    @field_validator("comment")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("comment cannot be empty")
        return v


class ReviewRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    user_id: uuid.UUID
    name: str
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime


class ReviewList(SQLModel):
    """
    One page of reviews (newest first) plus the product's rating summary.
    """

    items: list[ReviewRead]
    total: int
    skip: int
    limit: int
    average_rating: float
