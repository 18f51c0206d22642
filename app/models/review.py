# app/models/review.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class ProductReview(SQLModel, table=True):
    """
    A customer's rating of a product. One review per (product, user);
    reviewing again replaces the earlier review.
    """

    __tablename__ = "product_reviews"
    __table_args__ = (UniqueConstraint("product_id", "user_id"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    name: str = Field(
        max_length=100,
        description="Reviewer display name at the time of writing",
    )

    rating: int = Field(ge=1, le=5)

    comment: str = Field(max_length=500)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
