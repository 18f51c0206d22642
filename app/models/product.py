# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog entry.

    `stock` is mutated only by order placement (conditional decrement),
    cancellation/refund (increment) and admin edits.
    Deleting a product is a soft delete (`is_active = False`) so that
    order lines and carts can still resolve it.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(
        default=None,
        max_length=2000,
    )

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    brand: str | None = Field(default=None, max_length=50)

    price: float = Field(
        ge=0,
        description="List price",
    )

    discount_price: float | None = Field(
        default=None,
        ge=0,
        description="Sale price; only used when lower than `price`",
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="Purchasable units on hand",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="False once the product is soft-deleted",
    )

    is_featured: bool = Field(default=False)

    ratings: float = Field(
        default=0.0,
        ge=0,
        le=5,
        description="Average review rating, one decimal",
    )
    num_reviews: int = Field(default=0, ge=0)

    hero_image_url: str | None = Field(
        default=None,
        description="Main image URL (Supabase Storage)",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def effective_price(self) -> float:
        if self.discount_price is not None and self.discount_price < self.price:
            return self.discount_price
        return self.price
