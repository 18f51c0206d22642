# app/models/category.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

# Top-level categories are level 0
MAX_CATEGORY_LEVEL = 3


class Category(SQLModel, table=True):
    """
    Catalog category. Categories form a tree through `parent_id`;
    `level` is the depth (0 for top-level) and is kept in sync by
    CategoryService whenever a category is created or moved.

    `product_count` is a cached count of active products, refreshed on
    demand (POST /categories/update-counts).
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        unique=True,
        index=True,
    )

    slug: str = Field(
        max_length=120,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(default=None, max_length=500)

    image_url: str | None = Field(default=None)

    parent_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    level: int = Field(default=0, ge=0, le=MAX_CATEGORY_LEVEL, index=True)

    is_active: bool = Field(default=True, index=True)
    is_featured: bool = Field(default=False, index=True)

    sort_order: int = Field(default=0)

    product_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
