# app/schemas/category.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.product import ProductRead


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


class CategoryCreate(SQLModel):
    """
    Payload for creating a category.

    - slug is optional: if omitted, generated from `name`.
    - parent_id places the category under an existing one; the level is
      derived from the parent.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    slug: str | None = Field(default=None, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    parent_id: uuid.UUID | None = None
    is_active: bool = True
    is_featured: bool = False
    sort_order: int = 0

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return _strip_required(v)


class CategoryUpdate(SQLModel):
    """
    Partial update. An explicit `"parent_id": null` moves the category to
    the top level.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    slug: str | None = Field(default=None, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    parent_id: uuid.UUID | None = None
    is_active: bool | None = None
    is_featured: bool | None = None
    sort_order: int | None = None

    @field_validator("name", "slug")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)


class CategoryRef(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    level: int


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    image_url: str | None
    parent_id: uuid.UUID | None
    level: int
    is_active: bool
    is_featured: bool
    sort_order: int
    product_count: int
    created_at: datetime


class CategoryWithChildren(CategoryRead):
    children: list[CategoryRef] = []


class CategoryDetail(CategoryWithChildren):
    """
    Single category with its parent, direct children and the path from
    the top-level category down to itself.
    """

    parent: CategoryRef | None = None
    hierarchy: list[CategoryRef] = []


class CategoryTreeNode(CategoryRead):
    children: list["CategoryTreeNode"] = []


CategoryTreeNode.model_rebuild()


class CategoryList(SQLModel):
    items: list[CategoryWithChildren]
    total: int
    skip: int
    limit: int


class CategoryProducts(SQLModel):
    category: CategoryRef
    hierarchy: list[CategoryRef]
    items: list[ProductRead]
    total: int
    skip: int
    limit: int


class CategoryCountsRefreshed(SQLModel):
    updated: int
