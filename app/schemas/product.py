# app/schemas/product.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    category_id: uuid.UUID | None
    brand: str | None
    price: float
    discount_price: float | None
    effective_price: float
    stock: int
    is_active: bool
    is_featured: bool
    ratings: float
    num_reviews: int
    hero_image_url: str | None
    created_at: datetime


class ProductList(SQLModel):
    items: list[ProductRead]
    total: int
    skip: int
    limit: int


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `name`.
    - discount_price, when given, must be lower than price.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    slug: str | None = None
    description: str | None = Field(default=None, max_length=2000)
    category_id: uuid.UUID | None = None
    brand: str | None = Field(default=None, max_length=50)
    price: float = Field(ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    is_active: bool = True
    is_featured: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty if provided")
        return v

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.discount_price is not None and self.discount_price >= self.price:
            raise ValueError("discount_price must be less than price")
        return self


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional; the discount rule is checked against the
    merged result in ProductService.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    slug: str | None = None
    description: str | None = Field(default=None, max_length=2000)
    category_id: uuid.UUID | None = None
    brand: str | None = Field(default=None, max_length=50)
    price: float | None = Field(default=None, ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    is_featured: bool | None = None
    hero_image_url: str | None = None  # allow manual override if needed

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("slug cannot be empty")
        return v
