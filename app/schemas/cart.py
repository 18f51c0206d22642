# app/schemas/cart.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.models.cart import MAX_LINE_QUANTITY


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart. Adding an existing product merges quantities.
    """

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0, le=MAX_LINE_QUANTITY)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item. 0 removes the line.
    """

    quantity: int = Field(ge=0, le=MAX_LINE_QUANTITY)


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including line_total.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    unit_price: float
    product_name: str | None = None
    product_hero_image_url: str | None = None
    stock: int | None = None
    line_total: float
    added_at: datetime


class InvalidCartItem(SQLModel):
    """A line dropped from the cart because it can no longer be bought."""

    product_id: uuid.UUID
    name: str | None = None
    reason: str


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    id: uuid.UUID
    items: list[CartItemRead]
    total_items: int
    total_price: float
    invalid_items: list[InvalidCartItem] = []


class CartEstimate(SQLModel):
    """
    Cart totals estimated with the checkout pricing rules (no coupon).
    """

    total_items: int
    items_count: int
    subtotal: float
    estimated_tax: float
    estimated_shipping: float
    estimated_total: float
    invalid_items: list[InvalidCartItem] = []


class CartValidation(SQLModel):
    is_valid: bool
    message: str
    cart: CartSummary
