# app/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

MAX_LINE_QUANTITY = 50


class Cart(SQLModel, table=True):
    """
    One cart per user (unique user_id).

    total_items / total_price are derived from the lines and are only
    ever written by CartRepository.recalculate().
    The row is emptied after checkout, never deleted.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        unique=True,
        index=True,
    )

    total_items: int = Field(default=0, ge=0)
    total_price: float = Field(default=0.0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    Cart line. One cart cannot hold 2 rows for the same product.
    """

    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("cart_id", "product_id"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        le=MAX_LINE_QUANTITY,
    )

    unit_price: float = Field(
        ge=0,
        description="Effective price snapshot, refreshed when the cart is read",
    )

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
