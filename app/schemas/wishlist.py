# app/schemas/wishlist.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.models.cart import MAX_LINE_QUANTITY
from app.schemas.product import ProductRead


class WishlistAdd(SQLModel):
    product_id: uuid.UUID


class WishlistItemRead(SQLModel):
    product: ProductRead
    added_at: datetime


class WishlistRead(SQLModel):
    items: list[WishlistItemRead]
    count: int


class WishlistCheck(SQLModel):
    product_id: uuid.UUID
    in_wishlist: bool


class WishlistCount(SQLModel):
    count: int


class MoveToCart(SQLModel):
    quantity: int = Field(default=1, gt=0, le=MAX_LINE_QUANTITY)
