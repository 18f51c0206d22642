# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal[
    "processing",
    "confirmed",
    "shipped",
    "out_for_delivery",
    "delivered",
    "cancelled",
    "returned",
]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]


class ShippingAddressRead(SQLModel):
    """
    Address snapshot stored on the order.
    """

    first_name: str
    last_name: str
    company: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None = None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    payment_method: str
    payment_status: PaymentStatus
    transaction_id: str | None
    items_price: float
    tax_price: float
    shipping_price: float
    discount_amount: float
    coupon_code: str | None
    total_price: float
    order_status: OrderStatus
    tracking_number: str | None
    estimated_delivery: datetime | None
    actual_delivery: datetime | None
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    name: str
    image_url: str | None
    quantity: int
    unit_price: float
    line_total: float


class StatusEventRead(SQLModel):
    status: OrderStatus
    note: str | None
    timestamp: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items, address snapshot and status history.
    """

    items: list[OrderItemRead]
    shipping_address: ShippingAddressRead
    status_history: list[StatusEventRead]
    order_notes: str | None
    paid_at: datetime | None
    refund_amount: float | None
    refunded_at: datetime | None
    can_be_cancelled: bool
    can_be_returned: bool


class OrderListStats(SQLModel):
    total_orders: int
    total_revenue: float
    average_order_value: float


class AdminOrderList(SQLModel):
    """
    Admin listing: one page of orders plus aggregate stats for the same filters.
    """

    orders: list[OrderRead]
    stats: OrderListStats


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    note: str | None = Field(default=None, max_length=200)
    tracking_number: str | None = Field(default=None, max_length=100)

    @field_validator("note", "tracking_number")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderCancel(SQLModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = Field(default=None, max_length=200)


class RefundRequest(SQLModel):
    """
    Admin refund. amount defaults to the order total.
    """

    model_config = ConfigDict(extra="forbid")

    amount: float | None = Field(default=None, gt=0)
    reason: str | None = Field(default=None, max_length=200)
