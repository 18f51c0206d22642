# app/models/order.py
import uuid
from datetime import datetime, timedelta, timezone

from sqlmodel import SQLModel, Field

# Forward lifecycle, in order
STATUS_FLOW = (
    "processing",
    "confirmed",
    "shipped",
    "out_for_delivery",
    "delivered",
)
TERMINAL_STATUSES = ("delivered", "cancelled", "returned")
CANCELLABLE_STATUSES = ("processing", "confirmed")

PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")

RETURN_WINDOW_DAYS = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Order(SQLModel, table=True):
    """
    Placed order.

    Shipping address and line data are snapshots copied at checkout; later
    edits to the address book or catalog never touch them.

    Invariant at creation:
        total_price == items_price + tax_price + shipping_price - discount_amount
    Totals are never recomputed afterwards.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        description="ORD-YYYYMMDD-NNNNN",
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # --- shipping address snapshot ---
    ship_first_name: str
    ship_last_name: str
    ship_company: str | None = None
    ship_address_line1: str
    ship_address_line2: str | None = None
    ship_city: str
    ship_state: str
    ship_postal_code: str
    ship_country: str
    ship_phone: str | None = None

    # --- payment info ---
    payment_method: str
    payment_status: str = Field(default="pending", index=True)
    transaction_id: str | None = None
    payment_amount: float = Field(ge=0)
    paid_at: datetime | None = None
    refund_amount: float | None = None
    refunded_at: datetime | None = None

    # --- pricing ---
    items_price: float = Field(ge=0)
    tax_price: float = Field(default=0.0, ge=0)
    shipping_price: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    coupon_code: str | None = None
    total_price: float = Field(ge=0)

    order_status: str = Field(
        default="processing",
        index=True,
    )
    order_notes: str | None = Field(default=None, max_length=500)
    tracking_number: str | None = None

    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None

    created_at: datetime = Field(default_factory=_utcnow, index=True)
    updated_at: datetime = Field(default_factory=_utcnow)

    def can_be_cancelled(self) -> bool:
        return self.order_status in CANCELLABLE_STATUSES

    def can_be_returned(self, now: datetime | None = None) -> bool:
        """Delivered within the last RETURN_WINDOW_DAYS days."""
        if self.order_status != "delivered" or self.actual_delivery is None:
            return False
        now = now or _utcnow()
        return _as_utc(self.actual_delivery) > now - timedelta(days=RETURN_WINDOW_DAYS)


class OrderItem(SQLModel, table=True):
    """
    Immutable order line: product data frozen at purchase time.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    name: str
    image_url: str | None = None

    unit_price: float = Field(ge=0, description="Effective price at checkout")
    quantity: int = Field(gt=0)


class OrderStatusEvent(SQLModel, table=True):
    """
    Append-only status history entry.
    """

    __tablename__ = "order_status_history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    status: str
    note: str | None = Field(default=None, max_length=200)
    timestamp: datetime = Field(default_factory=_utcnow)
