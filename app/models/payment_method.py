# app/models/payment_method.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class PaymentMethod(SQLModel, table=True):
    """
    Saved payment method.

    One table for the three variants; which columns are filled depends on
    `type` (card | bank | wallet). The API side is a discriminated union
    (see app/schemas/payment_method.py), so rows are always consistent.

    Only the last 4 digits of card / account numbers are stored.
    """

    __tablename__ = "payment_methods"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    type: str = Field(index=True)
    holder_name: str = Field(max_length=100)

    # card
    card_type: str | None = None
    card_last4: str | None = Field(default=None, max_length=4)
    expiry_month: int | None = None
    expiry_year: int | None = None

    # bank
    bank_name: str | None = Field(default=None, max_length=100)
    account_last4: str | None = Field(default=None, max_length=4)
    routing_number: str | None = Field(default=None, max_length=9)

    # wallet
    wallet_provider: str | None = None
    wallet_id: str | None = Field(default=None, max_length=100)

    is_default: bool = Field(default=False)
    is_active: bool = Field(default=True)
    last_used: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
