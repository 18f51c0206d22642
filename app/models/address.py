# app/models/address.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Address(SQLModel, table=True):
    """
    Saved address in a user's address book.

    - type: shipping | billing | both
    - at most one default per user per type (enforced by AddressService)
    - deleting only flips is_active, so old checkouts stay explainable
    """

    __tablename__ = "addresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    type: str = Field(default="both")

    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    company: str | None = Field(default=None, max_length=100)
    address_line1: str = Field(max_length=200)
    address_line2: str | None = Field(default=None, max_length=200)
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    postal_code: str = Field(max_length=20)
    country: str = Field(default="United States", max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    is_default: bool = Field(default=False)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
