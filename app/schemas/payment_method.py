# app/schemas/payment_method.py
import uuid
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlmodel import SQLModel

CardType = Literal["visa", "mastercard", "amex", "discover"]
WalletProvider = Literal["paypal", "apple_pay", "google_pay", "samsung_pay"]


def _digits(v: str) -> str:
    v = v.replace(" ", "").replace("-", "")
    if not v.isdigit():
        raise ValueError("must contain digits only")
    return v


class _MethodBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    holder_name: str = Field(min_length=1, max_length=100)
    is_default: bool = False

    @field_validator("holder_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("holder_name cannot be empty")
        return v


class CardCreate(_MethodBase):
    """
    card_number is only used to derive card_last4; it is never persisted.
    """

    type: Literal["card"]
    card_type: CardType
    card_number: str
    expiry_month: int = Field(ge=1, le=12)
    expiry_year: int

    @field_validator("card_number")
    @classmethod
    def check_card_number(cls, v: str) -> str:
        v = _digits(v)
        if not 13 <= len(v) <= 19:
            raise ValueError("card_number must have 13 to 19 digits")
        return v

    @field_validator("expiry_year")
    @classmethod
    def not_expired(cls, v: int) -> int:
        if v < datetime.now(timezone.utc).year:
            raise ValueError("card is expired")
        return v


class BankCreate(_MethodBase):
    type: Literal["bank"]
    bank_name: str = Field(min_length=1, max_length=100)
    account_number: str
    routing_number: str

    @field_validator("account_number")
    @classmethod
    def check_account_number(cls, v: str) -> str:
        v = _digits(v)
        if not 4 <= len(v) <= 17:
            raise ValueError("account_number must have 4 to 17 digits")
        return v

    @field_validator("routing_number")
    @classmethod
    def check_routing_number(cls, v: str) -> str:
        v = _digits(v)
        if len(v) != 9:
            raise ValueError("routing_number must have exactly 9 digits")
        return v


class WalletCreate(_MethodBase):
    type: Literal["wallet"]
    wallet_provider: WalletProvider
    wallet_id: str = Field(min_length=1, max_length=100)


PaymentMethodCreate = Annotated[
    Union[CardCreate, BankCreate, WalletCreate],
    Field(discriminator="type"),
]


class PaymentMethodUpdate(SQLModel):
    """
    Only presentation fields can change; numbers are immutable.
    """

    model_config = ConfigDict(extra="forbid")

    holder_name: str | None = None
    expiry_month: int | None = None
    expiry_year: int | None = None
    is_default: bool | None = None

    @field_validator("expiry_month")
    @classmethod
    def check_month(cls, v: int | None) -> int | None:
        if v is not None and not 1 <= v <= 12:
            raise ValueError("expiry_month must be between 1 and 12")
        return v

    @field_validator("holder_name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("holder_name cannot be empty")
        return v


class PaymentMethodRead(SQLModel):
    id: uuid.UUID
    type: Literal["card", "bank", "wallet"]
    holder_name: str
    card_type: str | None
    card_last4: str | None
    expiry_month: int | None
    expiry_year: int | None
    bank_name: str | None
    account_last4: str | None
    wallet_provider: str | None
    wallet_id: str | None
    is_default: bool
    last_used: datetime | None
    created_at: datetime


class CardCheck(BaseModel):
    """Card details to check without saving them."""

    model_config = ConfigDict(extra="forbid")

    card_number: str
    expiry_month: int
    expiry_year: int
    cvv: str


class CardValidation(BaseModel):
    is_valid: bool
    is_expired: bool
    message: str
