# app/schemas/checkout.py
"""
Checkout payloads. The storefront client speaks camelCase here, so every
model aliases its fields to camelCase and still accepts snake_case input.
"""
import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.address import AddressRead


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewAddress(CamelModel):
    """
    Inline shipping address. Required fields are checked by CheckoutService
    so that blanks come back as INVALID_ADDRESS field errors.
    """

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None


class CardDetails(CamelModel):
    type: Literal["card"]
    card_number: str | None = None
    expiry_month: int | None = None
    expiry_year: int | None = None
    cvv: str | None = None
    holder_name: str | None = None


class BankDetails(CamelModel):
    type: Literal["bank"]
    account_number: str | None = None
    routing_number: str | None = None
    bank_name: str | None = None


class WalletDetails(CamelModel):
    type: Literal["wallet"]
    wallet_provider: str | None = None
    wallet_id: str | None = None


PaymentDetails = Annotated[
    Union[CardDetails, BankDetails, WalletDetails],
    Field(discriminator="type"),
]


class CreateOrderRequest(CamelModel):
    shipping_address_id: uuid.UUID | None = None
    new_address: NewAddress | None = None
    use_new_address: bool = False
    payment_method: str | None = None
    order_notes: str | None = Field(default=None, max_length=500)
    payment_details: PaymentDetails | None = None
    coupon_code: str | None = None


class PlacedOrder(CamelModel):
    order_number: str
    id: uuid.UUID = Field(alias="_id")
    total_price: float
    order_status: str
    estimated_delivery: datetime | None
    payment_status: str


class CheckoutResponse(CamelModel):
    success: bool = True
    message: str
    order: PlacedOrder


class SummaryLine(CamelModel):
    product_id: uuid.UUID
    name: str
    image_url: str | None
    unit_price: float
    quantity: int
    line_total: float
    stock: int


class CheckoutTotals(CamelModel):
    items_price: float
    tax_price: float
    shipping_price: float
    discount_amount: float = 0.0
    total_price: float


class CheckoutSummary(CamelModel):
    success: bool = True
    items: list[SummaryLine]
    totals: CheckoutTotals
    shipping_threshold: float
    addresses: list[AddressRead]


class FieldError(BaseModel):
    field: str
    message: str


class CheckoutValidation(CamelModel):
    success: bool = True
    valid: bool
    errors: list[FieldError] = []
    totals: CheckoutTotals | None = None


class ApplyCouponRequest(CamelModel):
    coupon_code: str = Field(min_length=1)


class CouponResult(CamelModel):
    success: bool = True
    code: str
    type: Literal["percentage", "fixed"]
    value: float
    discount_amount: float
    items_price: float


class PaymentMethodOption(BaseModel):
    id: str
    name: str
    description: str


class PaymentMethodOptions(CamelModel):
    success: bool = True
    payment_methods: list[PaymentMethodOption]
