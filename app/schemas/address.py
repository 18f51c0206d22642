# app/schemas/address.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

AddressType = Literal["shipping", "billing", "both"]


class AddressCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    type: AddressType = "both"
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
    is_default: bool = False

    @field_validator(
        "first_name", "last_name", "address_line1", "city", "state", "postal_code", "country"
    )
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class AddressUpdate(SQLModel):
    """
    Partial update. Setting is_default=True unsets the user's other defaults.
    """

    model_config = ConfigDict(extra="forbid")

    type: AddressType | None = None
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    company: str | None = Field(default=None, max_length=100)
    address_line1: str | None = Field(default=None, max_length=200)
    address_line2: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)
    is_default: bool | None = None

    @field_validator(
        "first_name", "last_name", "address_line1", "city", "state", "postal_code", "country"
    )
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class AddressRead(SQLModel):
    id: uuid.UUID
    type: AddressType
    first_name: str
    last_name: str
    company: str | None
    address_line1: str
    address_line2: str | None
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None
    is_default: bool
    created_at: datetime


class AddressSuggestion(SQLModel):
    field: str
    original: str
    suggested: str
    reason: str


class AddressValidation(SQLModel):
    """
    Result of checking an address without saving it. Warnings make the
    address invalid; suggestions are optional normalisations.
    """

    is_valid: bool
    warnings: list[str] = []
    suggestions: list[AddressSuggestion] = []
