# app/services/address_service.py
import re
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.address import Address
from app.repositories.address_repo import AddressRepository
from app.schemas.address import (
    AddressCreate,
    AddressSuggestion,
    AddressUpdate,
    AddressValidation,
)

US_POSTAL_CODE = re.compile(r"^\d{5}(-\d{4})?$")
US_COUNTRY_NAMES = {"united states", "united states of america", "us", "usa"}

STREET_SUFFIXES = {
    "st": "Street",
    "ave": "Avenue",
    "rd": "Road",
    "blvd": "Boulevard",
    "dr": "Drive",
    "ln": "Lane",
}


def _default_scope(address_type: str) -> list[str]:
    """
    Address types whose default flag collides with a default of `address_type`.
    A "both" address is the default for shipping and billing at once.
    """
    if address_type == "both":
        return ["shipping", "billing", "both"]
    return [address_type, "both"]


def validate_address(payload: AddressCreate) -> AddressValidation:
    """
    Offline address check: US postal code format and spelled-out street
    suffixes. Nothing is saved.
    """
    warnings: list[str] = []
    suggestions: list[AddressSuggestion] = []

    if payload.country.lower() in US_COUNTRY_NAMES and not US_POSTAL_CODE.match(payload.postal_code):
        warnings.append("Postal code format may be incorrect for US addresses")

    words = payload.address_line1.split()
    suffix = words[-1].rstrip(".").lower() if words else ""
    if suffix in STREET_SUFFIXES:
        suggested = " ".join([*words[:-1], STREET_SUFFIXES[suffix]])
        suggestions.append(
            AddressSuggestion(
                field="address_line1",
                original=payload.address_line1,
                suggested=suggested,
                reason="Standardized street format",
            )
        )

    return AddressValidation(is_valid=not warnings, warnings=warnings, suggestions=suggestions)


class AddressService:
    """
    Address book rules:
      - users only ever see and touch their own active addresses
      - at most one default per type (see _default_scope)
      - the first address a user saves becomes the default
      - delete is a soft delete
    """

    def __init__(self, repo: AddressRepository):
        self.repo = repo

    def get_address(self, session: Session, user_id: uuid.UUID, address_id: uuid.UUID) -> Address:
        address = self.repo.get_by_id(session, address_id)
        if not address or address.user_id != user_id or not address.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Address not found",
            )
        return address

    def list_addresses(self, session: Session, user_id: uuid.UUID) -> list[Address]:
        return self.repo.list_for_user(session, user_id)

    def list_defaults(self, session: Session, user_id: uuid.UUID) -> list[Address]:
        return self.repo.list_defaults(session, user_id)

    def create_address(self, session: Session, user_id: uuid.UUID, payload: AddressCreate) -> Address:
        address = Address(user_id=user_id, **payload.model_dump())
        if not self.repo.list_for_user(session, user_id):
            address.is_default = True
        if address.is_default:
            self.repo.unset_defaults(session, user_id, _default_scope(address.type))
        return self.repo.save(session, address)

    def update_address(
        self,
        session: Session,
        user_id: uuid.UUID,
        address_id: uuid.UUID,
        payload: AddressUpdate,
    ) -> Address:
        address = self.get_address(session, user_id, address_id)

        for key, value in payload.model_dump(exclude_unset=True).items():
            if value is None and key not in ("company", "address_line2", "phone"):
                continue
            setattr(address, key, value)

        if payload.is_default:
            self.repo.unset_defaults(session, user_id, _default_scope(address.type))
            address.is_default = True

        address.updated_at = datetime.now(timezone.utc)
        return self.repo.save(session, address)

    def set_default(self, session: Session, user_id: uuid.UUID, address_id: uuid.UUID) -> Address:
        address = self.get_address(session, user_id, address_id)
        self.repo.unset_defaults(session, user_id, _default_scope(address.type))
        address.is_default = True
        address.updated_at = datetime.now(timezone.utc)
        return self.repo.save(session, address)

    def delete_address(self, session: Session, user_id: uuid.UUID, address_id: uuid.UUID) -> None:
        address = self.get_address(session, user_id, address_id)
        address.is_active = False
        address.is_default = False
        address.updated_at = datetime.now(timezone.utc)
        self.repo.save(session, address)
