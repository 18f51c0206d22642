# app/repositories/address_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.address import Address


class AddressRepository:
    """
    Data access layer for the address book.
    Inactive (soft-deleted) rows are hidden from every listing.
    """

    def get_by_id(self, session: Session, address_id: uuid.UUID) -> Address | None:
        return session.get(Address, address_id)

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[Address]:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id, Address.is_active == True)  # noqa: E712
            .order_by(Address.is_default.desc(), Address.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def list_defaults(self, session: Session, user_id: uuid.UUID) -> list[Address]:
        stmt = select(Address).where(
            Address.user_id == user_id,
            Address.is_active == True,  # noqa: E712
            Address.is_default == True,  # noqa: E712
        )
        return list(session.exec(stmt).all())

    def unset_defaults(
        self,
        session: Session,
        user_id: uuid.UUID,
        types: list[str],
    ) -> None:
        """Clear is_default on the user's addresses of the given types. Does not commit."""
        stmt = (
            update(Address)
            .where(Address.user_id == user_id, Address.type.in_(types))
            .values(is_default=False)
        )
        session.exec(stmt)  # type: ignore[call-overload]

    def save(self, session: Session, address: Address) -> Address:
        session.add(address)
        session.commit()
        session.refresh(address)
        return address
