# app/services/payment_method_service.py
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.payment_method import PaymentMethod
from app.repositories.payment_method_repo import PaymentMethodRepository
from app.schemas.payment_method import (
    BankCreate,
    CardCheck,
    CardCreate,
    CardValidation,
    PaymentMethodUpdate,
    WalletCreate,
)


def check_card(payload: CardCheck, now: datetime | None = None) -> CardValidation:
    """
    Format and expiry check for card details; nothing is stored or charged.
    A card expires once its expiry month has ended.
    """
    now = now or datetime.now(timezone.utc)
    number = payload.card_number.replace(" ", "").replace("-", "")
    well_formed = (
        number.isdigit()
        and 13 <= len(number) <= 19
        and 1 <= payload.expiry_month <= 12
        and payload.cvv.isdigit()
        and 3 <= len(payload.cvv) <= 4
    )
    is_expired = (payload.expiry_year, payload.expiry_month) < (now.year, now.month)

    if is_expired:
        message = "Payment method has expired"
    elif not well_formed:
        message = "Payment method is invalid"
    else:
        message = "Payment method is valid"
    return CardValidation(
        is_valid=well_formed and not is_expired,
        is_expired=is_expired,
        message=message,
    )


class PaymentMethodService:
    """
    Saved payment methods.

    Full card and account numbers are reduced to their last 4 digits
    before anything is stored. The first saved method becomes the default,
    and making one method default clears the flag on the others.
    """

    def __init__(self, repo: PaymentMethodRepository):
        self.repo = repo

    def get_method(self, session: Session, user_id: uuid.UUID, method_id: uuid.UUID) -> PaymentMethod:
        method = self.repo.get_by_id(session, method_id)
        if not method or method.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Payment method not found",
            )
        return method

    def list_methods(
        self,
        session: Session,
        user_id: uuid.UUID,
        method_type: str | None = None,
    ) -> list[PaymentMethod]:
        return self.repo.list_for_user(session, user_id, method_type)

    def create_method(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CardCreate | BankCreate | WalletCreate,
    ) -> PaymentMethod:
        method = PaymentMethod(
            user_id=user_id,
            type=payload.type,
            holder_name=payload.holder_name,
            is_default=payload.is_default,
        )

        if isinstance(payload, CardCreate):
            method.card_type = payload.card_type
            method.card_last4 = payload.card_number[-4:]
            method.expiry_month = payload.expiry_month
            method.expiry_year = payload.expiry_year
        elif isinstance(payload, BankCreate):
            method.bank_name = payload.bank_name.strip()
            method.account_last4 = payload.account_number[-4:]
            method.routing_number = payload.routing_number
        else:
            method.wallet_provider = payload.wallet_provider
            method.wallet_id = payload.wallet_id.strip()

        if self.repo.count_for_user(session, user_id) == 0:
            method.is_default = True
        if method.is_default:
            self.repo.unset_defaults(session, user_id)

        return self.repo.save(session, method)

    def update_method(
        self,
        session: Session,
        user_id: uuid.UUID,
        method_id: uuid.UUID,
        payload: PaymentMethodUpdate,
    ) -> PaymentMethod:
        method = self.get_method(session, user_id, method_id)

        if method.type != "card" and (
            payload.expiry_month is not None or payload.expiry_year is not None
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only cards have an expiry date",
            )

        if payload.holder_name is not None:
            method.holder_name = payload.holder_name
        if payload.expiry_month is not None:
            method.expiry_month = payload.expiry_month
        if payload.expiry_year is not None:
            method.expiry_year = payload.expiry_year
        if payload.is_default:
            self.repo.unset_defaults(session, user_id, except_id=method.id)
            method.is_default = True

        method.updated_at = datetime.now(timezone.utc)
        return self.repo.save(session, method)

    def set_default(self, session: Session, user_id: uuid.UUID, method_id: uuid.UUID) -> PaymentMethod:
        method = self.get_method(session, user_id, method_id)
        self.repo.unset_defaults(session, user_id, except_id=method.id)
        method.is_default = True
        method.updated_at = datetime.now(timezone.utc)
        return self.repo.save(session, method)

    def delete_method(self, session: Session, user_id: uuid.UUID, method_id: uuid.UUID) -> None:
        """
        Hard delete. If the default goes away, the newest remaining method
        takes over as default.
        """
        method = self.get_method(session, user_id, method_id)
        was_default = method.is_default
        self.repo.delete(session, method)

        if was_default:
            remaining = self.repo.list_for_user(session, user_id)
            if remaining:
                successor = max(remaining, key=lambda m: m.created_at)
                successor.is_default = True
                self.repo.save(session, successor)
