# app/routers/payment_methods.py
import uuid
from typing import Literal

from fastapi import APIRouter, Body, Depends, status
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.payment_method_repo import PaymentMethodRepository
from app.schemas.payment_method import (
    CardCheck,
    CardValidation,
    PaymentMethodCreate,
    PaymentMethodRead,
    PaymentMethodUpdate,
)
from app.services.payment_method_service import PaymentMethodService, check_card

router = APIRouter(prefix="/payment-methods", tags=["Payment Methods"])

service = PaymentMethodService(PaymentMethodRepository())


@router.get("", response_model=list[PaymentMethodRead])
def list_payment_methods(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    type: Literal["card", "bank", "wallet"] | None = None,
):
    return service.list_methods(session, current_user.id, type)


@router.post("/validate", response_model=CardValidation)
def validate_payment_method(
    payload: CardCheck,
    current_user: User = Depends(require_user),
):
    """
    Check card details (number length, CVV, expiry) without saving them.
    """
    return check_card(payload)


@router.get("/{method_id}", response_model=PaymentMethodRead)
def get_payment_method(
    method_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.get_method(session, current_user.id, method_id)


@router.post("", response_model=PaymentMethodRead, status_code=status.HTTP_201_CREATED)
def create_payment_method(
    payload: PaymentMethodCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Save a card, bank account or wallet (`type` selects the variant).

    Card and account numbers are reduced to their last 4 digits.
    """
    return service.create_method(session, current_user.id, payload)


@router.put("/{method_id}", response_model=PaymentMethodRead)
def update_payment_method(
    method_id: uuid.UUID,
    payload: PaymentMethodUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.update_method(session, current_user.id, method_id, payload)


@router.put("/{method_id}/default", response_model=PaymentMethodRead)
def set_default_payment_method(
    method_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.set_default(session, current_user.id, method_id)


@router.delete("/{method_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment_method(
    method_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    service.delete_method(session, current_user.id, method_id)
    return None
