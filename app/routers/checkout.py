# app/routers/checkout.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_user
from app.core.payment_gateway import PaymentGateway, get_payment_gateway
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.checkout import (
    ApplyCouponRequest,
    CheckoutResponse,
    CheckoutSummary,
    CheckoutValidation,
    CouponResult,
    CreateOrderRequest,
    PaymentMethodOptions,
)
from app.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["Checkout"])

service = CheckoutService(
    CartRepository(),
    ProductRepository(),
    OrderRepository(),
    AddressRepository(),
)


@router.post(
    "/create-order",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: CreateOrderRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Place an order from the current user's cart.

    Error codes (400):
      EMPTY_CART, PRODUCT_GONE, PRODUCT_INACTIVE, INSUFFICIENT_STOCK,
      INVALID_ADDRESS, INVALID_PAYMENT_METHOD, INVALID_COUPON, PAYMENT_DECLINED
    """
    return service.create_order(session, current_user, payload, gateway)


@router.get("/summary", response_model=CheckoutSummary)
def get_checkout_summary(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.get_summary(session, current_user.id)


@router.post("/validate", response_model=CheckoutValidation)
def validate_checkout(
    payload: CreateOrderRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Dry run of the order checks. Nothing is charged or written.
    """
    return service.validate(session, current_user.id, payload)


@router.post("/apply-coupon", response_model=CouponResult)
def apply_coupon(
    payload: ApplyCouponRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.apply_coupon(session, current_user.id, payload.coupon_code)


@router.get("/payment-methods", response_model=PaymentMethodOptions)
def list_payment_methods():
    """
    Payment methods accepted at checkout (public).
    """
    return service.payment_methods()
