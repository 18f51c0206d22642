# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.wishlist_repo import WishlistRepository
from app.schemas.cart import (
    CartEstimate,
    CartItemCreate,
    CartItemUpdate,
    CartSummary,
    CartValidation,
)
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo, WishlistRepository())


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get current user's cart.

    Lines that can no longer be bought are removed and listed in
    `invalid_items`; remaining prices are refreshed.

    Auth:
      - Only role='user' (customer) can access.
      - Admins are forbidden.
    """
    return service.get_cart(session, current_user.id)


@router.get("/summary", response_model=CartEstimate)
def cart_summary(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Estimated checkout totals (subtotal, tax, shipping) for the current cart.
    """
    return service.estimate(session, current_user.id)


@router.post("/validate", response_model=CartValidation)
def validate_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Check that every line can still be bought. Lines that cannot are removed.
    """
    return service.validate(session, current_user.id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Add a product to the cart. Adding a product already in the cart
    increases its quantity.
    """
    return service.add_to_cart(session, current_user.id, payload)


@router.patch("/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Set the quantity for a product in the cart (0 removes it).
    """
    return service.update_quantity(session, current_user.id, product_id, payload)


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.remove_item(session, current_user.id, product_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Remove every line from the cart.
    """
    return service.clear_cart(session, current_user.id)


@router.post("/{product_id}/move-to-wishlist", response_model=CartSummary)
def move_to_wishlist(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Save a cart line for later: remove it from the cart and add the
    product to the wishlist.
    """
    return service.move_to_wishlist(session, current_user.id, product_id)
