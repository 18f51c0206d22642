# app/routers/wishlist.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.wishlist_repo import WishlistRepository
from app.schemas.cart import CartSummary
from app.schemas.wishlist import (
    MoveToCart,
    WishlistAdd,
    WishlistCheck,
    WishlistCount,
    WishlistRead,
)
from app.services.cart_service import CartService
from app.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

product_repo = ProductRepository()
wishlist_repo = WishlistRepository()
service = WishlistService(
    wishlist_repo,
    product_repo,
    CartService(CartRepository(), product_repo, wishlist_repo),
)


@router.get("", response_model=WishlistRead)
def get_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.get_wishlist(session, current_user.id)


@router.post("", response_model=WishlistRead)
def add_to_wishlist(
    payload: WishlistAdd,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.add(session, current_user.id, payload.product_id)


@router.get("/count", response_model=WishlistCount)
def wishlist_count(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return WishlistCount(count=service.count(session, current_user.id))


@router.get("/check/{product_id}", response_model=WishlistCheck)
def check_wishlist(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.check(session, current_user.id, product_id)


@router.post("/{product_id}/move-to-cart", response_model=CartSummary)
def move_to_cart(
    product_id: uuid.UUID,
    payload: MoveToCart | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Move a wishlist product into the cart (default quantity 1).
    """
    quantity = payload.quantity if payload else 1
    return service.move_to_cart(session, current_user.id, product_id, quantity)


@router.delete("/{product_id}", response_model=WishlistRead)
def remove_from_wishlist(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.remove(session, current_user.id, product_id)


@router.delete("", response_model=WishlistRead)
def clear_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.clear(session, current_user.id)
