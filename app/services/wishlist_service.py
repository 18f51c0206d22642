# app/services/wishlist_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.wishlist import WishlistItem
from app.repositories.product_repo import ProductRepository
from app.repositories.wishlist_repo import WishlistRepository
from app.schemas.cart import CartItemCreate, CartSummary
from app.schemas.product import ProductRead
from app.schemas.wishlist import WishlistCheck, WishlistItemRead, WishlistRead
from app.services.cart_service import CartService


class WishlistService:
    """
    Saved-for-later products. Soft-deleted products stay in the wishlist
    but are hidden from listings until they come back.
    """

    def __init__(
        self,
        repo: WishlistRepository,
        product_repo: ProductRepository,
        cart_service: CartService,
    ):
        self.repo = repo
        self.product_repo = product_repo
        self.cart_service = cart_service

    def get_wishlist(self, session: Session, user_id: uuid.UUID) -> WishlistRead:
        items: list[WishlistItemRead] = []
        for entry in self.repo.list_for_user(session, user_id):
            product = self.product_repo.get_by_id(session, entry.product_id)
            if product is None or not product.is_active:
                continue
            items.append(
                WishlistItemRead(product=ProductRead.model_validate(product), added_at=entry.added_at)
            )
        return WishlistRead(items=items, count=len(items))

    def add(self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID) -> WishlistRead:
        product = self.product_repo.get_by_id(session, product_id)
        if not product or not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if self.repo.get_item(session, user_id, product_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Product already in wishlist",
            )
        self.repo.create(session, WishlistItem(user_id=user_id, product_id=product_id))
        return self.get_wishlist(session, user_id)

    def remove(self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID) -> WishlistRead:
        entry = self.repo.get_item(session, user_id, product_id)
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not in wishlist",
            )
        self.repo.delete(session, entry)
        return self.get_wishlist(session, user_id)

    def check(self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID) -> WishlistCheck:
        return WishlistCheck(
            product_id=product_id,
            in_wishlist=self.repo.get_item(session, user_id, product_id) is not None,
        )

    def count(self, session: Session, user_id: uuid.UUID) -> int:
        return self.repo.count_for_user(session, user_id)

    def clear(self, session: Session, user_id: uuid.UUID) -> WishlistRead:
        self.repo.clear(session, user_id)
        return WishlistRead(items=[], count=0)

    def move_to_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int = 1,
    ) -> CartSummary:
        """
        Add the product to the cart, then drop it from the wishlist.
        Cart rules (active product, stock, per-line maximum) apply unchanged.
        """
        entry = self.repo.get_item(session, user_id, product_id)
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not in wishlist",
            )
        cart = self.cart_service.add_to_cart(
            session, user_id, CartItemCreate(product_id=product_id, quantity=quantity)
        )
        self.repo.delete(session, entry)
        return cart
