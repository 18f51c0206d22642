# app/services/cart_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.errors import AppError, INSUFFICIENT_STOCK
from app.models.cart import Cart, CartItem, MAX_LINE_QUANTITY
from app.models.product import Product
from app.models.wishlist import WishlistItem
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.wishlist_repo import WishlistRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartItemRead,
    CartEstimate,
    CartSummary,
    CartValidation,
    InvalidCartItem,
)
from app.services.pricing import compute_totals

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - ensure only 'user' accounts use cart (via router dependency)
      - validate product existence, active flag and stock
      - keep unit_price equal to the product's effective price
      - drop lines that can no longer be bought when the cart is read
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        wishlist_repo: WishlistRepository,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.wishlist_repo = wishlist_repo

    # ---- internal helpers ----

    def _get_valid_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Product is no longer available",
            )
        return product

    @staticmethod
    def _check_quantity(product: Product, quantity: int) -> None:
        if quantity > MAX_LINE_QUANTITY:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Maximum {MAX_LINE_QUANTITY} items per product",
            )
        if quantity > product.stock:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                f"Insufficient stock for {product.name}. Only {product.stock} items available",
                INSUFFICIENT_STOCK,
            )

    def _summary(
        self,
        session: Session,
        cart: Cart,
        invalid: list[InvalidCartItem] | None = None,
    ) -> CartSummary:
        item_reads: list[CartItemRead] = []
        for it in self.cart_repo.list_items(session, cart.id):
            product = self.product_repo.get_by_id(session, it.product_id)
            item_reads.append(
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    product_name=product.name if product else None,
                    product_hero_image_url=product.hero_image_url if product else None,
                    stock=product.stock if product else None,
                    line_total=round(it.quantity * it.unit_price, 2),
                    added_at=it.added_at,
                )
            )

        return CartSummary(
            id=cart.id,
            items=item_reads,
            total_items=cart.total_items,
            total_price=cart.total_price,
            invalid_items=invalid or [],
        )

    # ---- public operations ----

    def get_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Return the user's cart, creating it on first access.

        Lines whose product vanished, was deactivated or no longer has
        enough stock are removed and reported in `invalid_items`.
        Prices of the remaining lines are refreshed to the live
        effective price.
        """
        cart = self.cart_repo.get_or_create_for_user(session, user_id)

        invalid: list[InvalidCartItem] = []
        changed = False

        for it in self.cart_repo.list_items(session, cart.id):
            product = self.product_repo.get_by_id(session, it.product_id)
            reason = None
            if product is None:
                reason = "Product no longer exists"
            elif not product.is_active:
                reason = "Product is no longer available"
            elif product.stock < it.quantity:
                reason = f"Only {product.stock} items available"

            if reason:
                invalid.append(
                    InvalidCartItem(
                        product_id=it.product_id,
                        name=product.name if product else None,
                        reason=reason,
                    )
                )
                session.delete(it)
                changed = True
            elif it.unit_price != product.effective_price:
                it.unit_price = product.effective_price
                session.add(it)
                changed = True

        if changed:
            self.cart_repo.recalculate(session, cart)
            session.commit()
            session.refresh(cart)
            if invalid:
                logger.info("Dropped %d stale line(s) from cart %s", len(invalid), cart.id)

        return self._summary(session, cart, invalid)

    def add_to_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a product to the user's cart.

        Rules:
          - product must exist and be active
          - quantity + existing_quantity <= min(stock, MAX_LINE_QUANTITY)
          - unit_price is the current effective price
        """
        product = self._get_valid_product(session, payload.product_id)
        cart = self.cart_repo.get_or_create_for_user(session, user_id)

        existing = self.cart_repo.get_item(session, cart.id, product.id)
        if existing:
            new_qty = existing.quantity + payload.quantity
            self._check_quantity(product, new_qty)
            existing.quantity = new_qty
            existing.unit_price = product.effective_price
            self.cart_repo.update_item(session, cart, existing)
        else:
            self._check_quantity(product, payload.quantity)
            item = CartItem(
                cart_id=cart.id,
                product_id=product.id,
                quantity=payload.quantity,
                unit_price=product.effective_price,
            )
            self.cart_repo.add_item(session, cart, item)

        session.refresh(cart)
        return self._summary(session, cart)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartSummary:
        """
        Set the quantity of a line. Quantity 0 removes it.
        """
        cart = self.cart_repo.get_or_create_for_user(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, product_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not in cart",
            )

        if payload.quantity == 0:
            self.cart_repo.delete_item(session, cart, item)
        else:
            product = self._get_valid_product(session, product_id)
            self._check_quantity(product, payload.quantity)
            item.quantity = payload.quantity
            item.unit_price = product.effective_price
            self.cart_repo.update_item(session, cart, item)

        session.refresh(cart)
        return self._summary(session, cart)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartSummary:
        cart = self.cart_repo.get_or_create_for_user(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, product_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not found in cart",
            )

        self.cart_repo.delete_item(session, cart, item)
        session.refresh(cart)
        return self._summary(session, cart)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Clear all items from the cart and return the empty summary.
        """
        cart = self.cart_repo.get_or_create_for_user(session, user_id)
        self.cart_repo.clear(session, cart)
        session.commit()
        session.refresh(cart)
        return self._summary(session, cart)

    def estimate(self, session: Session, user_id: uuid.UUID) -> CartEstimate:
        """
        Totals the cart would be charged at checkout, before any coupon.
        Stale lines are dropped first, as in get_cart.
        """
        cart = self.get_cart(session, user_id)
        if not cart.items:
            return CartEstimate(
                total_items=0,
                items_count=0,
                subtotal=0.0,
                estimated_tax=0.0,
                estimated_shipping=0.0,
                estimated_total=0.0,
                invalid_items=cart.invalid_items,
            )

        totals = compute_totals([(it.unit_price, it.quantity) for it in cart.items])
        return CartEstimate(
            total_items=cart.total_items,
            items_count=len(cart.items),
            subtotal=totals.items_price,
            estimated_tax=totals.tax_price,
            estimated_shipping=totals.shipping_price,
            estimated_total=totals.total_price,
            invalid_items=cart.invalid_items,
        )

    def validate(self, session: Session, user_id: uuid.UUID) -> CartValidation:
        cart = self.get_cart(session, user_id)
        if cart.invalid_items:
            message = "Some items were removed from your cart"
        elif not cart.items:
            message = "Cart is empty"
        else:
            message = "Cart is valid"
        return CartValidation(
            is_valid=bool(cart.items) and not cart.invalid_items,
            message=message,
            cart=cart,
        )

    def move_to_wishlist(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartSummary:
        """
        Remove a line from the cart and save its product to the wishlist,
        in one commit. A product already in the wishlist stays there once.
        """
        cart = self.cart_repo.get_or_create_for_user(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, product_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not found in cart",
            )

        if self.wishlist_repo.get_item(session, user_id, product_id) is None:
            session.add(WishlistItem(user_id=user_id, product_id=product_id))
        self.cart_repo.delete_item(session, cart, item)
        logger.info("Moved product %s from cart to wishlist for user %s", product_id, user_id)

        session.refresh(cart)
        return self._summary(session, cart)
