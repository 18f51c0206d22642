# app/repositories/cart_repo.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, select

from app.models.cart import Cart, CartItem

# Dialects with INSERT ... ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CartRepository:

    # ---- Cart aggregate ----

    def get_for_user(self, session: Session, user_id: uuid.UUID) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id)
        return session.exec(stmt).first()

    def get_or_create_for_user(self, session: Session, user_id: uuid.UUID) -> Cart:
        """
        Return the user's cart, creating it on first access.

        Creation is an INSERT ... ON CONFLICT (user_id) DO NOTHING followed by
        a read, so two concurrent first requests from the same user both end
        up with the single row instead of one hitting a duplicate-key error.
        """
        cart = self.get_for_user(session, user_id)
        if cart is not None:
            return cart

        dialect = session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Cart upsert not supported on dialect {dialect!r}")

        now = datetime.now(timezone.utc)
        stmt = (
            insert(Cart)
            .values(
                id=uuid.uuid4(),
                user_id=user_id,
                total_items=0,
                total_price=0.0,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        session.exec(stmt)  # type: ignore[call-overload]
        session.commit()
        return self.get_for_user(session, user_id)  # type: ignore[return-value]

    # ---- Lines ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = select(CartItem).where(CartItem.cart_id == cart_id).order_by(CartItem.added_at)
        return list(session.exec(stmt).all())

    def get_item(
        self, session: Session, cart_id: uuid.UUID, product_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def recalculate(self, session: Session, cart: Cart) -> Cart:
        """
        Recompute derived totals from the lines. Does not commit.
        """
        session.flush()
        items = self.list_items(session, cart.id)
        cart.total_items = sum(it.quantity for it in items)
        cart.total_price = round(sum(it.quantity * it.unit_price for it in items), 2)
        cart.updated_at = datetime.now(timezone.utc)
        session.add(cart)
        return cart

    # CRUD (each commits; used outside checkout)
    def add_item(self, session: Session, cart: Cart, item: CartItem) -> CartItem:
        session.add(item)
        self.recalculate(session, cart)
        session.commit()
        session.refresh(item)
        return item

    def update_item(self, session: Session, cart: Cart, item: CartItem) -> CartItem:
        session.add(item)
        self.recalculate(session, cart)
        session.commit()
        session.refresh(item)
        return item

    def delete_item(self, session: Session, cart: Cart, item: CartItem) -> None:
        session.delete(item)
        self.recalculate(session, cart)
        session.commit()

    def clear(self, session: Session, cart: Cart) -> int:
        """
        Empty the cart and zero its totals. Does not commit, so checkout can
        clear the cart inside the order transaction.

        Returns the number of lines deleted.
        """
        result = session.exec(delete(CartItem).where(CartItem.cart_id == cart.id))  # type: ignore[call-overload]
        cart.total_items = 0
        cart.total_price = 0.0
        cart.updated_at = datetime.now(timezone.utc)
        session.add(cart)
        return result.rowcount
