# app/repositories/product_repo.py
import uuid

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    - Stock mutations do NOT commit: they run inside the caller's
      transaction (checkout, cancellation, refund).
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def _filtered(
        self,
        stmt,
        only_active: bool,
        category_ids: list[uuid.UUID] | None,
        search: str | None,
        min_price: float | None,
        max_price: float | None,
        in_stock: bool = False,
        featured: bool | None = None,
    ):
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        if category_ids is not None:
            stmt = stmt.where(Product.category_id.in_(category_ids))
        if in_stock:
            stmt = stmt.where(Product.stock > 0)
        if featured is not None:
            stmt = stmt.where(Product.is_featured == featured)
        if search:
            stmt = stmt.where(Product.name.ilike(f"%{search}%"))
        if min_price is not None:
            stmt = stmt.where(Product.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price <= max_price)
        return stmt

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        category_ids: list[uuid.UUID] | None = None,
        search: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        featured: bool | None = None,
        in_stock: bool = False,
    ) -> list[Product]:
        stmt = self._filtered(
            select(Product), only_active, category_ids, search, min_price, max_price, in_stock, featured
        )
        stmt = stmt.order_by(Product.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def count(
        self,
        session: Session,
        only_active: bool = True,
        category_ids: list[uuid.UUID] | None = None,
        search: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        in_stock: bool = False,
        featured: bool | None = None,
    ) -> int:
        stmt = self._filtered(
            select(func.count()).select_from(Product),
            only_active,
            category_ids,
            search,
            min_price,
            max_price,
            in_stock,
            featured,
        )
        return int(session.exec(stmt).one() or 0)

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    # ----- Stock -----

    def current_stock(self, session: Session, product_id: uuid.UUID) -> int:
        """Stock as stored right now, bypassing the identity map. 0 if the row is gone."""
        stmt = select(Product.stock).where(Product.id == product_id)
        value = session.exec(stmt).first()
        return int(value or 0)

    def decrement_stock_if_available(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Atomically take `quantity` units: stock = stock - quantity WHERE stock >= quantity.

        Returns:
            True if the row was updated, False if stock was insufficient
            (or the product vanished) at the time of the UPDATE.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    def increment_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Atomically put `quantity` units back. Returns False if the product row is gone.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1
