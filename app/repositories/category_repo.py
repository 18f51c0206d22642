# app/repositories/category_repo.py
import uuid

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.models.category import Category
from app.models.product import Product


class CategoryRepository:
    """
    Data access layer for Category.

    Listing order everywhere is (level, sort_order, name).
    """

    def get_by_id(self, session: Session, category_id: uuid.UUID) -> Category | None:
        return session.get(Category, category_id)

    def get_by_slug(self, session: Session, slug: str) -> Category | None:
        stmt = select(Category).where(Category.slug == slug)
        return session.exec(stmt).first()

    def get_by_name(self, session: Session, name: str) -> Category | None:
        stmt = select(Category).where(Category.name == name)
        return session.exec(stmt).first()

    def _filtered(
        self,
        stmt,
        is_active: bool | None,
        featured: bool | None,
        level: int | None,
        parent_id: uuid.UUID | None,
        top_level: bool,
    ):
        if is_active is not None:
            stmt = stmt.where(Category.is_active == is_active)
        if featured is not None:
            stmt = stmt.where(Category.is_featured == featured)
        if level is not None:
            stmt = stmt.where(Category.level == level)
        if top_level:
            stmt = stmt.where(Category.parent_id == None)  # noqa: E711
        elif parent_id is not None:
            stmt = stmt.where(Category.parent_id == parent_id)
        return stmt

    def list_categories(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 20,
        is_active: bool | None = True,
        featured: bool | None = None,
        level: int | None = None,
        parent_id: uuid.UUID | None = None,
        top_level: bool = False,
    ) -> list[Category]:
        stmt = self._filtered(select(Category), is_active, featured, level, parent_id, top_level)
        stmt = (
            stmt.order_by(Category.level, Category.sort_order, Category.name)
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def count(
        self,
        session: Session,
        is_active: bool | None = True,
        featured: bool | None = None,
        level: int | None = None,
        parent_id: uuid.UUID | None = None,
        top_level: bool = False,
    ) -> int:
        stmt = self._filtered(
            select(func.count()).select_from(Category),
            is_active,
            featured,
            level,
            parent_id,
            top_level,
        )
        return int(session.exec(stmt).one() or 0)

    def list_all(self, session: Session, only_active: bool = True) -> list[Category]:
        stmt = select(Category)
        if only_active:
            stmt = stmt.where(Category.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Category.level, Category.sort_order, Category.name)
        return list(session.exec(stmt).all())

    def list_children(
        self,
        session: Session,
        parent_id: uuid.UUID,
        only_active: bool = False,
    ) -> list[Category]:
        stmt = select(Category).where(Category.parent_id == parent_id)
        if only_active:
            stmt = stmt.where(Category.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Category.sort_order, Category.name)
        return list(session.exec(stmt).all())

    def descendant_ids(self, session: Session, category_id: uuid.UUID) -> list[uuid.UUID]:
        """
        Ids of every category below `category_id` (not including it), breadth first.
        """
        found: list[uuid.UUID] = []
        frontier = [category_id]
        while frontier:
            stmt = select(Category.id).where(Category.parent_id.in_(frontier))
            frontier = list(session.exec(stmt).all())
            found.extend(frontier)
        return found

    def count_products(self, session: Session, category_id: uuid.UUID) -> int:
        """Products pointing at the category, active or not."""
        stmt = select(func.count()).select_from(Product).where(Product.category_id == category_id)
        return int(session.exec(stmt).one() or 0)

    def save(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def delete(self, session: Session, category: Category) -> None:
        session.delete(category)
        session.commit()

    def refresh_product_counts(self, session: Session) -> int:
        """
        Set product_count of every category to its number of active products
        in one UPDATE. Does not commit. Returns the number of categories updated.
        """
        active_products = (
            select(func.count(Product.id))
            .where(
                Product.category_id == Category.id,
                Product.is_active == True,  # noqa: E712
            )
            .scalar_subquery()
        )
        result = session.exec(update(Category).values(product_count=active_products))  # type: ignore[call-overload]
        return result.rowcount
