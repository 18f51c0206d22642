# app/services/category_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.category import MAX_CATEGORY_LEVEL, Category
from app.repositories.category_repo import CategoryRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.category import (
    CategoryCountsRefreshed,
    CategoryCreate,
    CategoryDetail,
    CategoryList,
    CategoryProducts,
    CategoryRead,
    CategoryRef,
    CategoryTreeNode,
    CategoryUpdate,
    CategoryWithChildren,
)
from app.schemas.product import ProductRead
from app.services.product_service import slugify

logger = logging.getLogger(__name__)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class CategoryService:
    """
    Category tree maintenance.

    Responsibilities:
      - unique name & slug
      - level bookkeeping when a category is created or moved
      - cycle and depth checks on moves
      - refusing to delete categories that are still in use
    Public lookups accept either the id or the slug and hide inactive
    categories.
    """

    def __init__(self, repo: CategoryRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    # ----- Lookups -----

    def get_category_by_id(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.repo.get_by_id(session, category_id)
        if category is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )
        return category

    def resolve(self, session: Session, ref: str, only_active: bool = True) -> Category:
        """Find a category by id or slug."""
        category = None
        try:
            category = self.repo.get_by_id(session, uuid.UUID(ref))
        except ValueError:
            category = self.repo.get_by_slug(session, ref)
        if category is None or (only_active and not category.is_active):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )
        return category

    def hierarchy(self, session: Session, category: Category) -> list[CategoryRef]:
        """Path from the top-level ancestor down to `category`."""
        path = [CategoryRef.model_validate(category)]
        current = category
        while current.parent_id is not None:
            parent = self.repo.get_by_id(session, current.parent_id)
            if parent is None:
                break
            path.append(CategoryRef.model_validate(parent))
            current = parent
        path.reverse()
        return path

    def _with_children(self, session: Session, category: Category) -> CategoryWithChildren:
        children = self.repo.list_children(session, category.id, only_active=True)
        return CategoryWithChildren(
            **CategoryRead.model_validate(category).model_dump(),
            children=[CategoryRef.model_validate(c) for c in children],
        )

    # ----- Public reads -----

    def list_categories(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 20,
        is_active: bool | None = True,
        featured: bool | None = None,
        level: int | None = None,
        parent_id: uuid.UUID | None = None,
    ) -> CategoryList:
        filters = dict(is_active=is_active, featured=featured, level=level, parent_id=parent_id)
        categories = self.repo.list_categories(session, skip=skip, limit=limit, **filters)
        return CategoryList(
            items=[self._with_children(session, c) for c in categories],
            total=self.repo.count(session, **filters),
            skip=skip,
            limit=limit,
        )

    def tree(self, session: Session) -> list[CategoryTreeNode]:
        """
        Active categories nested under their parents. A category whose
        parent is inactive is left out together with its subtree.
        """
        categories = self.repo.list_all(session, only_active=True)
        nodes = {c.id: CategoryTreeNode(**CategoryRead.model_validate(c).model_dump()) for c in categories}
        roots: list[CategoryTreeNode] = []
        for c in categories:
            node = nodes[c.id]
            if c.parent_id is None:
                roots.append(node)
            elif c.parent_id in nodes:
                nodes[c.parent_id].children.append(node)
        return roots

    def featured(self, session: Session, limit: int = 8) -> list[CategoryRead]:
        categories = self.repo.list_categories(session, limit=limit, is_active=True, featured=True)
        return [CategoryRead.model_validate(c) for c in categories]

    def top_level(self, session: Session) -> list[CategoryWithChildren]:
        categories = self.repo.list_categories(session, limit=1000, is_active=True, top_level=True)
        return [self._with_children(session, c) for c in categories]

    def get_category(self, session: Session, ref: str) -> CategoryDetail:
        category = self.resolve(session, ref)
        parent = self.repo.get_by_id(session, category.parent_id) if category.parent_id else None
        return CategoryDetail(
            **self._with_children(session, category).model_dump(),
            parent=CategoryRef.model_validate(parent) if parent else None,
            hierarchy=self.hierarchy(session, category),
        )

    def list_products(
        self,
        session: Session,
        ref: str,
        skip: int = 0,
        limit: int = 20,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> CategoryProducts:
        """
        Active, in-stock products of the category and all of its subcategories.
        """
        category = self.resolve(session, ref)
        filters = dict(
            only_active=True,
            category_ids=[category.id, *self.repo.descendant_ids(session, category.id)],
            min_price=min_price,
            max_price=max_price,
            in_stock=True,
        )
        products = self.product_repo.list_products(session, skip=skip, limit=limit, **filters)
        return CategoryProducts(
            category=CategoryRef.model_validate(category),
            hierarchy=self.hierarchy(session, category),
            items=[ProductRead.model_validate(p) for p in products],
            total=self.product_repo.count(session, **filters),
            skip=skip,
            limit=limit,
        )

    # ----- Admin writes -----

    def _ensure_unique(
        self,
        session: Session,
        name: str | None,
        slug: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if name is not None:
            existing = self.repo.get_by_name(session, name)
            if existing and existing.id != exclude_id:
                raise _bad_request("Category name already exists")
        if slug is not None:
            existing = self.repo.get_by_slug(session, slug)
            if existing and existing.id != exclude_id:
                raise _bad_request("Category slug already exists")

    def _parent_level(self, session: Session, parent_id: uuid.UUID | None) -> int:
        """Level a child of `parent_id` would get."""
        if parent_id is None:
            return 0
        parent = self.repo.get_by_id(session, parent_id)
        if parent is None:
            raise _bad_request("Parent category not found")
        if parent.level + 1 > MAX_CATEGORY_LEVEL:
            raise _bad_request(f"Categories cannot be nested deeper than level {MAX_CATEGORY_LEVEL}")
        return parent.level + 1

    def create_category(self, session: Session, payload: CategoryCreate) -> Category:
        slug = slugify(payload.slug or payload.name, fallback="category")
        self._ensure_unique(session, payload.name, slug)
        level = self._parent_level(session, payload.parent_id)

        category = Category(
            **payload.model_dump(exclude={"slug"}),
            slug=slug,
            level=level,
        )
        category = self.repo.save(session, category)
        logger.info("Created category %s (level %s)", category.slug, category.level)
        return category

    def _subtree_depth(self, session: Session, category: Category) -> int:
        """How many levels the deepest descendant sits below `category`."""
        depth = 0
        frontier = [category.id]
        while True:
            children = [c for pid in frontier for c in self.repo.list_children(session, pid)]
            if not children:
                return depth
            depth += 1
            frontier = [c.id for c in children]

    def _relevel_descendants(self, session: Session, category: Category) -> None:
        frontier = [category]
        while frontier:
            nxt = []
            for parent in frontier:
                for child in self.repo.list_children(session, parent.id):
                    child.level = parent.level + 1
                    session.add(child)
                    nxt.append(child)
            frontier = nxt

    def update_category(
        self,
        session: Session,
        category_id: uuid.UUID,
        payload: CategoryUpdate,
    ) -> Category:
        """
        Partial update.

        - Renaming without an explicit slug regenerates the slug.
        - Moving a category re-levels its whole subtree; moving it under
          itself or one of its descendants is rejected.
        """
        category = self.get_category_by_id(session, category_id)
        data = payload.model_dump(exclude_unset=True)

        for field in ("name", "slug", "is_active", "is_featured", "sort_order"):
            if field in data and data[field] is None:
                del data[field]

        slug = None
        if "slug" in data:
            slug = slugify(data.pop("slug"), fallback="category")
        elif "name" in data and data["name"] != category.name:
            slug = slugify(data["name"], fallback="category")
        self._ensure_unique(session, data.get("name"), slug, exclude_id=category.id)
        if slug is not None:
            category.slug = slug

        if "parent_id" in data:
            new_parent = data.pop("parent_id")
            if new_parent != category.parent_id:
                if new_parent is not None and (
                    new_parent == category.id
                    or new_parent in self.repo.descendant_ids(session, category.id)
                ):
                    raise _bad_request("Category cannot be moved under itself or its subcategories")
                level = self._parent_level(session, new_parent)
                if level + self._subtree_depth(session, category) > MAX_CATEGORY_LEVEL:
                    raise _bad_request(
                        f"Categories cannot be nested deeper than level {MAX_CATEGORY_LEVEL}"
                    )
                category.parent_id = new_parent
                category.level = level
                self._relevel_descendants(session, category)

        for key, value in data.items():
            setattr(category, key, value)
        category.updated_at = datetime.now(timezone.utc)

        category = self.repo.save(session, category)
        logger.info("Updated category %s", category.id)
        return category

    def delete_category(self, session: Session, category_id: uuid.UUID) -> None:
        category = self.get_category_by_id(session, category_id)
        if self.repo.count_products(session, category.id) or self.repo.list_children(session, category.id):
            raise _bad_request("Cannot delete category. It contains products or subcategories.")
        self.repo.delete(session, category)
        logger.info("Deleted category %s", category_id)

    def refresh_product_counts(self, session: Session) -> CategoryCountsRefreshed:
        updated = self.repo.refresh_product_counts(session)
        session.commit()
        logger.info("Refreshed product counts for %s categories", updated)
        return CategoryCountsRefreshed(updated=updated)

    def toggle_featured(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.get_category_by_id(session, category_id)
        category.is_featured = not category.is_featured
        category.updated_at = datetime.now(timezone.utc)
        return self.repo.save(session, category)

    def toggle_active(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.get_category_by_id(session, category_id)
        category.is_active = not category.is_active
        category.updated_at = datetime.now(timezone.utc)
        return self.repo.save(session, category)
