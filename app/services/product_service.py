# app/services/product_service.py
import logging
import re
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.storage_utils import (
    upload_to_storage,
    delete_public_url,
    generate_filename,
)
from app.models.product import Product
from app.repositories.category_repo import CategoryRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductList, ProductRead, ProductUpdate

logger = logging.getLogger(__name__)

# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

# Fields an update may explicitly clear with null
NULLABLE_FIELDS = ("description", "brand", "discount_price", "hero_image_url", "category_id")


def slugify(raw: str, fallback: str = "item") -> str:
    """
    Basic slugification:
      - lowercase
      - non-alphanumeric -> '-'
      - collapse multiple '-'
      - strip leading/trailing '-'
    """
    value = raw.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    return value or fallback


class ProductService:
    """
    Business logic for the catalog.

    Responsibilities:
      - slug generation & uniqueness
      - validation beyond pydantic (discount below price after a partial update)
      - hero image upload orchestration with Supabase Storage
      - soft delete, so carts and order lines keep resolving the product
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(self, repo: ProductRepository, category_repo: CategoryRepository):
        self.repo = repo
        self.category_repo = category_repo

    # ----- Helpers -----

    @staticmethod
    def _slugify(raw: str) -> str:
        return slugify(raw, fallback="product")

    def _check_category(self, session: Session, category_id: uuid.UUID | None) -> None:
        if category_id is None:
            return
        category = self.category_repo.get_by_id(session, category_id)
        if category is None or not category.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid category",
            )

    def category_scope(self, session: Session, category_id: uuid.UUID) -> list[uuid.UUID]:
        """The category and all of its subcategories."""
        return [category_id, *self.category_repo.descendant_ids(session, category_id)]

    def _ensure_unique_slug(self, session: Session, base_slug: str) -> str:
        """
        Ensure slug is unique by appending -2, -3, ... if needed.
        """
        slug = base_slug
        i = 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base_slug}-{i}"
            i += 1
        return slug

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
            )

        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Image too large (max 5MB).",
            )

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        category_id: uuid.UUID | None = None,
        search: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        featured: bool | None = None,
        in_stock: bool = False,
    ) -> ProductList:
        """
        Filtering by category includes products of its subcategories.
        """
        filters = dict(
            only_active=only_active,
            category_ids=self.category_scope(session, category_id) if category_id else None,
            search=search,
            min_price=min_price,
            max_price=max_price,
            featured=featured,
            in_stock=in_stock,
        )
        products = self.repo.list_products(session, skip=skip, limit=limit, **filters)
        total = self.repo.count(session, **filters)
        return ProductList(
            items=[ProductRead.model_validate(p) for p in products],
            total=total,
            skip=skip,
            limit=limit,
        )

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_public_product(self, session: Session, product_id: uuid.UUID) -> Product:
        """Like get_product, but soft-deleted products are hidden."""
        product = self.get_product(session, product_id)
        if not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
    ) -> Product:
        """
        Create a new product with a unique slug.

        - If slug is provided => slugify & ensure unique.
        - Else => slugify from name & ensure unique.
        """
        self._check_category(session, payload.category_id)
        raw_slug = payload.slug or payload.name
        slug = self._ensure_unique_slug(session, self._slugify(raw_slug))

        product = Product(
            **payload.model_dump(exclude={"slug"}),
            slug=slug,
        )
        product = self.repo.create(session, product)
        logger.info("Created product %s (%s)", product.slug, product.id)
        return product

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update of a product.

        - If slug is changed, enforce uniqueness.
        - The resulting discount_price must stay below price.
        """
        product = self.get_product(session, product_id)
        data = payload.model_dump(exclude_unset=True)

        slug = data.pop("slug", None)
        if slug is not None:
            new_base_slug = self._slugify(slug)
            if new_base_slug != product.slug:
                product.slug = self._ensure_unique_slug(session, new_base_slug)

        if data.get("category_id") is not None:
            self._check_category(session, data["category_id"])

        price = data.get("price", product.price)
        discount = data.get("discount_price", product.discount_price)
        if discount is not None and price is not None and discount >= price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="discount_price must be less than price",
            )

        for key, value in data.items():
            if value is None and key not in NULLABLE_FIELDS:
                continue
            setattr(product, key, value)

        product.updated_at = datetime.now(timezone.utc)
        return self.repo.update(session, product)

    def delete_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> None:
        """
        Soft delete: the row stays so carts and order history still resolve it.
        """
        product = self.get_product(session, product_id)
        product.is_active = False
        product.updated_at = datetime.now(timezone.utc)
        self.repo.update(session, product)
        logger.info("Deactivated product %s", product.id)

    # ----- Hero image -----

    def set_hero_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product:
        """
        Upload or replace the hero image for a product.

        - Validates content type + size.
        - Deletes old hero image from Storage if present.
        - Uploads new hero image under a new random filename.
        """
        product = self.get_product(session, product_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        if product.hero_image_url:
            delete_public_url(product.hero_image_url)

        path = f"products/{product.id}/hero/{generate_filename(ext)}"
        product.hero_image_url = upload_to_storage(path, file_bytes, content_type)
        product.updated_at = datetime.now(timezone.utc)

        return self.repo.update(session, product)
