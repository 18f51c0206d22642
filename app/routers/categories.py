# app/routers/categories.py
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.category_repo import CategoryRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.category import (
    CategoryCountsRefreshed,
    CategoryCreate,
    CategoryDetail,
    CategoryList,
    CategoryProducts,
    CategoryRead,
    CategoryTreeNode,
    CategoryUpdate,
    CategoryWithChildren,
)
from app.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])

service = CategoryService(CategoryRepository(), ProductRepository())

ACTIVE_FILTER = {"true": True, "false": False, "all": None}


# -------- Public endpoints --------


@router.get("", response_model=CategoryList)
def list_categories(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 20,
    active: Literal["true", "false", "all"] = "true",
    featured: bool | None = None,
    level: int | None = None,
    parent_id: uuid.UUID | None = None,
):
    """
    List categories with their direct children.

    - Public endpoint.
    - Filters: active (true/false/all), featured, level, parent.
    """
    return service.list_categories(
        session,
        skip=skip,
        limit=min(limit, 100),
        is_active=ACTIVE_FILTER[active],
        featured=featured,
        level=level,
        parent_id=parent_id,
    )


@router.get("/tree", response_model=list[CategoryTreeNode])
def category_tree(session: Session = Depends(get_session)):
    """Whole active category tree."""
    return service.tree(session)


@router.get("/featured", response_model=list[CategoryRead])
def featured_categories(
    session: Session = Depends(get_session),
    limit: int = 8,
):
    return service.featured(session, limit=min(limit, 50))


@router.get("/top-level", response_model=list[CategoryWithChildren])
def top_level_categories(session: Session = Depends(get_session)):
    return service.top_level(session)


@router.get("/{ref}", response_model=CategoryDetail)
def get_category(ref: str, session: Session = Depends(get_session)):
    """
    Get an active category by id or slug, with its parent, children
    and breadcrumb hierarchy.
    """
    return service.get_category(session, ref)


@router.get("/{ref}/products", response_model=CategoryProducts)
def category_products(
    ref: str,
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 20,
    min_price: float | None = None,
    max_price: float | None = None,
):
    """
    Active, in-stock products of the category and its subcategories.
    """
    return service.list_products(
        session,
        ref,
        skip=skip,
        limit=min(limit, 100),
        min_price=min_price,
        max_price=max_price,
    )


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
):
    return service.create_category(session, payload)


@router.post(
    "/update-counts",
    response_model=CategoryCountsRefreshed,
    dependencies=[Depends(require_admin)],
)
def update_product_counts(session: Session = Depends(get_session)):
    """
    Recount active products for every category (admin only).
    """
    return service.refresh_product_counts(session)


@router.patch(
    "/{category_id}",
    response_model=CategoryRead,
    dependencies=[Depends(require_admin)],
)
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a category (admin only). Moving it re-levels its subcategories.
    """
    return service.update_category(session, category_id, payload)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete an unused category (admin only).
    """
    service.delete_category(session, category_id)
    return None


@router.patch(
    "/{category_id}/toggle-featured",
    response_model=CategoryRead,
    dependencies=[Depends(require_admin)],
)
def toggle_featured(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.toggle_featured(session, category_id)


@router.patch(
    "/{category_id}/toggle-active",
    response_model=CategoryRead,
    dependencies=[Depends(require_admin)],
)
def toggle_active(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.toggle_active(session, category_id)
