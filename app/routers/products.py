# app/routers/products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.category_repo import CategoryRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository
from app.schemas.product import (
    ProductCreate,
    ProductList,
    ProductRead,
    ProductUpdate,
)
from app.schemas.review import ReviewCreate, ReviewList, ReviewRead
from app.services.product_service import ProductService
from app.services.review_service import ReviewService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo, CategoryRepository())
review_service = ReviewService(ReviewRepository(), repo)


# -------- Public endpoints --------


@router.get("", response_model=ProductList)
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    category_id: uuid.UUID | None = None,
    search: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    featured: bool | None = None,
    in_stock: bool = False,
):
    """
    List active products.

    - Public endpoint.
    - Filters: category (including its subcategories), name search,
      list price range, featured flag, in stock.
    """
    return service.list_products(
        session,
        skip=skip,
        limit=min(limit, 100),
        category_id=category_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        in_stock=in_stock,
    )


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single active product by id.

    - Public endpoint.
    """
    return ProductRead.model_validate(service.get_public_product(session, product_id))


# -------- Reviews --------


@router.get("/{product_id}/reviews", response_model=ReviewList)
def list_reviews(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 10,
):
    """
    Reviews of an active product, newest first.

    - Public endpoint.
    """
    return review_service.list_reviews(session, product_id, skip=skip, limit=min(limit, 50))


@router.post(
    "/{product_id}/reviews",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
)
def add_review(
    product_id: uuid.UUID,
    payload: ReviewCreate,
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    """
    Review a product. A second review by the same user replaces the first.
    """
    return review_service.add_review(session, user, product_id, payload)


@router.delete(
    "/{product_id}/reviews/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_review(
    product_id: uuid.UUID,
    review_id: uuid.UUID,
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    """
    Delete a review (its author or an admin).
    """
    review_service.delete_review(session, user, product_id, review_id)
    return None


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product (admin only).
    """
    return ProductRead.model_validate(service.create_product(session, payload))


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return ProductRead.model_validate(service.update_product(session, product_id, payload))


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Deactivate a product (admin only). Order history keeps referencing it.
    """
    service.delete_product(session, product_id)
    return None


@router.post(
    "/{product_id}/hero-image",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload or replace hero image for a product",
)
def upload_hero_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Upload a new hero image for the product.

    - Accepts JPEG, PNG, WEBP up to 5MB.
    - Replaces any previous hero image.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    product = service.set_hero_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )
    return ProductRead.model_validate(product)
