# app/services/review_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.auth import ensure_owner_or_admin
from app.models.product import Product
from app.models.review import ProductReview
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository
from app.schemas.review import ReviewCreate, ReviewList, ReviewRead

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Product reviews. Every write recomputes the product's `ratings`
    (mean, one decimal) and `num_reviews` in the same commit.
    """

    def __init__(self, repo: ReviewRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    def _active_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if product is None or not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def _recompute_rating(self, session: Session, product: Product) -> None:
        count, average = self.repo.rating_stats(session, product.id)
        product.num_reviews = count
        product.ratings = round(average, 1) if count else 0.0
        session.add(product)

    def list_reviews(
        self,
        session: Session,
        product_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
    ) -> ReviewList:
        self._active_product(session, product_id)
        reviews = self.repo.list_for_product(session, product_id, skip=skip, limit=limit)
        total, average = self.repo.rating_stats(session, product_id)
        return ReviewList(
            items=[ReviewRead.model_validate(r) for r in reviews],
            total=total,
            skip=skip,
            limit=limit,
            average_rating=round(average, 1),
        )

    def add_review(
        self,
        session: Session,
        user: User,
        product_id: uuid.UUID,
        payload: ReviewCreate,
    ) -> ProductReview:
        """
        Add the user's review, or replace it if they already reviewed
        this product.
        """
        product = self._active_product(session, product_id)

        review = self.repo.get_for_user(session, product_id, user.id)
        if review is None:
            review = ProductReview(
                product_id=product_id,
                user_id=user.id,
                name=user.name,
                rating=payload.rating,
                comment=payload.comment,
            )
        else:
            review.rating = payload.rating
            review.comment = payload.comment
            review.name = user.name
            review.updated_at = datetime.now(timezone.utc)
        self.repo.add(session, review)

        self._recompute_rating(session, product)
        session.commit()
        session.refresh(review)
        logger.info("User %s reviewed product %s (%s stars)", user.id, product_id, review.rating)
        return review

    def delete_review(
        self,
        session: Session,
        user: User,
        product_id: uuid.UUID,
        review_id: uuid.UUID,
    ) -> None:
        product = self._active_product(session, product_id)
        review = self.repo.get_by_id(session, review_id)
        if review is None or review.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Review not found",
            )
        ensure_owner_or_admin(user, review.user_id)

        self.repo.delete(session, review)
        self._recompute_rating(session, product)
        session.commit()
        logger.info("Review %s on product %s deleted by %s", review_id, product_id, user.id)
