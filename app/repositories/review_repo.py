# app/repositories/review_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.review import ProductReview


class ReviewRepository:

    def get_by_id(self, session: Session, review_id: uuid.UUID) -> ProductReview | None:
        return session.get(ProductReview, review_id)

    def get_for_user(
        self, session: Session, product_id: uuid.UUID, user_id: uuid.UUID
    ) -> ProductReview | None:
        stmt = select(ProductReview).where(
            ProductReview.product_id == product_id, ProductReview.user_id == user_id
        )
        return session.exec(stmt).first()

    def list_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        skip: int = 0,
        limit: int = 10,
    ) -> list[ProductReview]:
        stmt = (
            select(ProductReview)
            .where(ProductReview.product_id == product_id)
            .order_by(ProductReview.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def rating_stats(self, session: Session, product_id: uuid.UUID) -> tuple[int, float]:
        """(number of reviews, average rating) for a product."""
        stmt = select(
            func.count(ProductReview.id),
            func.coalesce(func.avg(ProductReview.rating), 0.0),
        ).where(ProductReview.product_id == product_id)
        count, average = session.exec(stmt).one()
        return int(count or 0), float(average or 0.0)

    # Writes do not commit; ReviewService commits together with the product rating
    def add(self, session: Session, review: ProductReview) -> None:
        session.add(review)
        session.flush()

    def delete(self, session: Session, review: ProductReview) -> None:
        session.delete(review)
        session.flush()
