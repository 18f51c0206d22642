# app/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.user import User
from app.models.order import Order, OrderItem

# Orders that never count toward revenue
NON_REVENUE_STATUSES = ("cancelled", "returned")


class StatsRepository:
    """
    Read-only aggregated queries for admin dashboard.
    """

    def count_customers(self, session: Session) -> int:
        stmt = select(func.count()).select_from(User).where(User.role == "user")
        # SQLModel's Session.exec() -> ScalarResult -> use .one()
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_orders(self, session: Session) -> int:
        stmt = select(func.count()).select_from(Order)
        value = session.exec(stmt).one()
        return int(value or 0)

    def total_revenue(self, session: Session) -> float:
        """
        Sum of total_price for all orders that were not cancelled or returned.
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total_price), 0.0))
            .where(Order.order_status.not_in(NON_REVENUE_STATUSES))
        )
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def revenue_orders_between(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple[datetime, float]]:
        """
        (created_at, total_price) of revenue-bearing orders with start <= created_at < end.
        Bucketing per day happens in the service so it works on any dialect.
        """
        stmt = (
            select(Order.created_at, Order.total_price)
            .where(
                Order.order_status.not_in(NON_REVENUE_STATUSES),
                Order.created_at >= start,
                Order.created_at < end,
            )
            .order_by(Order.created_at)
        )
        return list(session.exec(stmt).all())

    def top_products(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[tuple]:
        """
        Top products by quantity sold, using the name captured on the order line.
        """
        qty_sum = func.coalesce(func.sum(OrderItem.quantity), 0)
        revenue_sum = func.coalesce(
            func.sum(OrderItem.quantity * OrderItem.unit_price),
            0.0,
        )

        stmt = (
            select(
                OrderItem.product_id,
                func.max(OrderItem.name),
                qty_sum.label("total_quantity"),
                revenue_sum.label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.order_status.not_in(NON_REVENUE_STATUSES))
            .group_by(OrderItem.product_id)
            .order_by(qty_sum.desc())
            .limit(limit)
        )

        return list(session.exec(stmt).all())

    def latest_orders(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[Order]:
        """
        Latest N orders by created_at (any status).
        """
        stmt = (
            select(Order)
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def count_by_status(self, session: Session) -> list[tuple[str, int]]:
        stmt = (
            select(Order.order_status, func.count(Order.id))
            .group_by(Order.order_status)
            .order_by(Order.order_status)
        )
        return list(session.exec(stmt).all())
