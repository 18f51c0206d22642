# app/services/stats_service.py
from collections import defaultdict
from datetime import date, datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.order import _as_utc
from app.repositories.stats_repo import StatsRepository
from app.repositories.user_repo import UserRepository
from app.schemas.stats import (
    AdminDashboardStats,
    DailySales,
    LatestOrderSummary,
    StatusCount,
    TopProduct,
)


def _month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.
    """

    def __init__(self, repo: StatsRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    def _daily_sales(self, session: Session, year: int, month: int) -> list[DailySales]:
        start, end = _month_bounds(year, month)
        revenue: dict[date, float] = defaultdict(float)
        counts: dict[date, int] = defaultdict(int)

        for created_at, total_price in self.repo.revenue_orders_between(session, start, end):
            day = _as_utc(created_at).date()
            revenue[day] += float(total_price or 0.0)
            counts[day] += 1

        return [
            DailySales(date=day, total_revenue=round(revenue[day], 2), order_count=counts[day])
            for day in sorted(revenue)
        ]

    def get_admin_dashboard_stats(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
        top_n_products: int = 5,
        latest_n_orders: int = 5,
    ) -> AdminDashboardStats:
        # Default to current month/year if not provided
        today = datetime.now(timezone.utc).date()
        if year is None:
            year = today.year
        if month is None:
            month = today.month

        if not 1 <= month <= 12:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="month must be between 1 and 12",
            )

        top_products = [
            TopProduct(
                product_id=product_id,
                name=name,
                total_quantity=int(total_quantity or 0),
                total_revenue=round(float(product_revenue or 0.0), 2),
            )
            for product_id, name, total_quantity, product_revenue in self.repo.top_products(
                session, limit=top_n_products
            )
        ]

        latest_orders: list[LatestOrderSummary] = []
        for o in self.repo.latest_orders(session, limit=latest_n_orders):
            customer = self.user_repo.get_by_id(session, o.user_id)
            latest_orders.append(
                LatestOrderSummary(
                    id=o.id,
                    order_number=o.order_number,
                    created_at=o.created_at,
                    user_id=o.user_id,
                    customer_name=customer.name if customer else f"{o.ship_first_name} {o.ship_last_name}",
                    total_price=o.total_price,
                    order_status=o.order_status,
                )
            )

        return AdminDashboardStats(
            total_customers=self.repo.count_customers(session),
            total_orders=self.repo.count_orders(session),
            total_revenue=round(self.repo.total_revenue(session), 2),
            daily_sales=self._daily_sales(session, year, month),
            top_products=top_products,
            latest_orders=latest_orders,
            orders_by_status=[
                StatusCount(status=order_status, count=int(count))
                for order_status, count in self.repo.count_by_status(session)
            ],
        )
