# app/routers/admin_stats.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.stats_repo import StatsRepository
from app.repositories.user_repo import UserRepository
from app.schemas.stats import AdminDashboardStats
from app.services.stats_service import StatsService

router = APIRouter(prefix="/admin/stats", tags=["Admin Stats"])

service = StatsService(StatsRepository(), UserRepository())


@router.get(
    "",
    response_model=AdminDashboardStats,
    dependencies=[Depends(require_admin)],
)
def get_admin_dashboard_stats(
    year: int | None = None,
    month: int | None = None,
    top: int = 5,
    latest: int = 5,
    session: Session = Depends(get_session),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params (optional):
      - year: integer, defaults to current year
      - month: integer 1–12, defaults to current month
      - top / latest: size of the top products and latest orders lists

    Revenue ignores cancelled and returned orders.
    """
    return service.get_admin_dashboard_stats(
        session=session,
        year=year,
        month=month,
        top_n_products=top,
        latest_n_orders=latest,
    )
