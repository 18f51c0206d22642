# app/repositories/order_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.order import Order, OrderItem, OrderStatusEvent


class OrderRepository:
    """
    Data access layer for orders, order_items and order_status_history.

    NOTE:
      - No commits here; order creation and every lifecycle change are
        multi-step transactions. The service calls session.commit().
    """

    # ---- Orders ----

    def _filtered(
        self,
        stmt,
        user_id: uuid.UUID | None = None,
        status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ):
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if status:
            stmt = stmt.where(Order.order_status == status)
        if start_date is not None:
            stmt = stmt.where(Order.created_at >= start_date)
        if end_date is not None:
            stmt = stmt.where(Order.created_at <= end_date)
        return stmt

    def list_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        user_id: uuid.UUID | None = None,
        status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[Order]:
        stmt = self._filtered(select(Order), user_id, status, start_date, end_date)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def summarize(
        self,
        session: Session,
        user_id: uuid.UUID | None = None,
        status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> tuple[int, float, float]:
        """
        (order count, revenue, average order value) for the same filters as list_orders().
        """
        stmt = self._filtered(
            select(
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_price), 0.0),
                func.coalesce(func.avg(Order.total_price), 0.0),
            ),
            user_id,
            status,
            start_date,
            end_date,
        )
        count, revenue, average = session.exec(stmt).one()
        return int(count or 0), float(revenue or 0.0), float(average or 0.0)

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def number_exists(self, session: Session, order_number: str) -> bool:
        stmt = select(Order.id).where(Order.order_number == order_number)
        return session.exec(stmt).first() is not None

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Status history ----

    def add_status_event(
        self,
        session: Session,
        order_id: uuid.UUID,
        status: str,
        note: str | None = None,
    ) -> OrderStatusEvent:
        event = OrderStatusEvent(order_id=order_id, status=status, note=note)
        session.add(event)
        session.flush()
        return event

    def list_status_history(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderStatusEvent]:
        stmt = (
            select(OrderStatusEvent)
            .where(OrderStatusEvent.order_id == order_id)
            .order_by(OrderStatusEvent.timestamp)
        )
        return list(session.exec(stmt).all())
