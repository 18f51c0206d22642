# app/services/order_service.py
import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.auth import ensure_owner_or_admin
from app.core.payment_gateway import PaymentGateway
from app.models.order import STATUS_FLOW, TERMINAL_STATUSES, Order
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    AdminOrderList,
    OrderCancel,
    OrderItemRead,
    OrderListStats,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    RefundRequest,
    ShippingAddressRead,
    StatusEventRead,
)

logger = logging.getLogger(__name__)

SHIPPING_ESTIMATE_DAYS = 7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """
    Business logic for placed orders.

    Responsibilities:
      - Read access (owner or admin)
      - Forward-only status transitions (admin)
      - Cancellation with stock restore and refund of captured payments (owner or admin)
      - Refund with stock restore and gateway refund (admin)

    Every lifecycle change appends one status history entry and commits
    once, together with its stock changes.
    """

    def __init__(self, order_repo: OrderRepository, product_repo: ProductRepository):
        self.order_repo = order_repo
        self.product_repo = product_repo

    # -------- helpers --------

    def _get_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _set_status(self, session: Session, order: Order, new_status: str, note: str | None) -> None:
        now = _utcnow()
        order.order_status = new_status
        order.updated_at = now
        self.order_repo.add_status_event(session, order.id, new_status, note)

    def _restock(self, session: Session, order: Order) -> None:
        for item in self.order_repo.list_items_for_order(session, order.id):
            if not self.product_repo.increment_stock(session, item.product_id, item.quantity):
                logger.warning(
                    "Product %s of order %s no longer exists; %d unit(s) not restocked",
                    item.product_id,
                    order.order_number,
                    item.quantity,
                )

    def _build_order_with_items_dto(self, session: Session, order: Order) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        items = self.order_repo.list_items_for_order(session, order.id)
        history = self.order_repo.list_status_history(session, order.id)

        return OrderWithItemsRead(
            **OrderRead.model_validate(order).model_dump(),
            items=[
                OrderItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    name=it.name,
                    image_url=it.image_url,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    line_total=round(it.quantity * it.unit_price, 2),
                )
                for it in items
            ],
            shipping_address=ShippingAddressRead(
                first_name=order.ship_first_name,
                last_name=order.ship_last_name,
                company=order.ship_company,
                address_line1=order.ship_address_line1,
                address_line2=order.ship_address_line2,
                city=order.ship_city,
                state=order.ship_state,
                postal_code=order.ship_postal_code,
                country=order.ship_country,
                phone=order.ship_phone,
            ),
            status_history=[
                StatusEventRead(status=e.status, note=e.note, timestamp=e.timestamp)
                for e in history
            ],
            order_notes=order.order_notes,
            paid_at=order.paid_at,
            refund_amount=order.refund_amount,
            refunded_at=order.refunded_at,
            can_be_cancelled=order.can_be_cancelled(),
            can_be_returned=order.can_be_returned(),
        )

    # -------- reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_orders(session, skip=skip, limit=limit, user_id=user_id)

    def get_order(self, session: Session, user: User, order_id: uuid.UUID) -> OrderWithItemsRead:
        """
        Single order with items. 404 if missing, 403 unless owner or admin.
        """
        order = self._get_order(session, order_id)
        ensure_owner_or_admin(user, order.user_id)
        return self._build_order_with_items_dto(session, order)

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        order_status: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> AdminOrderList:
        orders = self.order_repo.list_orders(
            session,
            skip=skip,
            limit=limit,
            status=order_status,
            start_date=start_date,
            end_date=end_date,
        )
        count, revenue, average = self.order_repo.summarize(
            session, status=order_status, start_date=start_date, end_date=end_date
        )
        return AdminOrderList(
            orders=[OrderRead.model_validate(o) for o in orders],
            stats=OrderListStats(
                total_orders=count,
                total_revenue=round(revenue, 2),
                average_order_value=round(average, 2),
            ),
        )

    # -------- lifecycle --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
        gateway: PaymentGateway,
    ) -> OrderWithItemsRead:
        """
        Admin status change.

          - same status: no-op
          - terminal orders (delivered, cancelled, returned) never change
          - forward moves along STATUS_FLOW only; skipping steps is allowed
          - cancelled: same path as a cancellation (stock restored)
          - returned: only through refund()
        """
        order = self._get_order(session, order_id)
        current = order.order_status
        new = payload.status

        if current == new:
            return self._build_order_with_items_dto(session, order)

        if current in TERMINAL_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change status of a {current} order",
            )

        if new == "cancelled":
            return self._cancel(session, order, payload.note or "Cancelled by admin", gateway)

        if new == "returned":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Orders are returned through the refund endpoint",
            )

        if STATUS_FLOW.index(new) < STATUS_FLOW.index(current):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {current} -> {new}",
            )

        self._set_status(session, order, new, payload.note)
        now = order.updated_at

        if payload.tracking_number:
            order.tracking_number = payload.tracking_number
        if new == "shipped" and order.estimated_delivery is None:
            order.estimated_delivery = now + timedelta(days=SHIPPING_ESTIMATE_DAYS)
        if new == "delivered":
            order.actual_delivery = now

        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        logger.info("Order %s: %s -> %s", order.order_number, current, new)
        return self._build_order_with_items_dto(session, order)

    def _cancel(
        self,
        session: Session,
        order: Order,
        reason: str,
        gateway: PaymentGateway,
    ) -> OrderWithItemsRead:
        """
        Cancel, restock, and refund a captured payment in full.

        Pending payments (cash on delivery) were never collected, so only
        the stock moves. A refund the processor rejects leaves the order
        untouched.
        """
        if not order.can_be_cancelled():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Order cannot be cancelled at this stage",
            )

        refunded = False
        if order.payment_status == "completed":
            result = gateway.refund_payment(order.transaction_id, order.total_price)
            if not result.success:
                raise HTTPException(
                    status_code=status.HTTP_502_BAD_GATEWAY,
                    detail=result.message or "Refund failed at the payment processor",
                )
            refunded = True

        self._set_status(session, order, "cancelled", reason)
        if refunded:
            order.payment_status = "refunded"
            order.refund_amount = order.total_price
            order.refunded_at = order.updated_at
        self._restock(session, order)
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        logger.info(
            "Order %s cancelled: %s%s",
            order.order_number,
            reason,
            f" (refunded {order.refund_amount:.2f})" if refunded else "",
        )
        return self._build_order_with_items_dto(session, order)

    def cancel_order(
        self,
        session: Session,
        user: User,
        order_id: uuid.UUID,
        payload: OrderCancel,
        gateway: PaymentGateway,
    ) -> OrderWithItemsRead:
        """
        Cancel while processing/confirmed; owner or admin only.
        """
        order = self._get_order(session, order_id)
        ensure_owner_or_admin(user, order.user_id)
        return self._cancel(session, order, payload.reason or "Cancelled by user", gateway)

    def refund(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: RefundRequest,
        gateway: PaymentGateway,
    ) -> OrderWithItemsRead:
        """
        Admin refund: payment -> refunded, order -> returned, stock restored.

        amount defaults to the order total and may not exceed it.
        """
        order = self._get_order(session, order_id)

        if order.order_status in ("cancelled", "returned") or order.payment_status == "refunded":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Order {order.order_number} cannot be refunded",
            )

        amount = payload.amount if payload.amount is not None else order.total_price
        if amount > order.total_price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Refund amount cannot exceed the order total",
            )

        result = gateway.refund_payment(order.transaction_id, amount)
        if not result.success:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=result.message or "Refund failed at the payment processor",
            )

        note = f"Refund processed: {payload.reason}" if payload.reason else "Refund processed"
        self._set_status(session, order, "returned", note)
        order.payment_status = "refunded"
        order.refund_amount = round(amount, 2)
        order.refunded_at = order.updated_at
        self._restock(session, order)
        self.order_repo.update_order(session, order)
        session.commit()
        session.refresh(order)
        logger.info("Order %s refunded %.2f", order.order_number, amount)
        return self._build_order_with_items_dto(session, order)
