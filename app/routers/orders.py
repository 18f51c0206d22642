# app/routers/orders.py
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth, require_admin
from app.core.payment_gateway import PaymentGateway, get_payment_gateway
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    AdminOrderList,
    OrderCancel,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
    OrderWithItemsRead,
    RefundRequest,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
service = OrderService(order_repo, product_repo)


# -------- User-facing endpoints --------


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order with items and status history.

    Auth:
      - Owner of the order, or any admin. Others get 403.
    """
    return service.get_order(session, current_user, order_id)


@router.put(
    "/{order_id}/cancel",
    response_model=OrderWithItemsRead,
)
def cancel_order(
    order_id: uuid.UUID,
    payload: OrderCancel | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Cancel an order that is still processing or confirmed.
    Stock of every line is put back and a captured payment is refunded.
    """
    return service.cancel_order(session, current_user, order_id, payload or OrderCancel(), gateway)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=AdminOrderList,
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status: OrderStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
):
    """
    List all orders (admin only) with revenue stats for the same filters.
    """
    return service.list_all_orders(
        session,
        skip=skip,
        limit=limit,
        order_status=status,
        start_date=start_date,
        end_date=end_date,
    )


@router.put(
    "/{order_id}/status",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Update order status (admin only).

    processing -> confirmed -> shipped -> out_for_delivery -> delivered

    Only forward moves are accepted (steps may be skipped).
    `cancelled` restores stock and refunds a captured payment;
    `returned` goes through the refund endpoint.
    """
    return service.update_status(session, order_id, payload, gateway)


@router.post(
    "/{order_id}/refund",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def refund_order(
    order_id: uuid.UUID,
    payload: RefundRequest | None = None,
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Refund an order (admin only): payment refunded, order returned, stock restored.
    """
    return service.refund(session, order_id, payload or RefundRequest(), gateway)
