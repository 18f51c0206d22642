# app/services/checkout_service.py
import logging
import random
import smtplib
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone

from fastapi import status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.email_client import send_email
from app.core.errors import (
    AppError,
    EMPTY_CART,
    INSUFFICIENT_STOCK,
    INVALID_ADDRESS,
    INVALID_COUPON,
    INVALID_PAYMENT_METHOD,
    PAYMENT_DECLINED,
    PRODUCT_GONE,
    PRODUCT_INACTIVE,
)
from app.core.payment_gateway import (
    METHOD_DESCRIPTIONS,
    SUPPORTED_METHODS,
    PaymentGateway,
    PaymentResult,
)
from app.models.cart import Cart, CartItem
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.address import AddressRead
from app.schemas.checkout import (
    CheckoutResponse,
    CheckoutSummary,
    CheckoutTotals,
    CheckoutValidation,
    CouponResult,
    CreateOrderRequest,
    FieldError,
    NewAddress,
    PaymentMethodOption,
    PaymentMethodOptions,
    PlacedOrder,
    SummaryLine,
)
from app.services.pricing import (
    FREE_SHIPPING_THRESHOLD,
    CouponError,
    OrderTotals,
    compute_totals,
    coupon_discount,
)

logger = logging.getLogger(__name__)

DELIVERY_DAYS = 7

# (attribute, client field name, label) for an inline shipping address
REQUIRED_ADDRESS_FIELDS = (
    ("first_name", "firstName", "First name"),
    ("last_name", "lastName", "Last name"),
    ("address_line1", "addressLine1", "Address line 1"),
    ("city", "city", "City"),
    ("state", "state", "State"),
    ("postal_code", "postalCode", "Postal code"),
    ("country", "country", "Country"),
)
OPTIONAL_ADDRESS_FIELDS = ("company", "address_line2", "phone")


@dataclass
class _Line:
    item: CartItem
    product: Product

    @property
    def unit_price(self) -> float:
        return self.product.effective_price


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class CheckoutService:
    """
    Turns a user's cart into an order.

    create_order() steps:
      1. Cart must exist and hold at least one line.
      2-4. Every product must still exist, be active and have enough stock.
      5. Shipping address: a saved, active address owned by the user, or
         a complete inline address.
      6. Payment method must be supported.
      7. Optional coupon must be known and its minimum met.
      8. Price the order from live effective prices.
      9. Charge the payment (nothing is written if it is declined).
      10. In ONE transaction: insert order, lines and history, take stock
          with conditional decrements, clear the cart, commit.
          On any failure the transaction is rolled back and the captured
          payment is refunded.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        order_repo: OrderRepository,
        address_repo: AddressRepository,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.order_repo = order_repo
        self.address_repo = address_repo

    # ---- cart checks ----

    def _load_cart(self, session: Session, user_id: uuid.UUID) -> tuple[Cart, list[CartItem]]:
        cart = self.cart_repo.get_for_user(session, user_id)
        items = self.cart_repo.list_items(session, cart.id) if cart else []
        if cart is None or not items:
            raise AppError(status.HTTP_400_BAD_REQUEST, "Cart is empty", EMPTY_CART)
        return cart, items

    def _validate_lines(self, session: Session, items: list[CartItem]) -> list[_Line]:
        products: dict[uuid.UUID, Product | None] = {
            it.product_id: self.product_repo.get_by_id(session, it.product_id) for it in items
        }

        for it in items:
            if products[it.product_id] is None:
                raise AppError(
                    status.HTTP_400_BAD_REQUEST,
                    "A product in your cart no longer exists",
                    PRODUCT_GONE,
                )

        for it in items:
            product = products[it.product_id]
            if not product.is_active:
                raise AppError(
                    status.HTTP_400_BAD_REQUEST,
                    f"Product {product.name} is no longer available",
                    PRODUCT_INACTIVE,
                )

        for it in items:
            product = products[it.product_id]
            if product.stock < it.quantity:
                raise AppError(
                    status.HTTP_400_BAD_REQUEST,
                    f"Insufficient stock for {product.name}. Only {product.stock} items available",
                    INSUFFICIENT_STOCK,
                )

        return [_Line(item=it, product=products[it.product_id]) for it in items]

    def _purchasable_lines(self, session: Session, items: list[CartItem]) -> list[_Line]:
        """Lines that could be ordered right now; used by read-only endpoints."""
        lines = []
        for it in items:
            product = self.product_repo.get_by_id(session, it.product_id)
            if product and product.is_active and product.stock >= it.quantity:
                lines.append(_Line(item=it, product=product))
        return lines

    # ---- address ----

    def _inline_address_errors(self, address: NewAddress | None) -> list[dict[str, str]]:
        errors = []
        for attr, field, label in REQUIRED_ADDRESS_FIELDS:
            if _blank(getattr(address, attr, None) if address else None):
                errors.append({"field": f"newAddress.{field}", "message": f"{label} is required"})
        return errors

    def _resolve_address(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CreateOrderRequest,
    ) -> dict[str, str | None]:
        """
        Return the shipping address snapshot as Order ship_* column values.
        """
        use_inline = payload.use_new_address or (
            payload.shipping_address_id is None and payload.new_address is not None
        )

        if use_inline:
            errors = self._inline_address_errors(payload.new_address)
            if errors:
                raise AppError(
                    status.HTTP_400_BAD_REQUEST,
                    "Invalid shipping address",
                    INVALID_ADDRESS,
                    errors,
                )
            source = payload.new_address
            snapshot = {
                f"ship_{attr}": getattr(source, attr).strip()
                for attr, _, _ in REQUIRED_ADDRESS_FIELDS
            }
            for attr in OPTIONAL_ADDRESS_FIELDS:
                value = getattr(source, attr)
                snapshot[f"ship_{attr}"] = None if _blank(value) else value.strip()
            return snapshot

        if payload.shipping_address_id is None:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Shipping address is required",
                INVALID_ADDRESS,
            )

        address = self.address_repo.get_by_id(session, payload.shipping_address_id)
        if address is None or address.user_id != user_id or not address.is_active:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Invalid shipping address",
                INVALID_ADDRESS,
            )

        return {
            f"ship_{attr}": getattr(address, attr)
            for attr in [a for a, _, _ in REQUIRED_ADDRESS_FIELDS] + list(OPTIONAL_ADDRESS_FIELDS)
        }

    # ---- payment method / coupon ----

    @staticmethod
    def _check_payment_method(method: str | None) -> str:
        if method not in SUPPORTED_METHODS:
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                "Invalid payment method",
                INVALID_PAYMENT_METHOD,
            )
        return method

    @staticmethod
    def _price(lines: list[_Line], coupon_code: str | None) -> tuple[OrderTotals, str | None]:
        pairs = [(line.unit_price, line.item.quantity) for line in lines]
        if not coupon_code:
            return compute_totals(pairs), None

        items_price = compute_totals(pairs).items_price
        try:
            coupon, discount = coupon_discount(coupon_code, items_price)
        except CouponError as exc:
            raise AppError(status.HTTP_400_BAD_REQUEST, str(exc), INVALID_COUPON) from exc
        return compute_totals(pairs, discount), coupon.code

    # ---- persistence ----

    def _generate_order_number(self, session: Session, now: datetime) -> str:
        prefix = f"ORD-{now:%Y%m%d}-"
        while True:
            candidate = f"{prefix}{random.randint(0, 99999):05d}"
            if not self.order_repo.number_exists(session, candidate):
                return candidate

    def _persist_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        cart: Cart,
        lines: list[_Line],
        address: dict[str, str | None],
        method: str,
        payment: PaymentResult,
        totals: OrderTotals,
        coupon_code: str | None,
        order_notes: str | None,
    ) -> Order:
        now = _utcnow()
        order = Order(
            order_number=self._generate_order_number(session, now),
            user_id=user_id,
            **address,
            payment_method=method,
            payment_status=payment.status or "pending",
            transaction_id=payment.transaction_id,
            payment_amount=totals.total_price,
            paid_at=now if payment.status == "completed" else None,
            items_price=totals.items_price,
            tax_price=totals.tax_price,
            shipping_price=totals.shipping_price,
            discount_amount=totals.discount_amount,
            coupon_code=coupon_code,
            total_price=totals.total_price,
            order_status="processing",
            order_notes=order_notes,
            estimated_delivery=now + timedelta(days=DELIVERY_DAYS),
            created_at=now,
            updated_at=now,
        )
        order = self.order_repo.create_order(session, order)

        self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=line.product.id,
                    name=line.product.name,
                    image_url=line.product.hero_image_url,
                    unit_price=line.unit_price,
                    quantity=line.item.quantity,
                )
                for line in lines
            ],
        )
        self.order_repo.add_status_event(session, order.id, "processing", "Order placed successfully")

        for line in lines:
            taken = self.product_repo.decrement_stock_if_available(
                session, line.product.id, line.item.quantity
            )
            if not taken:
                available = self.product_repo.current_stock(session, line.product.id)
                raise AppError(
                    status.HTTP_400_BAD_REQUEST,
                    f"Insufficient stock for {line.product.name}. Only {available} items available",
                    INSUFFICIENT_STOCK,
                )

        # Zero lines means a concurrent placement already consumed this cart
        if self.cart_repo.clear(session, cart) == 0:
            raise AppError(status.HTTP_400_BAD_REQUEST, "Cart is empty", EMPTY_CART)
        session.commit()
        session.refresh(order)
        return order

    @staticmethod
    def _compensate(gateway: PaymentGateway, payment: PaymentResult, amount: float) -> None:
        refund = gateway.refund_payment(payment.transaction_id, amount)
        if not refund.success:
            logger.critical(
                "Refund of %.2f for transaction %s failed: %s; manual reconciliation needed",
                amount,
                payment.transaction_id,
                refund.message,
            )

    # ---- notifications ----

    def _notify_order_placed(self, user: User, order: Order) -> None:
        if not get_settings().ORDER_EMAILS_ENABLED:
            return
        text = (
            f"Hi {user.name},\n\n"
            f"Thanks for your order {order.order_number}.\n"
            f"Total: ${order.total_price:.2f}\n"
            f"Payment: {order.payment_method} ({order.payment_status})\n"
        )
        if order.estimated_delivery:
            text += f"Estimated delivery: {order.estimated_delivery:%Y-%m-%d}\n"
        try:
            send_email(user.email, f"Order {order.order_number} confirmed", text)
        except (RuntimeError, smtplib.SMTPException, OSError):
            logger.warning("Order confirmation email for %s failed", order.order_number, exc_info=True)

    # ---- public operations ----

    def create_order(
        self,
        session: Session,
        user: User,
        payload: CreateOrderRequest,
        gateway: PaymentGateway,
    ) -> CheckoutResponse:
        cart, items = self._load_cart(session, user.id)
        lines = self._validate_lines(session, items)
        address = self._resolve_address(session, user.id, payload)
        method = self._check_payment_method(payload.payment_method)
        totals, coupon_code = self._price(lines, payload.coupon_code)

        details = payload.payment_details.model_dump() if payload.payment_details else None
        payment = gateway.process_payment(method, totals.total_price, details)
        if not payment.success:
            logger.warning("Payment declined for user %s (%s %.2f)", user.id, method, totals.total_price)
            raise AppError(
                status.HTTP_400_BAD_REQUEST,
                payment.message or "Payment processing failed",
                PAYMENT_DECLINED,
            )

        order_notes = payload.order_notes.strip() if payload.order_notes else None
        try:
            order = self._persist_order(
                session,
                user.id,
                cart,
                lines,
                address,
                method,
                payment,
                totals,
                coupon_code,
                order_notes or None,
            )
        except AppError as exc:
            session.rollback()
            logger.warning(
                "Conflict while placing order for user %s (%s); refunding %s",
                user.id,
                exc.code,
                payment.transaction_id,
            )
            self._compensate(gateway, payment, totals.total_price)
            raise
        except Exception as exc:
            session.rollback()
            logger.error(
                "Order persistence failed after payment %s (%.2f) for user %s",
                payment.transaction_id,
                totals.total_price,
                user.id,
                exc_info=True,
            )
            self._compensate(gateway, payment, totals.total_price)
            raise AppError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Order could not be saved. Your payment has been refunded.",
            ) from exc

        logger.info(
            "Order %s placed by %s: %.2f via %s (%s)",
            order.order_number,
            user.id,
            order.total_price,
            method,
            payment.transaction_id,
        )
        self._notify_order_placed(user, order)

        return CheckoutResponse(
            message="Order created successfully",
            order=PlacedOrder(
                order_number=order.order_number,
                id=order.id,
                total_price=order.total_price,
                order_status=order.order_status,
                estimated_delivery=order.estimated_delivery,
                payment_status=order.payment_status,
            ),
        )

    def get_summary(self, session: Session, user_id: uuid.UUID) -> CheckoutSummary:
        """
        Purchasable lines with live prices, totals and the user's addresses.
        """
        _, items = self._load_cart(session, user_id)
        lines = self._purchasable_lines(session, items)
        totals = compute_totals([(line.unit_price, line.item.quantity) for line in lines])

        return CheckoutSummary(
            items=[
                SummaryLine(
                    product_id=line.product.id,
                    name=line.product.name,
                    image_url=line.product.hero_image_url,
                    unit_price=line.unit_price,
                    quantity=line.item.quantity,
                    line_total=round(line.unit_price * line.item.quantity, 2),
                    stock=line.product.stock,
                )
                for line in lines
            ],
            totals=CheckoutTotals(**asdict(totals)),
            shipping_threshold=FREE_SHIPPING_THRESHOLD,
            addresses=[
                AddressRead.model_validate(a)
                for a in self.address_repo.list_for_user(session, user_id)
            ],
        )

    def validate(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CreateOrderRequest,
    ) -> CheckoutValidation:
        """
        Run every checkout check without side effects and report all failures.
        """
        errors: list[FieldError] = []
        lines: list[_Line] = []

        cart = self.cart_repo.get_for_user(session, user_id)
        items = self.cart_repo.list_items(session, cart.id) if cart else []
        if not items:
            errors.append(FieldError(field="cart", message="Cart is empty"))
        for it in items:
            product = self.product_repo.get_by_id(session, it.product_id)
            if product is None or not product.is_active:
                errors.append(FieldError(field="stock", message="A product in your cart is no longer available"))
            elif product.stock < it.quantity:
                errors.append(
                    FieldError(
                        field="stock",
                        message=f"Insufficient stock for {product.name}. Only {product.stock} items available",
                    )
                )
            else:
                lines.append(_Line(item=it, product=product))

        try:
            self._resolve_address(session, user_id, payload)
        except AppError as exc:
            if exc.errors:
                errors.extend(FieldError(**e) for e in exc.errors)
            else:
                errors.append(FieldError(field="address", message=str(exc.detail)))

        if payload.payment_method not in SUPPORTED_METHODS:
            errors.append(FieldError(field="paymentMethod", message="Invalid payment method"))

        totals = None
        if lines:
            try:
                totals, _ = self._price(lines, payload.coupon_code)
            except AppError as exc:
                errors.append(FieldError(field="couponCode", message=str(exc.detail)))
                totals, _ = self._price(lines, None)

        return CheckoutValidation(
            valid=not errors,
            errors=errors,
            totals=CheckoutTotals(**asdict(totals)) if totals else None,
        )

    def apply_coupon(self, session: Session, user_id: uuid.UUID, code: str) -> CouponResult:
        _, items = self._load_cart(session, user_id)
        lines = self._purchasable_lines(session, items)
        items_price = compute_totals([(line.unit_price, line.item.quantity) for line in lines]).items_price

        try:
            coupon, discount = coupon_discount(code, items_price)
        except CouponError as exc:
            raise AppError(status.HTTP_400_BAD_REQUEST, str(exc), INVALID_COUPON) from exc

        return CouponResult(
            code=coupon.code,
            type=coupon.type,
            value=coupon.value,
            discount_amount=discount,
            items_price=items_price,
        )

    @staticmethod
    def payment_methods() -> PaymentMethodOptions:
        return PaymentMethodOptions(
            payment_methods=[
                PaymentMethodOption(id=method, name=name, description=description)
                for method, (name, description) in METHOD_DESCRIPTIONS.items()
            ]
        )
