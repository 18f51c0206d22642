# app/core/payment_gateway.py
"""
Payment processor boundary.

The shipped implementation is a mock processor: cash on delivery is
accepted immediately with a pending payment, every other method is
"captured" unless the card is the decline test card or the configured
random decline rate hits.

Routes get the gateway through ``get_payment_gateway`` so tests and a real
integration can swap it with ``app.dependency_overrides``.
"""
import logging
import random
import time
from dataclasses import dataclass
from typing import Any

from app.core.config import get_settings

logger = logging.getLogger(__name__)

CASH_ON_DELIVERY = "cash_on_delivery"

SUPPORTED_METHODS = (
    "credit_card",
    "debit_card",
    "paypal",
    "stripe",
    CASH_ON_DELIVERY,
)

METHOD_DESCRIPTIONS = {
    "credit_card": ("Credit Card", "Visa, MasterCard, American Express"),
    "debit_card": ("Debit Card", "All major debit cards accepted"),
    "paypal": ("PayPal", "Pay securely with your PayPal account"),
    "stripe": ("Stripe", "Secure payment processing"),
    CASH_ON_DELIVERY: ("Cash on Delivery", "Pay when your order is delivered"),
}

# Card number the mock processor always declines
DECLINED_TEST_CARD = "4000000000000002"


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    status: str | None = None
    transaction_id: str | None = None
    message: str | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


class PaymentGateway:
    """
    Mock payment processor.

    Args:
        decline_rate: probability in [0, 1] that a non-COD payment is declined.
        latency_ms: simulated processor round trip.
    """

    def __init__(self, decline_rate: float = 0.0, latency_ms: int = 0):
        self.decline_rate = decline_rate
        self.latency_ms = latency_ms

    def process_payment(
        self,
        method: str,
        amount: float,
        details: dict[str, Any] | None = None,
    ) -> PaymentResult:
        if method == CASH_ON_DELIVERY:
            return PaymentResult(
                success=True,
                status="pending",
                transaction_id=f"COD-{_now_ms()}",
                message="Cash on delivery order accepted",
            )

        if self.latency_ms:
            time.sleep(self.latency_ms / 1000)

        card_number = (details or {}).get("card_number") or ""
        card_number = card_number.replace(" ", "").replace("-", "")
        if card_number == DECLINED_TEST_CARD or random.random() < self.decline_rate:
            logger.info("Mock processor declined %s payment of %.2f", method, amount)
            return PaymentResult(success=False, message="Payment declined by bank")

        return PaymentResult(
            success=True,
            status="completed",
            transaction_id=f"TXN-{method.upper()}-{_now_ms()}",
            message="Payment processed successfully",
        )

    def refund_payment(self, transaction_id: str | None, amount: float) -> PaymentResult:
        """
        Return money for a captured payment. COD payments were never captured,
        so there is nothing to send back.
        """
        if not transaction_id or transaction_id.startswith("COD-"):
            return PaymentResult(success=True, status="refunded", message="Nothing captured")

        logger.info("Refunding %.2f for transaction %s", amount, transaction_id)
        return PaymentResult(
            success=True,
            status="refunded",
            transaction_id=f"RFD-{_now_ms()}",
            message="Refund issued",
        )


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency."""
    settings = get_settings()
    return PaymentGateway(
        decline_rate=settings.PAYMENT_DECLINE_RATE,
        latency_ms=settings.PAYMENT_LATENCY_MS,
    )
