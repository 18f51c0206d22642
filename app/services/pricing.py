# app/services/pricing.py
"""
Order pricing rules shared by the cart, checkout summary and order placement.

    items_price    = sum(effective unit price * quantity)
    tax_price      = round(items_price * TAX_RATE, 2)
    shipping_price = 0 if items_price >= FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
    total_price    = items_price + tax_price + shipping_price - discount_amount
"""
from dataclasses import dataclass

TAX_RATE = 0.10
FREE_SHIPPING_THRESHOLD = 100.0
FLAT_SHIPPING = 10.0

# code -> (type, value, minimum items price)
COUPONS: dict[str, tuple[str, float, float]] = {
    "SAVE10": ("percentage", 10.0, 50.0),
    "FLAT20": ("fixed", 20.0, 100.0),
    "NEWUSER": ("percentage", 15.0, 30.0),
}


@dataclass(frozen=True)
class Coupon:
    code: str
    type: str
    value: float
    min_amount: float


@dataclass(frozen=True)
class OrderTotals:
    items_price: float
    tax_price: float
    shipping_price: float
    discount_amount: float
    total_price: float


class CouponError(ValueError):
    """Unknown coupon code or minimum amount not reached."""


def money(value: float) -> float:
    return round(value, 2)


def shipping_for(items_price: float) -> float:
    return 0.0 if items_price >= FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING


def find_coupon(code: str) -> Coupon | None:
    normalized = code.strip().upper()
    entry = COUPONS.get(normalized)
    if entry is None:
        return None
    kind, value, min_amount = entry
    return Coupon(normalized, kind, value, min_amount)


def coupon_discount(code: str, items_price: float) -> tuple[Coupon, float]:
    """
    Resolve a coupon against the items price.

    Raises:
        CouponError: unknown code or minimum not met.
    """
    coupon = find_coupon(code)
    if coupon is None:
        raise CouponError("Invalid coupon code")
    if items_price < coupon.min_amount:
        raise CouponError(
            f"Minimum order amount of ${coupon.min_amount:.2f} required for this coupon"
        )

    if coupon.type == "percentage":
        discount = money(items_price * coupon.value / 100)
    else:
        discount = coupon.value
    # never discount below zero items price
    return coupon, min(discount, money(items_price))


def compute_totals(lines: list[tuple[float, int]], discount_amount: float = 0.0) -> OrderTotals:
    """
    lines: (effective unit price, quantity) pairs.
    """
    items_price = money(sum(price * qty for price, qty in lines))
    tax_price = money(items_price * TAX_RATE)
    shipping_price = shipping_for(items_price)
    discount_amount = money(discount_amount)
    total_price = money(items_price + tax_price + shipping_price - discount_amount)
    return OrderTotals(
        items_price=items_price,
        tax_price=tax_price,
        shipping_price=shipping_price,
        discount_amount=discount_amount,
        total_price=total_price,
    )
