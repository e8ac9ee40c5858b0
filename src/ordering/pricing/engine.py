"""Pricing engine: the one place a checkout total is computed.

The quote shown on the checkout page and the total persisted on the order
both come from `compute_total`.
"""

from dataclasses import dataclass

from ordering.coupon.coupon import DiscountType


@dataclass(frozen=True)
class Discount:
    discount_type: str
    discount_value: float

    @classmethod
    def from_verdict(cls, verdict) -> "Discount | None":
        if not verdict.valid:
            return None
        return cls(discount_type=verdict.discount_type, discount_value=verdict.discount_value)

    def amount_for(self, subtotal: float) -> float:
        if self.discount_type == DiscountType.PERCENTAGE.value:
            amount = subtotal * self.discount_value / 100
        else:
            amount = self.discount_value
        return min(max(amount, 0.0), subtotal)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    discount_amount: float
    shipping_cost: float
    total: float

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "shipping_cost": self.shipping_cost,
            "total": self.total,
        }


def compute_total(line_items, discount: Discount | None = None, shipping_cost=0) -> PriceBreakdown:
    """Subtotal less the discount (never below zero), plus shipping.

    The discount is clamped to [0, subtotal]; shipping is never discounted.
    """
    subtotal = sum(item.unit_price * item.quantity for item in line_items)
    discount_amount = discount.amount_for(subtotal) if discount else 0.0
    total = max(0.0, subtotal - discount_amount) + shipping_cost
    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount_amount,
        shipping_cost=shipping_cost,
        total=total,
    )


def stock_shortfalls(line_items, stock_levels: dict) -> list:
    """Product lines asking for more than `stock_levels` (id → units) holds.

    Quantities of the same product across lines (different variant choices)
    are summed before comparing.
    """
    requested = {}
    for item in line_items:
        if item.is_product:
            requested[item.reference_id] = requested.get(item.reference_id, 0) + item.quantity

    return [
        item
        for item in line_items
        if item.is_product and requested[item.reference_id] > stock_levels.get(item.reference_id, 0)
    ]
