"""Checkout quote: the total shown before the shopper submits.

Same lookups and the same `compute_total` as submission, but read-only: an
invalid coupon is reported alongside the quote instead of rejecting it.
"""

from dataclasses import dataclass

from ordering.cart.normalizer import LineKind, normalize
from ordering.catalogue.catalogue import load_catalogue
from ordering.coupon.coupon import CouponVerdict, validate_coupon
from ordering.errors import CheckoutRejected, RejectionKind
from ordering.pricing.engine import Discount, PriceBreakdown, compute_total
from ordering.shipping.regions import region_name
from ordering.shipping.resolver import available_carrier, load_rate_table


@dataclass(frozen=True)
class CheckoutQuote:
    breakdown: PriceBreakdown
    coupon: CouponVerdict | None = None

    def to_dict(self) -> dict:
        return {
            **self.breakdown.to_dict(),
            "coupon": self.coupon.to_dict() if self.coupon else None,
        }


def quote_checkout(entries, region_code, carrier_id, delivery_method, coupon_code=None) -> CheckoutQuote:
    products, packs = load_catalogue(
        {e.reference_id for e in entries if e.kind == LineKind.PRODUCT.value},
        {e.reference_id for e in entries if e.kind == LineKind.BUNDLE.value},
    )
    line_items = normalize(entries, products, packs)

    carrier = available_carrier(carrier_id)
    table = load_rate_table(region_code)
    if not table.services(carrier.id, region_code):
        raise CheckoutRejected(
            RejectionKind.RATE_UNAVAILABLE,
            f"No shipping rate for this company in {region_name(region_code)}",
        )
    shipping_cost = table.cost_for(carrier.id, region_code, delivery_method)

    verdict = None
    discount = None
    if coupon_code:
        verdict = validate_coupon(coupon_code, compute_total(line_items).subtotal)
        discount = Discount.from_verdict(verdict)

    return CheckoutQuote(breakdown=compute_total(line_items, discount, shipping_cost), coupon=verdict)
