"""Checkout rejections: stale-state conflicts surfaced to the shopper.

Field-level problems are raised as `protean.exceptions.ValidationError`.
`CheckoutRejected` covers the other family: the request was well formed but
the world changed underneath it (stock ran out, a rate disappeared, the
coupon stopped being valid). The shopper has to re-attempt checkout.
"""

from enum import Enum


class RejectionKind(Enum):
    STOCK_CONFLICT = "stock_conflict"
    RATE_UNAVAILABLE = "rate_unavailable"
    COUPON_REJECTED = "coupon_rejected"
    UNAVAILABLE = "unavailable"


class CheckoutRejected(Exception):
    def __init__(self, kind: RejectionKind, reason: str):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "reason": self.reason}
