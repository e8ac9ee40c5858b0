"""Coupon aggregate and the validator shoppers hit before checkout.

Validation is read-only. Only a successful order submission redeems a
coupon, and it does so inside the submission's unit of work.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import CheckoutRejected, RejectionKind


class DiscountType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class CouponRejection(Enum):
    NOT_FOUND = "not found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage limit reached"
    MINIMUM_SPEND_NOT_MET = "minimum spend not met"


CLEARABLE_FIELDS = ("usage_limit", "expires_at")


def normalize_code(code) -> str:
    return (code or "").strip().upper()


def _as_utc(moment):
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@dataclass(frozen=True)
class CouponVerdict:
    valid: bool
    discount_type: str | None = None
    discount_value: float | None = None
    reason: str | None = None

    @classmethod
    def accept(cls, coupon) -> "CouponVerdict":
        return cls(valid=True, discount_type=coupon.discount_type, discount_value=coupon.discount_value)

    @classmethod
    def reject(cls, rejection: CouponRejection) -> "CouponVerdict":
        return cls(valid=False, reason=rejection.value)

    def to_dict(self) -> dict:
        if self.valid:
            return {"valid": True, "discount_type": self.discount_type, "discount_value": self.discount_value}
        return {"valid": False, "reason": self.reason}


@ordering.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    min_spend = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=0)
    used_count = Integer(default=0, min_value=0)
    expires_at = DateTime()
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def usage_within_limit(self):
        if self.usage_limit is not None and self.used_count > self.usage_limit:
            raise ValidationError({"used_count": ["Coupon usage exceeds its limit"]})

    @classmethod
    def issue(
        cls,
        code,
        discount_type,
        discount_value,
        min_spend=0.0,
        usage_limit=None,
        expires_at=None,
        is_active=True,
    ):
        now = datetime.now(UTC)
        return cls(
            code=normalize_code(code),
            discount_type=discount_type,
            discount_value=discount_value,
            min_spend=min_spend or 0.0,
            usage_limit=usage_limit,
            expires_at=expires_at,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return _as_utc(self.expires_at) < (now or datetime.now(UTC))

    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def verdict_for(self, subtotal, now=None) -> CouponVerdict:
        """Run the checks in order; the first failing one decides the reason."""
        if not self.is_active:
            return CouponVerdict.reject(CouponRejection.INACTIVE)
        if self.is_expired(now):
            return CouponVerdict.reject(CouponRejection.EXPIRED)
        if self.is_exhausted():
            return CouponVerdict.reject(CouponRejection.USAGE_LIMIT_REACHED)
        if subtotal < (self.min_spend or 0.0):
            return CouponVerdict.reject(CouponRejection.MINIMUM_SPEND_NOT_MET)
        return CouponVerdict.accept(self)

    def redeem(self):
        """Count one use. Never lets a coupon at its limit go over."""
        if self.is_exhausted():
            raise CheckoutRejected(RejectionKind.COUPON_REJECTED, CouponRejection.USAGE_LIMIT_REACHED.value)
        self.used_count += 1
        self.updated_at = datetime.now(UTC)

    def update_details(self, clear=(), **fields) -> dict:
        """Apply the given (non-None) changes and return them as {field: new value}.

        `clear` names nullable fields to reset to None: an unlimited coupon
        has no `usage_limit`, a permanent one no `expires_at`.
        """
        changes = {}
        for name in clear:
            if name not in CLEARABLE_FIELDS:
                raise ValidationError({name: ["This field cannot be cleared"]})
            if getattr(self, name) is not None:
                setattr(self, name, None)
                changes[name] = None
        for name, value in fields.items():
            if value is None:
                continue
            if name == "code":
                value = normalize_code(value)
            if getattr(self, name) != value:
                setattr(self, name, value)
                changes[name] = value
        if changes:
            self.updated_at = datetime.now(UTC)
        return changes


@ordering.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code):
        return self._dao.query.filter(code=normalize_code(code)).first

    def listing(self):
        return self._dao.query.order_by("-created_at").all().items


def validate_coupon(code, cart_total, now=None) -> CouponVerdict:
    """Check a code against a cart subtotal without consuming it."""
    coupon = current_domain.repository_for(Coupon).find_by_code(code)
    if coupon is None:
        return CouponVerdict.reject(CouponRejection.NOT_FOUND)
    return coupon.verdict_for(cart_total, now)
