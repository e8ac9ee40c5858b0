"""Coupon administration: create, update and delete, each one audited."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, List, String
from protean.utils.globals import current_domain

from ordering.audit.activity import ActivityAction, record_activity
from ordering.coupon.coupon import Coupon, DiscountType
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    min_spend = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=0)
    expires_at = DateTime()
    is_active = Boolean(default=True)
    actor_id = Identifier()


@ordering.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    code = String(max_length=50)
    discount_type = String(choices=DiscountType)
    discount_value = Float(min_value=0.0)
    min_spend = Float(min_value=0.0)
    usage_limit = Integer(min_value=0)
    expires_at = DateTime()
    is_active = Boolean()
    clear_fields = List(content_type=String)  # nullable fields to reset: usage_limit, expires_at
    actor_id = Identifier()


@ordering.command(part_of="Coupon")
class DeleteCoupon:
    coupon_id = Identifier(required=True)
    actor_id = Identifier()


def _ensure_code_is_free(code, coupon_id=None):
    existing = current_domain.repository_for(Coupon).find_by_code(code)
    if existing is not None and str(existing.id) != str(coupon_id):
        raise ValidationError({"code": [f"Coupon code {existing.code} already exists"]})


@ordering.command_handler(part_of=Coupon)
class CouponAdminHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        _ensure_code_is_free(command.code)
        coupon = Coupon.issue(
            code=command.code,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            min_spend=command.min_spend,
            usage_limit=command.usage_limit,
            expires_at=command.expires_at,
            is_active=command.is_active,
        )
        current_domain.repository_for(Coupon).add(coupon)
        record_activity(
            command.actor_id,
            ActivityAction.COUPON_CREATE,
            "coupon",
            coupon.id,
            {"code": coupon.code, "discount_type": coupon.discount_type, "discount_value": coupon.discount_value},
        )
        logger.info("coupon_created", coupon_id=str(coupon.id), code=coupon.code)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        if command.code:
            _ensure_code_is_free(command.code, coupon.id)

        changes = coupon.update_details(
            clear=command.clear_fields or (),
            code=command.code,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            min_spend=command.min_spend,
            usage_limit=command.usage_limit,
            expires_at=command.expires_at,
            is_active=command.is_active,
        )
        repo.add(coupon)
        record_activity(
            command.actor_id,
            ActivityAction.COUPON_UPDATE,
            "coupon",
            coupon.id,
            {"code": coupon.code, "changes": changes},
        )

    @handle(DeleteCoupon)
    def delete_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        record_activity(
            command.actor_id,
            ActivityAction.COUPON_DELETE,
            "coupon",
            coupon.id,
            {"code": coupon.code, "used_count": coupon.used_count},
        )
        repo._dao.delete(coupon)
        logger.info("coupon_deleted", coupon_id=str(coupon.id), code=coupon.code)
