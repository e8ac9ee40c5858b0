"""Order lifecycle: back-office status changes, corrections and deletion.

Each mutation writes one activity log entry in the same unit of work, so an
audited change and its audit record commit or fail together.
"""

import os
from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.audit.activity import ActivityAction, record_activity
from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.shipping.regions import is_known_region

logger = structlog.get_logger(__name__)

STRICT = "strict"
PERMISSIVE = "permissive"


def lifecycle_mode() -> str:
    """`ORDER_LIFECYCLE` selects the transition policy; permissive unless set to strict."""
    mode = os.environ.get("ORDER_LIFECYCLE", PERMISSIVE).strip().lower()
    return STRICT if mode == STRICT else PERMISSIVE


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    actor_id = Identifier()


@ordering.command(part_of="Order")
class CorrectShippingAddress:
    order_id = Identifier(required=True)
    street = String(max_length=255, sanitize=False)
    city = String(max_length=100, sanitize=False)
    region_code = String(max_length=2)
    country = String(max_length=100, sanitize=False)
    actor_id = Identifier()


@ordering.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier()


@ordering.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        old_status = order.change_status(command.status, strict=lifecycle_mode() == STRICT)
        repo.add(order)

        record_activity(
            command.actor_id,
            ActivityAction.ORDER_UPDATE,
            "order",
            order.id,
            {"old_status": old_status, "new_status": order.status},
        )
        logger.info(
            "order_status_changed",
            order_id=str(order.id),
            old_status=old_status,
            new_status=order.status,
            actor_id=command.actor_id,
        )
        return old_status

    @handle(CorrectShippingAddress)
    def correct_address(self, command):
        if command.region_code is not None and not is_known_region(command.region_code):
            raise ValidationError({"region_code": [f"Unknown region: {command.region_code}"]})

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous, updated = order.correct_address(
            street=command.street,
            city=command.city,
            region_code=command.region_code,
            country=command.country,
        )
        repo.add(order)

        record_activity(
            command.actor_id,
            ActivityAction.ORDER_UPDATE,
            "order",
            order.id,
            {"previous_address": previous, "new_address": updated},
        )

    @handle(DeleteOrder)
    def delete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        # The entry goes in first; a failed delete rolls both back.
        record_activity(
            command.actor_id,
            ActivityAction.ORDER_DELETE,
            "order",
            order.id,
            {
                "status": order.status,
                "total_amount": order.total_amount,
                "item_count": len(order.items),
            },
        )
        repo._dao.delete(order)
        logger.info("order_deleted", order_id=str(command.order_id), actor_id=command.actor_id)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class BulkResult:
    succeeded: list = field(default_factory=list)
    failed: dict = field(default_factory=dict)  # order id → reason

    def to_dict(self) -> dict:
        return {
            "succeeded": list(self.succeeded),
            "failed": dict(self.failed),
            "succeeded_count": len(self.succeeded),
            "failed_count": len(self.failed),
        }


def _reasons(exc) -> str:
    if not isinstance(exc.messages, dict):
        return str(exc.messages)
    flat = []
    for messages in exc.messages.values():
        flat.extend(messages if isinstance(messages, list) else [messages])
    return "; ".join(str(m) for m in flat)


def bulk_change_status(order_ids, status, actor_id=None) -> BulkResult:
    """Apply one status to many orders, each in its own unit of work.

    A failing order is reported and skipped; the rest still go through.
    """
    result = BulkResult()
    for order_id in order_ids:
        try:
            current_domain.process(
                ChangeOrderStatus(order_id=order_id, status=status, actor_id=actor_id),
                asynchronous=False,
            )
            result.succeeded.append(str(order_id))
        except ObjectNotFoundError:
            logger.warning("bulk_status_order_missing", order_id=str(order_id))
            result.failed[str(order_id)] = "Order not found"
        except ValidationError as exc:
            logger.warning("bulk_status_rejected", order_id=str(order_id), errors=exc.messages)
            result.failed[str(order_id)] = _reasons(exc)
        except Exception as exc:
            # Storage or version conflicts fail this order only
            logger.exception("bulk_status_failed", order_id=str(order_id))
            result.failed[str(order_id)] = str(exc) or type(exc).__name__

    logger.info(
        "bulk_status_changed",
        status=status,
        succeeded=len(result.succeeded),
        failed=len(result.failed),
    )
    return result
