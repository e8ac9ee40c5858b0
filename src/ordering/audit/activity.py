"""Activity log: append-only audit trail of back-office mutations.

Entries are written inside the same unit of work as the mutation they
describe. Nothing in the system updates or deletes an entry once written.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering


class ActivityAction(Enum):
    ORDER_UPDATE = "order_update"
    ORDER_DELETE = "order_delete"
    COUPON_CREATE = "coupon_create"
    COUPON_UPDATE = "coupon_update"
    COUPON_DELETE = "coupon_delete"
    SHIPPING_COMPANY_CREATE = "shipping_company_create"
    SHIPPING_COMPANY_UPDATE = "shipping_company_update"
    SHIPPING_COMPANY_DELETE = "shipping_company_delete"
    SHIPPING_RATES_UPDATE = "shipping_rates_update"


@ordering.aggregate
class ActivityLogEntry:
    actor_user_id = Identifier()
    action = String(required=True, choices=ActivityAction)
    target_type = String(required=True, max_length=50)
    target_id = Identifier()
    details = Text(sanitize=False)  # JSON object
    created_at = DateTime()

    @classmethod
    def create(cls, actor_user_id, action, target_type, target_id=None, details=None):
        return cls(
            actor_user_id=actor_user_id,
            action=action.value,
            target_type=target_type,
            target_id=target_id,
            details=json.dumps(details or {}, default=str),
            created_at=datetime.now(UTC),
        )

    @property
    def payload(self) -> dict:
        return json.loads(self.details) if self.details else {}


@ordering.repository(part_of=ActivityLogEntry)
class ActivityLogRepository:
    def for_target(self, target_type, target_id):
        return (
            self._dao.query.filter(target_type=target_type, target_id=str(target_id))
            .order_by("created_at")
            .all()
            .items
        )

    def recent(self, action=None):
        query = self._dao.query
        if action:
            query = query.filter(action=action)
        return query.order_by("-created_at").all().items


def record_activity(actor_user_id, action, target_type, target_id=None, details=None):
    """Append one entry to the activity log within the current unit of work."""
    entry = ActivityLogEntry.create(
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        details=details,
    )
    current_domain.repository_for(ActivityLogEntry).add(entry)
    return entry
