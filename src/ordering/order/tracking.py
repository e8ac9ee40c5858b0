"""Order tracking for shoppers without an account.

A guest proves they own an order by giving the phone number it was placed
with. A wrong phone and an unknown order look the same to the caller.
"""

import re

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order


def _digits(phone) -> str:
    return re.sub(r"\D", "", phone or "")


def phones_match(given, recorded) -> bool:
    given_digits, recorded_digits = _digits(given), _digits(recorded)
    return bool(given_digits) and given_digits == recorded_digits


def track_order(order_id, phone) -> dict:
    """Status and summary of an order, if `phone` matches its contact phone.

    Raises:
        ObjectNotFoundError: No such order, or the phone does not match.
    """
    order = current_domain.repository_for(Order)._dao.query.filter(id=str(order_id)).first
    if order is None or not phones_match(phone, order.contact()[1]):
        raise ObjectNotFoundError(f"Order {order_id} not found")

    return {
        "order_id": str(order.id),
        "status": order.status,
        "total_amount": order.total_amount,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "carrier": order.delivery.carrier_name if order.delivery else None,
        "items": [{"name": item.name, "quantity": item.quantity} for item in order.items],
    }
