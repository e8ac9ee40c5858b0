"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checkout was turned into a pending order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier()
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    shipping_cost = Float()
    coupon_code = String()
    carrier_id = Identifier()
    region_code = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    old_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderAddressCorrected:
    """The shipping address was fixed after placement. Items and totals are untouched."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_address = Text(required=True, sanitize=False)  # JSON: address dict
    new_address = Text(required=True, sanitize=False)  # JSON: address dict
    corrected_at = DateTime(required=True)
