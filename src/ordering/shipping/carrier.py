"""Shipping carriers and their per-region rate table.

A carrier publishes two prices per region: drop-off at a pickup desk and
delivery to the door. A price of 0 means the method is not offered there.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String

from ordering.domain import ordering
from ordering.shipping.regions import is_known_region

RATE_TABLE_LIMIT = 10_000


@ordering.aggregate
class Carrier:
    name = String(required=True, max_length=100, sanitize=False)
    logo_url = String(max_length=500, sanitize=False)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, name, logo_url=None, is_active=True):
        now = datetime.now(UTC)
        return cls(name=name, logo_url=logo_url, is_active=is_active, created_at=now, updated_at=now)

    def update_details(self, name=None, logo_url=None, is_active=None) -> dict:
        """Apply the given changes and return them as {field: new value}."""
        changes = {}
        if name is not None and name != self.name:
            self.name = name
            changes["name"] = name
        if logo_url is not None and logo_url != self.logo_url:
            self.logo_url = logo_url
            changes["logo_url"] = logo_url
        if is_active is not None and is_active != self.is_active:
            self.is_active = is_active
            changes["is_active"] = is_active
        if changes:
            self.updated_at = datetime.now(UTC)
        return changes


@ordering.aggregate
class ShippingRate:
    """One row of the rate table: a carrier's prices for one region."""

    carrier_id = Identifier(required=True)
    region_code = String(required=True, max_length=2)
    desk_price = Integer(default=0, min_value=0)
    home_price = Integer(default=0, min_value=0)
    updated_at = DateTime()

    @classmethod
    def for_region(cls, carrier_id, region_code, desk_price=0, home_price=0):
        if not is_known_region(region_code):
            raise ValidationError({"region_code": [f"Unknown region: {region_code}"]})
        return cls(
            carrier_id=carrier_id,
            region_code=region_code,
            desk_price=desk_price,
            home_price=home_price,
            updated_at=datetime.now(UTC),
        )

    def reprice(self, desk_price, home_price):
        self.desk_price = desk_price
        self.home_price = home_price
        self.updated_at = datetime.now(UTC)


@ordering.repository(part_of=Carrier)
class CarrierRepository:
    def active(self):
        return self._dao.query.filter(is_active=True).order_by("name").all().items

    def listing(self):
        return self._dao.query.order_by("name").all().items


@ordering.repository(part_of=ShippingRate)
class ShippingRateRepository:
    def for_region(self, region_code):
        return self._dao.query.filter(region_code=region_code).all().items

    def for_carrier(self, carrier_id):
        return self._dao.query.filter(carrier_id=str(carrier_id)).order_by("region_code").all().items

    def find(self, carrier_id, region_code):
        return self._dao.query.filter(carrier_id=str(carrier_id), region_code=region_code).first

    def everything(self):
        # Protean caps unqualified queries at 100 rows
        return self._dao.query.limit(RATE_TABLE_LIMIT).all().items
