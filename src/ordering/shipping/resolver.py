"""Shipping rate resolver: pure lookups over a loaded rate table.

The table is read once per request (`load_rate_table`) and queried without
touching storage again, so a quote and the submission that follows it can
each be computed against one consistent snapshot.
"""

from dataclasses import dataclass, replace
from enum import Enum

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.errors import CheckoutRejected, RejectionKind
from ordering.shipping.carrier import Carrier, ShippingRate
from ordering.shipping.regions import is_known_region


class DeliveryMethod(Enum):
    DESK = "desk"
    HOME = "home"


@dataclass(frozen=True)
class ShippingQuote:
    desk_price: int
    home_price: int

    def price_for(self, delivery_method) -> int:
        method = DeliveryMethod(delivery_method)
        return self.desk_price if method == DeliveryMethod.DESK else self.home_price

    def to_dict(self) -> dict:
        return {"desk_price": self.desk_price, "home_price": self.home_price}


class RateTable:
    """Carrier × region → desk/home prices. A missing row means "not serviced"."""

    def __init__(self, rates=()):
        self._rates = {}
        for rate in rates:
            self._rates[(str(rate.carrier_id), rate.region_code)] = ShippingQuote(
                desk_price=rate.desk_price or 0,
                home_price=rate.home_price or 0,
            )

    def rate_for(self, carrier_id, region_code) -> ShippingQuote | None:
        return self._rates.get((str(carrier_id), region_code))

    def cost_for(self, carrier_id, region_code, delivery_method) -> int | None:
        quote = self.rate_for(carrier_id, region_code)
        if quote is None:
            return None
        return quote.price_for(delivery_method)

    def services(self, carrier_id, region_code) -> bool:
        """True when the carrier has a row with at least one positive price."""
        quote = self.rate_for(carrier_id, region_code)
        return quote is not None and (quote.desk_price > 0 or quote.home_price > 0)

    def carriers_for(self, region_code, carriers) -> list:
        """Narrow `carriers` to the active ones that service `region_code`."""
        return [c for c in carriers if c.is_active and self.services(c.id, region_code)]


@dataclass(frozen=True)
class CheckoutSelection:
    """What the shopper has picked so far on the checkout form."""

    region_code: str | None = None
    carrier_id: str | None = None
    delivery_method: str | None = None

    def with_region(self, region_code, table: RateTable) -> "CheckoutSelection":
        """Move to another region, dropping a carrier that does not service it."""
        if not is_known_region(region_code):
            raise ValidationError({"region_code": [f"Unknown region: {region_code}"]})
        carrier_id = self.carrier_id
        if carrier_id and not table.services(carrier_id, region_code):
            carrier_id = None
        return replace(self, region_code=region_code, carrier_id=carrier_id)

    def with_carrier(self, carrier_id) -> "CheckoutSelection":
        return replace(self, carrier_id=carrier_id)

    def missing_fields(self) -> list[str]:
        return [name for name in ("region_code", "carrier_id", "delivery_method") if not getattr(self, name)]


def load_rate_table(region_code=None) -> RateTable:
    """Snapshot the rate table, optionally for a single region."""
    repo = current_domain.repository_for(ShippingRate)
    rates = repo.for_region(region_code) if region_code else repo.everything()
    return RateTable(rates)


def available_carrier(carrier_id) -> Carrier:
    """Load the chosen carrier, rejecting one that is gone or deactivated."""
    carrier = None
    if carrier_id:
        carrier = current_domain.repository_for(Carrier)._dao.query.filter(id=str(carrier_id)).first
    if carrier is None or not carrier.is_active:
        raise CheckoutRejected(RejectionKind.RATE_UNAVAILABLE, "Shipping company is no longer available")
    return carrier
