"""Shipping administration: carriers and their rate table.

Every mutation is written to the activity log in the same unit of work.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.audit.activity import ActivityAction, record_activity
from ordering.domain import ordering
from ordering.shipping.carrier import Carrier, ShippingRate

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Carrier")
class CreateCarrier:
    name = String(required=True, max_length=100, sanitize=False)
    logo_url = String(max_length=500, sanitize=False)
    is_active = Boolean(default=True)
    actor_id = Identifier()


@ordering.command(part_of="Carrier")
class UpdateCarrier:
    carrier_id = Identifier(required=True)
    name = String(max_length=100, sanitize=False)
    logo_url = String(max_length=500, sanitize=False)
    is_active = Boolean()
    actor_id = Identifier()


@ordering.command(part_of="Carrier")
class DeleteCarrier:
    """Remove a carrier together with every rate row it owns."""

    carrier_id = Identifier(required=True)
    actor_id = Identifier()


@ordering.command(part_of="Carrier")
class UpsertShippingRates:
    carrier_id = Identifier(required=True)
    rates = Text(required=True, sanitize=False)  # JSON: [{region_code, desk_price, home_price}, ...]
    actor_id = Identifier()


def _parse_rates(raw) -> list[dict]:
    rows = json.loads(raw)
    if not isinstance(rows, list):
        raise ValidationError({"rates": ["Rates must be a list"]})

    parsed = {}
    for row in rows:
        try:
            region_code = str(row["region_code"])
            desk_price = int(row.get("desk_price") or 0)
            home_price = int(row.get("home_price") or 0)
        except (KeyError, TypeError, ValueError):
            raise ValidationError({"rates": [f"Malformed rate row: {row}"]}) from None
        if desk_price < 0 or home_price < 0:
            raise ValidationError({"rates": [f"Negative price for region {region_code}"]})
        # Later rows for the same region win
        parsed[region_code] = {"region_code": region_code, "desk_price": desk_price, "home_price": home_price}
    return list(parsed.values())


@ordering.command_handler(part_of=Carrier)
class ShippingAdminHandler:
    @handle(CreateCarrier)
    def create_carrier(self, command):
        carrier = Carrier.register(
            name=command.name,
            logo_url=command.logo_url,
            is_active=command.is_active,
        )
        current_domain.repository_for(Carrier).add(carrier)
        record_activity(
            command.actor_id,
            ActivityAction.SHIPPING_COMPANY_CREATE,
            "shipping_company",
            carrier.id,
            {"name": carrier.name},
        )
        logger.info("carrier_created", carrier_id=str(carrier.id), name=carrier.name)
        return str(carrier.id)

    @handle(UpdateCarrier)
    def update_carrier(self, command):
        repo = current_domain.repository_for(Carrier)
        carrier = repo.get(command.carrier_id)
        changes = carrier.update_details(
            name=command.name,
            logo_url=command.logo_url,
            is_active=command.is_active,
        )
        repo.add(carrier)
        record_activity(
            command.actor_id,
            ActivityAction.SHIPPING_COMPANY_UPDATE,
            "shipping_company",
            carrier.id,
            {"changes": changes},
        )

    @handle(DeleteCarrier)
    def delete_carrier(self, command):
        repo = current_domain.repository_for(Carrier)
        carrier = repo.get(command.carrier_id)

        rate_repo = current_domain.repository_for(ShippingRate)
        rates = rate_repo.for_carrier(carrier.id)

        record_activity(
            command.actor_id,
            ActivityAction.SHIPPING_COMPANY_DELETE,
            "shipping_company",
            carrier.id,
            {"name": carrier.name, "rates_removed": len(rates)},
        )
        for rate in rates:
            rate_repo._dao.delete(rate)
        repo._dao.delete(carrier)
        logger.info("carrier_deleted", carrier_id=str(carrier.id), rates_removed=len(rates))

    @handle(UpsertShippingRates)
    def upsert_rates(self, command):
        carrier = current_domain.repository_for(Carrier).get(command.carrier_id)
        rate_repo = current_domain.repository_for(ShippingRate)

        created = updated = 0
        for row in _parse_rates(command.rates):
            rate = rate_repo.find(carrier.id, row["region_code"])
            if rate is None:
                rate = ShippingRate.for_region(carrier.id, **row)
                created += 1
            else:
                rate.reprice(row["desk_price"], row["home_price"])
                updated += 1
            rate_repo.add(rate)

        record_activity(
            command.actor_id,
            ActivityAction.SHIPPING_RATES_UPDATE,
            "shipping_company",
            carrier.id,
            {"created": created, "updated": updated},
        )
        logger.info("shipping_rates_upserted", carrier_id=str(carrier.id), created=created, updated=updated)
        return {"created": created, "updated": updated}
