"""Delivery note: the pipe-delimited string stored on every order.

Orders carry their delivery details as structured fields; the note is
rendered from them when the order is placed, for back-office screens and
exports that only read `notes`. Rows written before the structured fields
existed have nothing but the note, so `parse_delivery_note` reads it back
leniently.

    Home delivery | Company: FastShip | Name: Amina B. | Phone: 0555123456 | Shipping: 600 DA
"""

import re
from dataclasses import dataclass

SEPARATOR = " | "
CURRENCY = "DA"

METHOD_SUMMARIES = {
    "desk": "Desk delivery (Desk Stop)",
    "home": "Home delivery",
}

_FIELD = re.compile(r"^\s*(?P<key>[A-Za-z ]+?)\s*:\s*(?P<value>.*?)\s*$")
_AMOUNT = re.compile(r"-?\d+(?:\.\d+)?")


def render_delivery_note(delivery_method, carrier_name, contact_name, phone, shipping_cost) -> str:
    summary = METHOD_SUMMARIES.get(delivery_method, delivery_method)
    cost = int(shipping_cost) if float(shipping_cost).is_integer() else shipping_cost
    return SEPARATOR.join(
        [
            summary,
            f"Company: {carrier_name}",
            f"Name: {contact_name}",
            f"Phone: {phone}",
            f"Shipping: {cost} {CURRENCY}",
        ]
    )


@dataclass(frozen=True)
class ParsedNote:
    method_summary: str
    delivery_method: str | None = None
    carrier_name: str | None = None
    contact_name: str | None = None
    phone: str | None = None
    shipping_cost: float | None = None


def _method_from_summary(summary) -> str | None:
    lowered = summary.lower()
    if lowered.startswith("desk"):
        return "desk"
    if lowered.startswith("home"):
        return "home"
    return None


def parse_delivery_note(notes) -> ParsedNote | None:
    """Read a legacy note. Missing or unknown segments are left as None.

    Only the first segment is assumed to be positional (the method summary);
    the rest are matched by key, in any order.
    """
    if not notes or not notes.strip():
        return None

    segments = notes.split("|")
    summary = segments[0].strip()

    fields = {}
    for segment in segments[1:]:
        match = _FIELD.match(segment)
        if match:
            fields[match.group("key").strip().lower()] = match.group("value") or None

    shipping_cost = None
    if fields.get("shipping"):
        amount = _AMOUNT.search(fields["shipping"])
        if amount:
            shipping_cost = float(amount.group())

    return ParsedNote(
        method_summary=summary,
        delivery_method=_method_from_summary(summary),
        carrier_name=fields.get("company"),
        contact_name=fields.get("name"),
        phone=fields.get("phone"),
        shipping_cost=shipping_cost,
    )
