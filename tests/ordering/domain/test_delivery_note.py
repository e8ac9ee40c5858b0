"""Tests for rendering and leniently reading delivery notes."""

from ordering.order.notes import ParsedNote, parse_delivery_note, render_delivery_note


class TestRender:
    def test_desk_note(self):
        note = render_delivery_note("desk", "Yalidine", "Karim Haddad", "0661000000", 400)
        assert note == (
            "Desk delivery (Desk Stop) | Company: Yalidine | Name: Karim Haddad | Phone: 0661000000 | Shipping: 400 DA"
        )

    def test_whole_float_cost_has_no_decimals(self):
        assert render_delivery_note("home", "A", "B", "C", 600.0).endswith("Shipping: 600 DA")


class TestParse:
    def test_reads_back_a_rendered_note(self):
        note = render_delivery_note("home", "FastShip", "Amina Benali", "0555123456", 600)
        assert parse_delivery_note(note) == ParsedNote(
            method_summary="Home delivery",
            delivery_method="home",
            carrier_name="FastShip",
            contact_name="Amina Benali",
            phone="0555123456",
            shipping_cost=600.0,
        )

    def test_missing_keys_are_none(self):
        parsed = parse_delivery_note("Desk delivery (Desk Stop) | Phone: 0661000000")
        assert parsed.delivery_method == "desk"
        assert parsed.phone == "0661000000"
        assert parsed.carrier_name is None
        assert parsed.shipping_cost is None

    def test_keys_in_any_order(self):
        parsed = parse_delivery_note("Home delivery | Shipping: 700 DA | Name: Sara | Company: Zr Express")
        assert parsed.contact_name == "Sara"
        assert parsed.carrier_name == "Zr Express"
        assert parsed.shipping_cost == 700.0

    def test_free_text_summary(self):
        parsed = parse_delivery_note("Call before delivering")
        assert parsed.method_summary == "Call before delivering"
        assert parsed.delivery_method is None

    def test_empty_note(self):
        assert parse_delivery_note(None) is None
        assert parse_delivery_note("   ") is None
