"""Integration tests for the shipping and coupon administration endpoints."""


class TestShippingAdmin:
    def test_carrier_and_rates_round(self, client, admin_headers):
        created = client.post("/shipping/carriers", json={"name": "FastShip"}, headers=admin_headers)
        assert created.status_code == 201
        carrier_id = created.json()["id"]

        upsert = client.put(
            f"/shipping/carriers/{carrier_id}/rates",
            json={"rates": [{"region_code": "16", "desk_price": 400, "home_price": 600}]},
            headers=admin_headers,
        )
        assert upsert.json() == {"created": 1, "updated": 0}

        rates = client.get(f"/shipping/carriers/{carrier_id}/rates").json()
        assert rates == [{"region_code": "16", "desk_price": 400, "home_price": 600}]

        carriers = client.get("/checkout/carriers", params={"region_code": "16"}).json()
        assert [c["name"] for c in carriers] == ["FastShip"]

        actions = {e["action"] for e in client.get("/activity").json()}
        assert actions == {"shipping_company_create", "shipping_rates_update"}

    def test_deactivated_carrier_disappears_from_checkout(self, client, admin_headers, checkout):
        carrier_id = str(checkout["carrier"].id)
        client.patch(f"/shipping/carriers/{carrier_id}", json={"is_active": False}, headers=admin_headers)

        assert client.get("/checkout/carriers", params={"region_code": "16"}).json() == []

    def test_negative_price_is_rejected(self, client, admin_headers, checkout):
        response = client.put(
            f"/shipping/carriers/{checkout['carrier'].id}/rates",
            json={"rates": [{"region_code": "16", "desk_price": -5, "home_price": 600}]},
            headers=admin_headers,
        )
        assert response.status_code == 422


class TestCouponAdmin:
    def test_create_list_update_delete(self, client, admin_headers):
        created = client.post(
            "/coupons",
            json={"code": "launch", "discount_type": "fixed", "discount_value": 500, "usage_limit": 10},
            headers=admin_headers,
        )
        assert created.status_code == 201
        coupon_id = created.json()["id"]

        listed = client.get("/coupons").json()
        assert [(c["code"], c["used_count"]) for c in listed] == [("LAUNCH", 0)]

        client.patch(f"/coupons/{coupon_id}", json={"is_active": False}, headers=admin_headers)
        verdict = client.post("/checkout/coupons/validate", json={"code": "LAUNCH", "cart_total": 1000}).json()
        assert verdict == {"valid": False, "reason": "inactive"}

        assert client.delete(f"/coupons/{coupon_id}", headers=admin_headers).status_code == 200
        assert client.get("/coupons").json() == []

    def test_duplicate_code(self, client, admin_headers):
        body = {"code": "SAVE10", "discount_type": "percentage", "discount_value": 10}
        client.post("/coupons", json=body, headers=admin_headers)
        assert client.post("/coupons", json=body, headers=admin_headers).status_code == 400

    def test_explicit_null_clears_the_usage_limit(self, client, admin_headers):
        created = client.post(
            "/coupons",
            json={"code": "FEW", "discount_type": "fixed", "discount_value": 100, "usage_limit": 1},
            headers=admin_headers,
        )
        coupon_id = created.json()["id"]

        client.patch(f"/coupons/{coupon_id}", json={"is_active": True}, headers=admin_headers)
        assert client.get("/coupons").json()[0]["usage_limit"] == 1

        response = client.patch(f"/coupons/{coupon_id}", json={"usage_limit": None}, headers=admin_headers)
        assert response.status_code == 200
        assert client.get("/coupons").json()[0]["usage_limit"] is None
