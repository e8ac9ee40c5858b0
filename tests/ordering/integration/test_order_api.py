"""Integration tests for the back-office order endpoints via TestClient."""

import csv
import io

from ordering.order.submission import place_order


class TestOrderQueries:
    def test_list_and_filter_by_status(self, client, submission, admin_headers):
        first = place_order(**submission)
        place_order(**submission)
        client.put(f"/orders/{first}/status", json={"status": "confirmed"}, headers=admin_headers)

        assert len(client.get("/orders").json()) == 2
        confirmed = client.get("/orders", params={"status": "confirmed"}).json()
        assert [o["id"] for o in confirmed] == [first]

    def test_unknown_order_is_not_found(self, client):
        assert client.get("/orders/missing").status_code == 404

    def test_csv_export(self, client, submission):
        order_id = place_order(**submission)

        response = client.get("/orders/export.csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == ["Order ID", "Date", "Customer", "Phone", "Status", "Total", "Items"]
        assert rows[1][0] == order_id
        assert rows[1][6] == "Engraved Mug (2)"


class TestOrderMutations:
    def test_status_change_is_attributed_to_the_actor(self, client, submission, admin_headers):
        order_id = place_order(**submission)

        response = client.put(f"/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)

        assert response.status_code == 200
        entries = client.get("/activity", params={"target_type": "order", "target_id": order_id}).json()
        assert len(entries) == 1
        assert entries[0]["actor_user_id"] == "admin-001"
        assert entries[0]["details"] == {"old_status": "pending", "new_status": "shipped"}

    def test_bulk_status(self, client, submission, admin_headers):
        order_ids = [place_order(**submission) for _ in range(3)]

        response = client.post(
            "/orders/bulk/status",
            json={"order_ids": order_ids + ["ghost"], "status": "shipped"},
            headers=admin_headers,
        )

        body = response.json()
        assert body["succeeded_count"] == 3
        assert body["failed"] == {"ghost": "Order not found"}

    def test_address_correction(self, client, submission, admin_headers):
        order_id = place_order(**submission)

        client.put(f"/orders/{order_id}/address", json={"city": "Bab Ezzouar"}, headers=admin_headers)

        order = client.get(f"/orders/{order_id}").json()
        assert order["shipping_address"]["city"] == "Bab Ezzouar"
        assert order["total_amount"] == 3600

    def test_delete(self, client, submission, admin_headers):
        order_id = place_order(**submission)

        assert client.delete(f"/orders/{order_id}", headers=admin_headers).status_code == 200
        assert client.get(f"/orders/{order_id}").status_code == 404
        entries = client.get("/activity", params={"action": "order_delete"}).json()
        assert [e["target_id"] for e in entries] == [order_id]


class TestTrackingEndpoint:
    def test_track_with_matching_phone(self, client, submission):
        order_id = place_order(**submission)
        response = client.post("/orders/track", json={"order_id": order_id, "phone": "0555123456"})
        assert response.status_code == 200
        assert response.json()["status"] == "pending"

    def test_track_with_wrong_phone(self, client, submission):
        order_id = place_order(**submission)
        response = client.post("/orders/track", json={"order_id": order_id, "phone": "0661999999"})
        assert response.status_code == 404
