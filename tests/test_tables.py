"""
Tests for the table endpoints.
"""

from unittest.mock import AsyncMock, patch

from models.table_management import TableStatus


class TestTableCrud:
    """Creating, reading, updating and deleting tables."""

    def test_create_table(self, client, admin_headers):
        response = client.post(
            "/api/v1/tables",
            json={"table_number": 7, "capacity": 4, "position": {"x": 10, "y": 20}, "section": "patio"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["table_number"] == 7
        assert data["status"] == "available"
        assert data["position"] == {"x": 10.0, "y": 20.0}
        assert data["join_role"] == "standalone"
        assert data["is_joined"] is False
        assert data["is_virtual"] is False
        assert data["joined_with"] == []

    def test_create_duplicate_number(self, client, admin_headers, make_table):
        make_table(table_number=7)
        response = client.post(
            "/api/v1/tables",
            json={"table_number": 7, "capacity": 2, "position": {"x": 0, "y": 0}},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_waiter_cannot_create_table(self, client, waiter_headers):
        response = client.post(
            "/api/v1/tables",
            json={"table_number": 1, "capacity": 2, "position": {"x": 0, "y": 0}},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_unauthenticated_request(self, client):
        response = client.get("/api/v1/tables")
        assert response.status_code == 401

    def test_list_tables_sorted_by_number(self, client, waiter_headers, make_table):
        make_table(table_number=3)
        make_table(table_number=1)
        response = client.get("/api/v1/tables", headers=waiter_headers)
        assert response.status_code == 200
        assert [t["table_number"] for t in response.json()] == [1, 3]

    def test_filter_by_section_and_status(self, client, waiter_headers, make_table):
        make_table(table_number=1, section="patio")
        make_table(table_number=2, section="main", status=TableStatus.OCCUPIED)

        by_section = client.get("/api/v1/tables/section/patio", headers=waiter_headers).json()
        by_status = client.get("/api/v1/tables/status/occupied", headers=waiter_headers).json()

        assert [t["table_number"] for t in by_section] == [1]
        assert [t["table_number"] for t in by_status] == [2]

    def test_get_unknown_table(self, client, waiter_headers):
        response = client.get("/api/v1/tables/999", headers=waiter_headers)
        assert response.status_code == 404

    def test_update_table(self, client, admin_headers, make_table):
        table = make_table(table_number=1, capacity=2)
        response = client.put(
            f"/api/v1/tables/{table.id}",
            json={"capacity": 6, "position": {"x": 5, "y": 5}},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["capacity"] == 6
        assert response.json()["position"] == {"x": 5.0, "y": 5.0}

    def test_delete_table(self, client, admin_headers, make_table):
        table = make_table()
        response = client.delete(f"/api/v1/tables/{table.id}", headers=admin_headers)
        assert response.status_code == 204
        assert client.get(f"/api/v1/tables/{table.id}", headers=admin_headers).status_code == 404

    def test_delete_joined_table_refused(self, client, admin_headers, make_table):
        t1, t2 = make_table(), make_table()
        client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t2.id]}, headers=admin_headers)
        response = client.delete(f"/api/v1/tables/{t2.id}", headers=admin_headers)
        assert response.status_code == 400

    def test_update_positions(self, client, admin_headers, make_table):
        t1, t2 = make_table(), make_table()
        response = client.post(
            "/api/v1/tables/update-positions",
            json={"tables": [
                {"id": t1.id, "position": {"x": 1, "y": 2}},
                {"id": t2.id, "position": {"x": 3, "y": 4}},
            ]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert [t["position"] for t in response.json()] == [{"x": 1.0, "y": 2.0}, {"x": 3.0, "y": 4.0}]


class TestJoinEndpoints:
    """Join and unjoin through the API."""

    def test_waiter_can_join_tables(self, client, waiter_headers, make_table):
        t1 = make_table(table_number=1, capacity=4)
        t2 = make_table(table_number=2, capacity=2)

        response = client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t2.id]}, headers=waiter_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["main_table"]["id"] == t1.id
        assert data["main_table"]["capacity"] == 6
        assert data["main_table"]["joined_with"] == [t2.id]
        assert data["joined_tables"][0]["is_virtual"] is True
        assert data["joined_tables"][0]["parent_table_id"] == t1.id

    def test_join_requires_two_ids(self, client, waiter_headers, make_table):
        t1 = make_table()
        response = client.post("/api/v1/tables/join", json={"table_ids": [t1.id]}, headers=waiter_headers)
        assert response.status_code == 422

    def test_join_unavailable_lists_numbers(self, client, waiter_headers, make_table):
        t1 = make_table(table_number=1)
        t3 = make_table(table_number=3, status=TableStatus.OCCUPIED)
        response = client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t3.id]}, headers=waiter_headers)
        assert response.status_code == 400
        assert "Unavailable tables: 3" in response.json()["detail"]

    def test_unjoin(self, client, waiter_headers, make_table):
        t1 = make_table(capacity=4)
        t2 = make_table(capacity=2)
        client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t2.id]}, headers=waiter_headers)

        response = client.post(f"/api/v1/tables/unjoin/{t1.id}", headers=waiter_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["main_table"]["capacity"] == 4
        assert data["main_table"]["is_joined"] is False
        assert data["released_tables"][0]["id"] == t2.id
        assert data["released_tables"][0]["is_virtual"] is False

    def test_rejoin_broadcasts_tables_left_standalone(self, client, waiter_headers, make_table):
        t1, t2, t3 = make_table(), make_table(), make_table()
        client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t2.id]}, headers=waiter_headers)

        with patch("routes.table_management.notify_table_updated", new_callable=AsyncMock) as notify:
            response = client.post("/api/v1/tables/join", json={"table_ids": [t2.id, t3.id]}, headers=waiter_headers)

        assert response.status_code == 200
        broadcast = notify.await_args.args[0]
        assert [t.id for t in broadcast] == [t2.id, t3.id, t1.id]
        assert broadcast[2].is_joined is False
        assert broadcast[2].capacity == 4

    def test_status_change_propagates(self, client, waiter_headers, make_table):
        t1, t2 = make_table(), make_table()
        client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t2.id]}, headers=waiter_headers)

        response = client.put(f"/api/v1/tables/{t1.id}/status", json={"status": "occupied"}, headers=waiter_headers)

        assert response.status_code == 200
        member = client.get(f"/api/v1/tables/{t2.id}", headers=waiter_headers).json()
        assert member["status"] == "occupied"
        assert member["occupied_at"] is not None
        assert member["occupied_at"] == response.json()["occupied_at"]

    def test_section_change_refused_while_joined(self, client, admin_headers, make_table):
        t1, t2 = make_table(), make_table()
        client.post("/api/v1/tables/join", json={"table_ids": [t1.id, t2.id]}, headers=admin_headers)
        response = client.put(f"/api/v1/tables/{t1.id}", json={"section": "patio"}, headers=admin_headers)
        assert response.status_code == 400


class TestWaitersAndBilling:
    """Waiter assignment, split bills and payment requests."""

    def test_assign_waiters(self, client, admin_headers, waiter, make_table):
        table = make_table()
        response = client.post(f"/api/v1/tables/{table.id}/waiters", json={"waiter_ids": [waiter.id]}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["assigned_waiter_ids"] == [waiter.id]

    def test_assign_non_waiter_refused(self, client, admin_headers, superadmin, make_table):
        table = make_table()
        response = client.post(f"/api/v1/tables/{table.id}/waiters", json={"waiter_ids": [superadmin.id]}, headers=admin_headers)
        assert response.status_code == 400

    def test_equal_split(self, client, waiter_headers, make_table, make_menu_item):
        table = make_table()
        item = make_menu_item(price=10.0)
        client.post(
            "/api/v1/orders",
            json={"table_id": table.id, "customer_count": 3, "items": [{"menu_item_id": item.id, "quantity": 3}]},
            headers=waiter_headers,
        )

        response = client.post(
            f"/api/v1/tables/{table.id}/split",
            json={"enabled": True, "method": "equal", "divisions": [{"name": "A"}, {"name": "B"}, {"name": "C"}]},
            headers=waiter_headers,
        )

        assert response.status_code == 200
        divisions = response.json()["split_bills"]["divisions"]
        assert [d["amount"] for d in divisions] == [10.0, 10.0, 10.0]

    def test_split_without_order_refused(self, client, waiter_headers, make_table):
        table = make_table()
        response = client.post(
            f"/api/v1/tables/{table.id}/split",
            json={"enabled": True, "divisions": [{"name": "A"}]},
            headers=waiter_headers,
        )
        assert response.status_code == 400

    def test_request_payment(self, client, waiter_headers, make_table, make_menu_item):
        table = make_table()
        item = make_menu_item(price=12.5)
        order = client.post(
            "/api/v1/orders",
            json={"table_id": table.id, "customer_count": 1, "items": [{"menu_item_id": item.id, "quantity": 2}]},
            headers=waiter_headers,
        ).json()

        response = client.post(f"/api/v1/tables/{table.id}/request-payment", headers=waiter_headers)

        assert response.status_code == 200
        assert response.json()["order_id"] == order["id"]
        assert response.json()["total_amount"] == 25.0

    def test_request_payment_without_order(self, client, waiter_headers, make_table):
        table = make_table()
        response = client.post(f"/api/v1/tables/{table.id}/request-payment", headers=waiter_headers)
        assert response.status_code == 400
