"""
Tests for the menu endpoints.
"""

from models.menu_management import MenuCategory


class TestMenu:
    """Menu item management."""

    def test_create_menu_item(self, client, admin_headers):
        response = client.post(
            "/api/v1/menu",
            json={
                "name": "Caesar Salad",
                "description": "Romaine, croutons, parmesan",
                "price": 8.5,
                "category": "appetizer",
                "ingredients": ["romaine", "croutons"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["is_available"] is True
        assert data["preparation_time"] == 15
        assert data["order_count"] == 0
        assert data["ingredients"] == ["romaine", "croutons"]

    def test_waiter_cannot_create(self, client, waiter_headers):
        response = client.post(
            "/api/v1/menu",
            json={"name": "X", "description": "X", "price": 1, "category": "main"},
            headers=waiter_headers,
        )
        assert response.status_code == 403

    def test_negative_price_rejected(self, client, admin_headers):
        response = client.post(
            "/api/v1/menu",
            json={"name": "X", "description": "X", "price": -1, "category": "main"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_category_lists_only_available(self, client, waiter_headers, make_menu_item):
        make_menu_item(name="Cake", category=MenuCategory.DESSERT)
        make_menu_item(name="Pie", category=MenuCategory.DESSERT, is_available=False)
        make_menu_item(name="Steak", category=MenuCategory.MAIN)

        response = client.get("/api/v1/menu/category/dessert", headers=waiter_headers)

        assert [i["name"] for i in response.json()] == ["Cake"]

    def test_featured_items(self, client, waiter_headers, make_menu_item):
        make_menu_item(name="Chef Special", is_special=True)
        make_menu_item(name="Regular")

        response = client.get("/api/v1/menu/special/featured", headers=waiter_headers)

        assert [i["name"] for i in response.json()] == ["Chef Special"]

    def test_update_menu_item(self, client, admin_headers, make_menu_item):
        item = make_menu_item(price=10.0)
        response = client.put(f"/api/v1/menu/{item.id}", json={"price": 12.0, "is_available": False}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["price"] == 12.0
        assert response.json()["is_available"] is False

    def test_update_popularity(self, client, waiter_headers, make_menu_item):
        item = make_menu_item()
        response = client.put(f"/api/v1/menu/{item.id}/popularity", json={"rating": 4.5}, headers=waiter_headers)
        assert response.status_code == 200
        assert response.json()["rating"] == 4.5

    def test_delete_menu_item(self, client, admin_headers, make_menu_item):
        item = make_menu_item()
        assert client.delete(f"/api/v1/menu/{item.id}", headers=admin_headers).status_code == 204
        assert client.get(f"/api/v1/menu/{item.id}", headers=admin_headers).status_code == 404

    def test_delete_ordered_item_refused(self, client, admin_headers, make_table, make_menu_item):
        table = make_table()
        item = make_menu_item()
        client.post(
            "/api/v1/orders",
            json={"table_id": table.id, "customer_count": 1, "items": [{"menu_item_id": item.id, "quantity": 1}]},
            headers=admin_headers,
        )
        assert client.delete(f"/api/v1/menu/{item.id}", headers=admin_headers).status_code == 400
