"""Integration tests for the cart endpoints via TestClient."""

from http_helpers import ADMIN_HEADERS, GUEST_HEADERS, add_item, create_variant
from protean import current_domain
from storefront.order.order import Order


class TestAddItem:
    def test_add_item_opens_a_cart(self, client):
        variant_id = create_variant(client, price=1000)

        response = add_item(client, variant_id, 2)

        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "cart"
        assert body["item_total"] == 2000
        assert body["total"] == 2000
        assert body["number"].startswith("R")
        order = current_domain.repository_for(Order).get(body["id"])
        assert order.guest_token == "sess-api-001"

    def test_get_cart(self, client):
        variant_id = create_variant(client)
        order_id = add_item(client, variant_id).json()["id"]

        response = client.get("/cart", headers=GUEST_HEADERS)

        assert response.status_code == 200
        assert response.json()["id"] == order_id

    def test_no_cart(self, client):
        assert client.get("/cart", headers={"X-Session-Token": "sess-empty"}).status_code == 404

    def test_guest_needs_a_session(self, client):
        variant_id = create_variant(client)
        response = client.post("/cart/items", json={"variant_id": variant_id, "quantity": 1})
        assert response.status_code == 400

    def test_insufficient_stock(self, client):
        variant_id = create_variant(client, stock=1)

        response = add_item(client, variant_id, 2)

        assert response.status_code == 409
        body = response.json()
        assert body["detail"]["requested"] == 2
        assert body["detail"]["available"] == 1


class TestEditCart:
    def test_update_quantity(self, client):
        variant_id = create_variant(client)
        line_id = add_item(client, variant_id).json()["line_items"][0]["id"]

        response = client.patch(f"/cart/items/{line_id}", json={"quantity": 3}, headers=GUEST_HEADERS)

        assert response.status_code == 200
        assert response.json()["item_count"] == 3

    def test_remove_item(self, client):
        variant_id = create_variant(client)
        line_id = add_item(client, variant_id).json()["line_items"][0]["id"]

        response = client.delete(f"/cart/items/{line_id}", headers=GUEST_HEADERS)

        assert response.status_code == 200
        assert response.json()["line_items"] == []
        assert response.json()["total"] == 0

    def test_apply_coupon(self, client):
        promotion_id = client.post(
            "/admin/promotions",
            json={"name": "Ten off", "code": "SAVE10"},
            headers=ADMIN_HEADERS,
        ).json()["id"]
        client.post(
            f"/admin/promotions/{promotion_id}/actions",
            json={"calculator_type": "PercentOff", "preferences": {"percent": 10}},
            headers=ADMIN_HEADERS,
        )
        add_item(client, create_variant(client, price=1000), 2)

        response = client.post("/cart/coupon", json={"code": "SAVE10"}, headers=GUEST_HEADERS)

        assert response.status_code == 200
        assert response.json()["promo_total"] == -200
        assert response.json()["total"] == 1800

    def test_invalid_coupon(self, client):
        add_item(client, create_variant(client))
        response = client.post("/cart/coupon", json={"code": "NOPE"}, headers=GUEST_HEADERS)
        assert response.status_code == 400
