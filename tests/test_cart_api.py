"""
Component tests for the cart HTTP surface.

Requests go through the real router, PersistentCartStore and CartStore;
only the registry's storage is swapped for in-memory slots.
"""
from fastapi.testclient import TestClient

from app.services.cart_persistence import decode_snapshot

CART_URL = "/api/v1/cart"


def add(client: TestClient, session: str = "default", **body):
    payload = {
        "productId": 1,
        "documentId": "doc-1",
        "name": "Ceramic Mug",
        "slug": "ceramic-mug",
        "price": 10.0,
    }
    payload.update(body)
    return client.post(f"{CART_URL}/items", json=payload, headers={"X-Cart-Session": session})


class TestReadCart:
    def test_empty_cart(self, test_client: TestClient):
        response = test_client.get(CART_URL)

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0.0, "itemCount": 0}

    def test_health_check(self, test_client: TestClient):
        assert test_client.get("/").json()["status"] == "ok"


class TestAddItem:
    def test_add_returns_updated_cart(self, test_client: TestClient):
        response = add(test_client, quantity=2)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 20.0
        assert data["itemCount"] == 2
        item = data["items"][0]
        assert item["productId"] == 1
        assert item["documentId"] == "doc-1"
        assert item["name"] == "Ceramic Mug"
        assert item["quantity"] == 2
        assert item["variant"] is None

    def test_merge_ignores_new_price(self, test_client: TestClient):
        add(test_client, price=10.0, quantity=2)
        data = add(test_client, price=99.0, quantity=3).json()

        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 5
        assert data["items"][0]["price"] == 10.0
        assert data["total"] == 50.0

    def test_missing_or_zero_quantity_adds_one(self, test_client: TestClient):
        add(test_client)
        data = add(test_client, quantity=0).json()

        assert data["items"][0]["quantity"] == 2

    def test_variants_are_separate_rows(self, test_client: TestClient):
        add(test_client, variant={"id": "red", "name": "Red", "attributes": {"color": "red"}})
        data = add(
            test_client,
            variant={"id": "blue", "name": "Blue", "attributes": {"color": "blue"}},
        ).json()

        assert [i["variant"]["id"] for i in data["items"]] == ["red", "blue"]
        assert data["itemCount"] == 2

    def test_negative_price_is_rejected(self, test_client: TestClient):
        response = add(test_client, price=-1)

        assert response.status_code == 422

    def test_infinite_price_is_rejected(self, test_client: TestClient, slots):
        response = test_client.post(
            f"{CART_URL}/items",
            content='{"productId": 1, "price": 1e400}',
            headers={"Content-Type": "application/json", "X-Cart-Session": "inf"},
        )

        assert response.status_code == 422
        assert "cart-storage:inf" not in slots

    def test_add_persists_snapshot(self, test_client: TestClient, slots):
        add(test_client, session="abc", quantity=4)

        items = decode_snapshot(slots["cart-storage:abc"])
        assert items[0].quantity == 4


class TestUpdateAndRemove:
    def test_update_quantity(self, test_client: TestClient):
        add(test_client)

        data = test_client.patch(f"{CART_URL}/items/1", json={"quantity": 6}).json()

        assert data["items"][0]["quantity"] == 6
        assert data["total"] == 60.0

    def test_update_to_negative_removes(self, test_client: TestClient):
        add(test_client)

        data = test_client.patch(f"{CART_URL}/items/1", json={"quantity": -5}).json()

        assert data == {"items": [], "total": 0.0, "itemCount": 0}

    def test_update_variant_row(self, test_client: TestClient):
        add(test_client, variant={"id": "red"})

        data = test_client.patch(
            f"{CART_URL}/items/1",
            params={"variant_id": "red"},
            json={"quantity": 3},
        ).json()

        assert data["itemCount"] == 3

    def test_remove_unknown_item_is_noop(self, test_client: TestClient):
        before = add(test_client, quantity=2).json()

        response = test_client.delete(f"{CART_URL}/items/999")

        assert response.status_code == 200
        assert response.json() == before

    def test_remove_item(self, test_client: TestClient):
        add(test_client)
        add(test_client, productId=2, price=1.5)

        data = test_client.delete(f"{CART_URL}/items/1").json()

        assert [i["productId"] for i in data["items"]] == [2]
        assert data["total"] == 1.5


class TestQuantityAndClear:
    def test_item_quantity(self, test_client: TestClient):
        add(test_client, variant={"id": "red"}, quantity=3)

        data = test_client.get(
            f"{CART_URL}/items/1/quantity", params={"variant_id": "red"}
        ).json()
        missing = test_client.get(f"{CART_URL}/items/1/quantity").json()

        assert data == {"productId": 1, "variantId": "red", "quantity": 3}
        assert missing["quantity"] == 0

    def test_clear_cart(self, test_client: TestClient):
        add(test_client, quantity=3)
        add(test_client, productId=2)

        data = test_client.delete(CART_URL).json()

        assert data == {"items": [], "total": 0.0, "itemCount": 0}

    def test_sessions_are_isolated(self, test_client: TestClient):
        add(test_client, session="alice", quantity=2)

        bob = test_client.get(CART_URL, headers={"X-Cart-Session": "bob"}).json()
        alice = test_client.get(CART_URL, headers={"X-Cart-Session": "alice"}).json()

        assert bob["itemCount"] == 0
        assert alice["itemCount"] == 2
