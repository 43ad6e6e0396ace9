"""
Product API tests.

Verifies:
- Reads open to any signed-in user, writes admin-only
- status is always derived from quantity and min_stock
- SKU uniqueness, restock and delete guards
"""

import pytest


@pytest.fixture
def new_product():
    return {
        "name": "Green Tea",
        "sku": "TEA-001",
        "category": "Beverages",
        "selling_price": 3.5,
        "purchase_price": 1.2,
        "quantity": 4,
        "min_stock": 5,
    }


# =============================================================================
# CREATE / UPDATE
# =============================================================================


class TestProductWrites:
    def test_create_derives_status(self, client, admin_headers, new_product):
        resp = client.post("/api/products", json=new_product, headers=admin_headers)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["productId"] == body["product"]["id"]
        assert body["product"]["status"] == "low_stock"

    def test_client_status_is_ignored(self, client, admin_headers, new_product):
        new_product["status"] = "in_stock"
        new_product["quantity"] = 0
        resp = client.post("/api/products", json=new_product, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.get_json()["product"]["status"] == "out_of_stock"

    def test_create_defaults(self, client, admin_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Bare", "sku": "BARE-1", "selling_price": 1},
            headers=admin_headers,
        )
        product = resp.get_json()["product"]
        assert (product["quantity"], product["min_stock"], product["status"]) == (0, 5, "out_of_stock")

    def test_missing_required_fields(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "No SKU"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.get_json()["error"]

    @pytest.mark.parametrize(
        "field,value",
        [("quantity", -1), ("min_stock", -2), ("selling_price", -0.5), ("quantity", "many")],
    )
    def test_rejects_bad_numbers(self, client, admin_headers, new_product, field, value):
        new_product[field] = value
        resp = client.post("/api/products", json=new_product, headers=admin_headers)
        assert resp.status_code == 400

    def test_duplicate_sku(self, client, admin_headers, new_product):
        client.post("/api/products", json=new_product, headers=admin_headers)
        resp = client.post("/api/products", json=new_product, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Product with this SKU already exists"

    def test_cashier_cannot_create(self, client, cashier_headers, new_product):
        resp = client.post("/api/products", json=new_product, headers=cashier_headers)
        assert resp.status_code == 403

    def test_update_recomputes_status(self, client, admin_headers, make_product):
        product = make_product(quantity=10, min_stock=5)

        resp = client.put(f"/api/products/{product.id}", json={"min_stock": 12}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["product"]["status"] == "low_stock"
        assert product.status == "low_stock"

    def test_update_unknown_product(self, client, admin_headers):
        resp = client.put("/api/products/999", json={"name": "x"}, headers=admin_headers)
        assert resp.status_code == 404


# =============================================================================
# READS
# =============================================================================


class TestProductReads:
    def test_list_and_filter(self, client, cashier_headers, make_product):
        make_product(name="Cola", category="Drinks", quantity=0)
        make_product(name="Chips", category="Snacks", quantity=50)

        body = client.get("/api/products", headers=cashier_headers).get_json()
        assert body["count"] == 2

        body = client.get("/api/products?status=out_of_stock", headers=cashier_headers).get_json()
        assert [p["name"] for p in body["products"]] == ["Cola"]

        body = client.get("/api/products?search=chi", headers=cashier_headers).get_json()
        assert [p["name"] for p in body["products"]] == ["Chips"]

    def test_invalid_status_filter(self, client, cashier_headers):
        resp = client.get("/api/products?status=plenty", headers=cashier_headers)
        assert resp.status_code == 400

    def test_get_product(self, client, cashier_headers, make_product):
        product = make_product(name="Mug")
        body = client.get(f"/api/products/{product.id}", headers=cashier_headers).get_json()
        assert body["product"]["name"] == "Mug"

    def test_get_unknown_product(self, client, cashier_headers):
        assert client.get("/api/products/31337", headers=cashier_headers).status_code == 404

    def test_categories(self, client, cashier_headers, make_product):
        make_product(category="Snacks")
        make_product(category="Drinks")
        make_product(category="Snacks")
        body = client.get("/api/products/categories/list", headers=cashier_headers).get_json()
        assert body["categories"] == ["Drinks", "Snacks"]

    def test_dashboard(self, client, admin_headers, make_product):
        make_product(quantity=0)
        make_product(quantity=2, min_stock=5)
        make_product(quantity=20, min_stock=5)

        stats = client.get("/api/products/stats/dashboard", headers=admin_headers).get_json()["stats"]

        assert stats["totalProducts"] == 3
        assert stats["totalStock"] == 22
        assert stats["lowStock"] == 1
        assert stats["outOfStock"] == 1

    def test_dashboard_is_admin_only(self, client, cashier_headers):
        assert client.get("/api/products/stats/dashboard", headers=cashier_headers).status_code == 403


# =============================================================================
# RESTOCK / DELETE
# =============================================================================


class TestRestockAndDelete:
    def test_restock(self, client, admin_headers, make_product):
        product = make_product(quantity=0, min_stock=5)

        resp = client.post(f"/api/products/{product.id}/restock", json={"quantity": 6}, headers=admin_headers)

        assert resp.status_code == 200
        stock = resp.get_json()["stock"]
        assert (stock["quantity"], stock["status"]) == (6, "in_stock")

    def test_restock_requires_positive_quantity(self, client, admin_headers, make_product):
        product = make_product()
        resp = client.post(f"/api/products/{product.id}/restock", json={"quantity": 0}, headers=admin_headers)
        assert resp.status_code == 400

    def test_restock_unknown_product(self, client, admin_headers):
        resp = client.post("/api/products/404/restock", json={"quantity": 1}, headers=admin_headers)
        assert resp.status_code == 404

    def test_delete_unsold_product(self, client, admin_headers, make_product):
        product_id = make_product().id
        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/products/{product_id}", headers=admin_headers).status_code == 404

    def test_delete_sold_product_conflicts(self, client, admin_headers, make_product, checkout_payload):
        product = make_product(quantity=5, selling_price=1.0)
        client.post("/api/sales", json=checkout_payload((product.id, 1, 1.0)), headers=admin_headers)

        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)

        assert resp.status_code == 409
