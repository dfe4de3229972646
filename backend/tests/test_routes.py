# Overview: Pytest coverage for the HTTP surface (status codes and payload shapes).

import pytest

from jewelstock.models import Product, StockTransaction


class TestProductRoutes:

    def test_create_with_typed_category(self, client, db_session, owner_a_headers, rates_a):
        resp = client.post(
            "/api/products",
            json={
                "name": "Gold Ring",
                "weight": 10,
                "making_charge": 500,
                "making_charge_type": "per_gram",
                "profit_percent": 10,
                "category_name": "Rings",
                "category_type": "Gold",
                "sub_category_name": "Engagement",
            },
            headers=owner_a_headers,
        )
        assert resp.status_code == 201
        body = resp.json
        assert body["price"] == 71500
        assert body["quantity"] == 1
        assert body["category_name"] == "Rings"
        assert body["sub_category_name"] == "Engagement"
        assert body["price_breakdown"]["rate_is_stale"] is False

    def test_create_requires_name_and_weight(self, client, owner_a_headers):
        resp = client.post("/api/products", json={"category_name": "Rings"}, headers=owner_a_headers)
        assert resp.status_code == 400

    def test_create_without_category(self, client, owner_a_headers):
        resp = client.post("/api/products", json={"name": "Ring", "weight": 1}, headers=owner_a_headers)
        assert resp.status_code == 400
        assert "category" in resp.json["error"]

    @pytest.mark.parametrize(
        "field,value",
        [
            ("weight", -1),
            ("making_charge_type", "per_kilo"),
            ("item_type", "Bulk"),
            ("category_type", "Platinum"),
            ("barcode", "AB-12"),
            ("quantity", "2.5"),
        ],
    )
    def test_create_rejects_bad_fields(self, client, owner_a_headers, field, value):
        payload = {"name": "Ring", "weight": 1, "category_name": "Rings", field: value}
        resp = client.post("/api/products", json=payload, headers=owner_a_headers)
        assert resp.status_code == 400

    def test_unknown_field_rejected(self, client, owner_a_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Ring", "weight": 1, "category_name": "Rings", "price": 5},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_barcode(self, client, owner_a_headers, ring_a):
        resp = client.post(
            "/api/products",
            json={"name": "Copy", "weight": 1, "category_name": "Rings", "barcode": ring_a["barcode"]},
            headers=owner_a_headers,
        )
        assert resp.status_code == 409

    def test_update_rejects_quantity(self, client, owner_a_headers, ring_a):
        resp = client.put(f"/api/products/{ring_a['id']}", json={"quantity": 5}, headers=owner_a_headers)
        assert resp.status_code == 400

    def test_update_and_scan(self, client, owner_a_headers, ring_a):
        resp = client.put(f"/api/products/{ring_a['id']}", json={"status": "Inactive"}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "Inactive"

        resp = client.get(f"/api/products/barcode/{ring_a['barcode']}", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == ring_a["id"]

        resp = client.get("/api/products?status=Active", headers=owner_a_headers)
        assert resp.json["count"] == 0

    def test_delete(self, client, db_session, owner_a_headers, ring_a):
        resp = client.delete(f"/api/products/{ring_a['id']}", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["ok"] is True
        assert db_session.get(Product, ring_a["id"]) is None

        resp = client.get(f"/api/products/{ring_a['id']}", headers=owner_a_headers)
        assert resp.status_code == 404


class TestStockRoutes:

    def _post(self, client, headers, **body):
        return client.post("/api/stock/transactions", json=body, headers=headers)

    def test_stock_in(self, client, owner_a_headers, ring_a):
        resp = self._post(
            client, owner_a_headers,
            product_id=ring_a["id"], type="STOCK_IN", quantity=5, weight=50, reason="Purchase",
        )
        assert resp.status_code == 201
        assert resp.json["product"]["quantity"] == 6
        assert resp.json["product"]["weight"] == pytest.approx(60.0)
        assert resp.json["transaction"]["rate_per_gram"] == 6000
        assert resp.json["transaction"]["date"].endswith("Z")

    def test_insufficient_stock_is_409(self, client, db_session, owner_a_headers, ring_a):
        resp = self._post(
            client, owner_a_headers,
            product_id=ring_a["id"], type="STOCK_OUT", quantity=10, weight=0, reason="Sale",
        )
        assert resp.status_code == 409
        assert resp.json["on_hand_quantity"] == 1
        assert resp.json["requested_quantity"] == 10
        assert db_session.query(StockTransaction).filter_by(product_id=ring_a["id"]).count() == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"type": "SWAP", "quantity": 1, "weight": 1, "reason": "Purchase"},
            {"type": "STOCK_IN", "quantity": 0, "weight": 0, "reason": "Purchase"},
            {"type": "STOCK_IN", "quantity": -2, "weight": 1, "reason": "Purchase"},
            {"type": "STOCK_IN", "quantity": 1, "weight": 1, "reason": "Lost"},
        ],
    )
    def test_bad_movements(self, client, owner_a_headers, ring_a, body):
        resp = self._post(client, owner_a_headers, product_id=ring_a["id"], **body)
        assert resp.status_code == 400

    def test_missing_product_id(self, client, owner_a_headers):
        resp = self._post(client, owner_a_headers, type="STOCK_IN", quantity=1, weight=1, reason="Purchase")
        assert resp.status_code == 400

    def test_unknown_product_is_404(self, client, owner_a_headers, shop_a):
        resp = self._post(
            client, owner_a_headers,
            product_id=999999, type="STOCK_IN", quantity=1, weight=1, reason="Purchase",
        )
        assert resp.status_code == 404

    def test_list_and_suggest(self, client, owner_a_headers, chains_a):
        resp = client.get(f"/api/stock/transactions?product_id={chains_a['id']}", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1

        resp = client.get(
            f"/api/stock/products/{chains_a['id']}/suggest-weight?quantity=2", headers=owner_a_headers,
        )
        assert resp.json["suggested_weight"] == pytest.approx(20.0)

    def test_audit(self, client, owner_a_headers, chains_a):
        resp = client.get("/api/stock/audit", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["consistent"] is True

        resp = client.get(f"/api/stock/audit/{chains_a['id']}", headers=owner_a_headers)
        assert resp.json["ledger_quantity"] == 5


class TestCatalogRoutes:

    def test_category_lifecycle(self, client, owner_a_headers):
        resp = client.post("/api/categories", json={"name": "Earrings", "type": "Silver"}, headers=owner_a_headers)
        assert resp.status_code == 201
        category_id = resp.json["id"]

        resp = client.post("/api/categories", json={"name": "EARRINGS", "type": "Gold"}, headers=owner_a_headers)
        assert resp.status_code == 409

        resp = client.post(
            f"/api/categories/{category_id}/subcategories", json={"name": "Studs"}, headers=owner_a_headers,
        )
        assert resp.status_code == 201

        resp = client.get("/api/categories?include_subcategories=true", headers=owner_a_headers)
        assert resp.json["items"][0]["subcategories"][0]["name"] == "Studs"

        resp = client.delete(f"/api/categories/{category_id}", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["subcategories_removed"] == 1

    def test_bad_category_type(self, client, owner_a_headers):
        resp = client.post("/api/categories", json={"name": "Bands", "type": "Platinum"}, headers=owner_a_headers)
        assert resp.status_code == 400


class TestRatesAndSettings:

    def test_update_rates_and_quote(self, client, owner_a_headers):
        resp = client.put("/api/rates", json={"gold_rate": 6000}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["gold_rate"] == 6000
        assert resp.json["silver_rate"] == 0

        resp = client.post(
            "/api/rates/quote",
            json={"weight": 10, "metal_type": "Gold", "making_charge": 500, "profit_percent": 10},
            headers=owner_a_headers,
        )
        assert resp.status_code == 200
        assert resp.json["display_price"] == 71500

    def test_rates_validation(self, client, owner_a_headers):
        assert client.put("/api/rates", json={}, headers=owner_a_headers).status_code == 400
        assert client.put("/api/rates", json={"gold_rate": -5}, headers=owner_a_headers).status_code == 400
        assert client.put("/api/rates", json={"platinum_rate": 5}, headers=owner_a_headers).status_code == 400

    def test_rate_update_is_audited(self, client, owner_a_headers):
        client.put("/api/rates", json={"silver_rate": 80}, headers=owner_a_headers)
        resp = client.get("/api/settings/audit-events?event_type=metal_rate.updated", headers=owner_a_headers)
        assert resp.json["count"] == 1
        assert resp.json["items"][0]["payload"]["current"] == {"silver_rate": 80.0}

    def test_shop_name(self, client, owner_a_headers, manager_a_headers):
        resp = client.put("/api/settings", json={"shop_name": "  Gold House  "}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["shop_name"] == "Gold House"

        resp = client.get("/api/settings", headers=manager_a_headers)
        assert resp.json["shop_name"] == "Gold House"

        assert client.put("/api/settings", json={"shop_name": " "}, headers=owner_a_headers).status_code == 400


class TestSystemRoutes:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"

    def test_me(self, client, owner_a, owner_a_headers):
        resp = client.get("/api/me", headers=owner_a_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == owner_a.id
        assert "ADD_PRODUCT" in resp.json["principal"]["permissions"]
