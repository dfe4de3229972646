"""
Authorization tests for jewelstock.

Verifies:
- Unauthenticated requests return 401
- Shop managers are denied owner-only operations (403)
- Owners can grant managers extra permissions
- The super-admin manages shops but cannot touch shop content
"""

import pytest

from jewelstock.models import SecurityEvent


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/barcode/123"),
            ("POST", "/api/stock/transactions"),
            ("GET", "/api/stock/transactions"),
            ("GET", "/api/categories"),
            ("GET", "/api/rates"),
            ("PUT", "/api/rates"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/settings"),
            ("GET", "/api/users"),
            ("GET", "/api/shops"),
            ("GET", "/api/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_revoked_token(self, client, db_session, owner_a_headers):
        assert client.post("/api/logout", headers=owner_a_headers).status_code == 200
        assert client.get("/api/me", headers=owner_a_headers).status_code == 401


# =============================================================================
# SHOP MANAGER DENIED OWNER OPERATIONS (403)
# =============================================================================


class TestManagerPermissions:

    def test_can_view_inventory(self, client, manager_a_headers, ring_a):
        resp = client.get("/api/products", headers=manager_a_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1

    def test_can_mark_as_sold(self, client, manager_a_headers, ring_a):
        resp = client.post(
            "/api/stock/transactions",
            json={"product_id": ring_a["id"], "type": "STOCK_OUT", "quantity": 1, "weight": 10, "reason": "Sale"},
            headers=manager_a_headers,
        )
        assert resp.status_code == 201

    def test_cannot_add_product(self, client, db_session, manager_a_headers, rates_a):
        resp = client.post(
            "/api/products",
            json={"name": "Ring", "weight": 2, "category_name": "Rings"},
            headers=manager_a_headers,
        )
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "ADD_PRODUCT"
        assert db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").count() == 1

    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("PUT", "/api/rates", {"gold_rate": 1}),
            ("POST", "/api/categories", {"name": "Rings", "type": "Gold"}),
            ("GET", "/api/reports/stock", None),
            ("GET", "/api/users", None),
            ("PUT", "/api/settings", {"shop_name": "Mine now"}),
        ],
    )
    def test_denied_owner_operations(self, client, manager_a_headers, method, path, body):
        resp = getattr(client, method.lower())(path, json=body, headers=manager_a_headers)
        assert resp.status_code == 403

    def test_cannot_edit_or_delete_product(self, client, manager_a_headers, ring_a):
        resp = client.put(f"/api/products/{ring_a['id']}", json={"name": "x"}, headers=manager_a_headers)
        assert resp.status_code == 403
        resp = client.delete(f"/api/products/{ring_a['id']}", headers=manager_a_headers)
        assert resp.status_code == 403

    def test_owner_grants_add_product(self, client, owner_a_headers, manager_a, manager_a_headers, rates_a):
        resp = client.put(
            f"/api/users/{manager_a.id}",
            json={"permissions": ["VIEW_INVENTORY", "MANAGE_STOCK", "ADD_PRODUCT"]},
            headers=owner_a_headers,
        )
        assert resp.status_code == 200
        assert "ADD_PRODUCT" in resp.json["permissions"]

        resp = client.post(
            "/api/products",
            json={"name": "Ring", "weight": 2, "category_name": "Rings"},
            headers=manager_a_headers,
        )
        assert resp.status_code == 201

    def test_owner_permissions_cannot_change(self, client, owner_a, owner_a_headers):
        resp = client.put(
            f"/api/users/{owner_a.id}",
            json={"permissions": ["VIEW_INVENTORY"]},
            headers=owner_a_headers,
        )
        assert resp.status_code == 400

    def test_deactivated_manager_is_logged_out(self, client, owner_a_headers, manager_a, manager_a_headers):
        resp = client.put(f"/api/users/{manager_a.id}", json={"is_active": False}, headers=owner_a_headers)
        assert resp.status_code == 200
        assert client.get("/api/me", headers=manager_a_headers).status_code == 401


# =============================================================================
# SUPER-ADMIN
# =============================================================================


class TestSuperAdmin:

    def test_cannot_access_shop_content(self, client, super_admin_headers):
        assert client.get("/api/products", headers=super_admin_headers).status_code == 403
        assert client.get("/api/rates", headers=super_admin_headers).status_code == 403

    def test_creates_shop_with_owner(self, client, db_session, super_admin_headers):
        resp = client.post(
            "/api/shops",
            json={"name": "Shop C", "owner_name": "Chitra", "owner_email": "chitra@c.test"},
            headers=super_admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["owner"]["role"] == "SHOP_OWNER"
        assert resp.json["shop"]["owner"]["email"] == "chitra@c.test"

        listed = client.get("/api/shops", headers=super_admin_headers)
        assert listed.json["count"] == 1

    def test_duplicate_owner_email(self, client, super_admin_headers, shop_a):
        resp = client.post(
            "/api/shops",
            json={"name": "Copy", "owner_name": "Asha", "owner_email": "ASHA@goldhouse.test"},
            headers=super_admin_headers,
        )
        assert resp.status_code == 409

    def test_shop_owner_cannot_manage_shops(self, client, owner_a_headers):
        assert client.get("/api/shops", headers=owner_a_headers).status_code == 403
