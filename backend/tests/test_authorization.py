"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied inventory management (403)
- Admin and cashier can both sell
"""

import pytest

from attar_pos import permissions
from attar_pos.errors import AuthorizationError


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/inventory"),
            ("POST", "/api/inventory"),
            ("PUT", "/api/inventory/1"),
            ("PATCH", "/api/inventory/1/stock"),
            ("DELETE", "/api/inventory/1"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales/1"),
            ("GET", "/api/sales/invoice-number"),
            ("POST", "/api/sales/increment-invoice"),
            ("GET", "/api/sales/summary"),
            ("POST", "/api/auth/register"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# CASHIER DENIED INVENTORY MANAGEMENT (403)
# =============================================================================


class TestCashierDenied:

    def test_cannot_create_item(self, client, cashier_headers):
        resp = client.post(
            "/api/inventory",
            json={"name": "Oud", "type": "Attar", "price": 100, "stock": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 403
        data = resp.get_json()
        assert data["kind"] == "authorization_error"
        assert data["details"]["required_permission"] == "MANAGE_INVENTORY"

    def test_cannot_update_item(self, client, cashier_headers, make_item):
        item = make_item()
        resp = client.put(f"/api/inventory/{item.id}", json={"price": 1}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_adjust_stock(self, client, cashier_headers, make_item, db_session):
        item = make_item(stock=5)
        resp = client.patch(f"/api/inventory/{item.id}/stock", json={"delta": 10}, headers=cashier_headers)
        assert resp.status_code == 403
        db_session.refresh(item)
        assert item.stock == 5

    def test_cannot_delete_item(self, client, cashier_headers, make_item):
        item = make_item()
        resp = client.delete(f"/api/inventory/{item.id}", headers=cashier_headers)
        assert resp.status_code == 403


# =============================================================================
# ALLOWED (200)
# =============================================================================


class TestAllowed:

    def test_cashier_can_view_inventory(self, client, cashier_headers):
        assert client.get("/api/inventory", headers=cashier_headers).status_code == 200

    def test_cashier_can_preview_invoice(self, client, cashier_headers):
        assert client.get("/api/sales/invoice-number", headers=cashier_headers).status_code == 200

    def test_admin_can_view_sales(self, client, admin_headers):
        assert client.get("/api/sales", headers=admin_headers).status_code == 200


class TestPolicy:

    def test_admin_holds_every_permission(self):
        for code in permissions.get_all_permission_codes():
            assert permissions.role_has_permission("admin", code)

    def test_unknown_role_has_nothing(self):
        with pytest.raises(AuthorizationError):
            permissions.require_permission("guest", "VIEW_INVENTORY")

    def test_unknown_permission_code_is_a_bug(self):
        with pytest.raises(ValueError):
            permissions.require_permission("admin", "LAUNCH_ROCKETS")


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"]["status"] == "healthy"
