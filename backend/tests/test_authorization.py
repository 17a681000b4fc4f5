"""
Authorization tests.

Verifies:
- The posting gate truth table (role x transaction type)
- Unauthenticated requests return 401
- Clerks are denied catalog and user administration (403)
- Admin can perform privileged operations
"""

import pytest

from shopstock.models import ROLE_ADMIN, ROLE_MANAGER, ROLE_CLERK, TRANSACTION_SALE, TRANSACTION_PURCHASE
from shopstock.services.authorization import (
    can_manage_catalog,
    can_manage_users,
    can_post,
    denial_message,
)


# =============================================================================
# POSTING GATE
# =============================================================================


@pytest.mark.parametrize(
    "role,transaction_type,allowed",
    [
        (ROLE_ADMIN, TRANSACTION_SALE, True),
        (ROLE_ADMIN, TRANSACTION_PURCHASE, True),
        (ROLE_MANAGER, TRANSACTION_SALE, True),
        (ROLE_MANAGER, TRANSACTION_PURCHASE, True),
        (ROLE_CLERK, TRANSACTION_SALE, True),
        (ROLE_CLERK, TRANSACTION_PURCHASE, False),
        (None, TRANSACTION_SALE, False),
        (None, TRANSACTION_PURCHASE, False),
        (ROLE_ADMIN, "REFUND", False),
    ],
)
def test_can_post(role, transaction_type, allowed):
    assert can_post(role, transaction_type) is allowed


def test_clerk_purchase_denial_message():
    assert denial_message(ROLE_CLERK, TRANSACTION_PURCHASE) == "Unauthorized. Clerks cannot record purchases."


def test_missing_actor_denial_message():
    assert denial_message(None, TRANSACTION_SALE) == "Unauthorized"


def test_management_checks():
    assert can_manage_catalog(ROLE_MANAGER)
    assert not can_manage_catalog(ROLE_CLERK)
    assert can_manage_users(ROLE_ADMIN)
    assert not can_manage_users(ROLE_MANAGER)


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/transactions"),
            ("POST", "/api/transactions"),
            ("GET", "/api/customers"),
            ("GET", "/api/suppliers"),
            ("POST", "/api/adjustments"),
            ("GET", "/api/reports/valuation"),
            ("GET", "/api/users"),
        ],
    )
    def test_requires_auth(self, client, seed, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_bad_token(self, client, seed):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# CLERK DENIED MANAGEMENT - 403
# =============================================================================


class TestClerkDenied:
    def test_cannot_create_product(self, client, clerk_headers):
        resp = client.post("/api/products", json={"sku": "X", "name": "X", "cost_price": "1", "sale_price": "2"},
                           headers=clerk_headers)
        assert resp.status_code == 403

    def test_cannot_adjust_stock(self, client, clerk_headers, product):
        resp = client.post(
            "/api/adjustments",
            json={"product_id": product.id, "qty_change": 5, "reason": "found"},
            headers=clerk_headers,
        )
        assert resp.status_code == 403

    def test_cannot_list_users(self, client, clerk_headers):
        assert client.get("/api/users", headers=clerk_headers).status_code == 403

    def test_manager_cannot_list_users(self, client, manager_headers):
        assert client.get("/api/users", headers=manager_headers).status_code == 403

    def test_can_read_catalog(self, client, clerk_headers, product):
        resp = client.get("/api/products", headers=clerk_headers)
        assert resp.status_code == 200
        assert resp.json["items"][0]["sku"] == product.sku


class TestAdminAccess:
    def test_can_list_users(self, client, admin_headers):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["pagination"]["total"] == 1


class TestPublicEndpoints:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
