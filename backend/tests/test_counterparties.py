"""
Customers, suppliers and stock adjustments.
"""

from decimal import Decimal

from shopstock.models import Adjustment, Product
from shopstock.services.transaction_service import post_transaction


class TestCustomers:
    def test_clerk_can_register_customer(self, client, clerk_headers):
        resp = client.post("/api/customers", json={"name": "Walk In", "email": "walk@in.test", "phone": ""},
                           headers=clerk_headers)
        assert resp.status_code == 201
        assert resp.json["phone"] is None

    def test_invalid_email(self, client, clerk_headers):
        resp = client.post("/api/customers", json={"name": "X", "email": "nope"}, headers=clerk_headers)
        assert resp.status_code == 400
        assert resp.json["issues"][0]["path"] == ["email"]

    def test_search(self, client, clerk_headers, customer):
        resp = client.get("/api/customers?search=jane", headers=clerk_headers)
        assert resp.json["count"] == 1
        assert client.get("/api/customers?search=zzz", headers=clerk_headers).json["count"] == 0

    def test_rename_shows_in_transaction_listing(self, client, manager_headers, admin_actor, customer, product):
        post_transaction(admin_actor, "SALE", [{"product_id": product.id, "quantity": 1, "price": "19.99"}],
                         customer_id=customer.id)
        assert client.get("/api/transactions", headers=manager_headers).json["items"][0]["customer"]["name"] == "Jane Buyer"

        client.put(f"/api/customers/{customer.id}", json={"name": "Jane Smith"}, headers=manager_headers)
        listing = client.get("/api/transactions", headers=manager_headers).json
        assert listing["items"][0]["customer"]["name"] == "Jane Smith"

    def test_cannot_delete_customer_with_sales(self, client, manager_headers, admin_actor, customer, product):
        post_transaction(admin_actor, "SALE", [{"product_id": product.id, "quantity": 1, "price": "19.99"}],
                         customer_id=customer.id)
        resp = client.delete(f"/api/customers/{customer.id}", headers=manager_headers)
        assert resp.status_code == 409
        assert resp.json["error"] == "Cannot delete customer with existing sales."

    def test_clerk_cannot_delete_customer(self, client, clerk_headers, customer):
        assert client.delete(f"/api/customers/{customer.id}", headers=clerk_headers).status_code == 403


class TestSuppliers:
    def test_crud(self, client, manager_headers):
        created = client.post("/api/suppliers", json={"name": "Globex", "contact_person": "Hank"},
                              headers=manager_headers)
        assert created.status_code == 201
        supplier_id = created.json["id"]

        updated = client.put(f"/api/suppliers/{supplier_id}", json={"phone": "555-0100"}, headers=manager_headers)
        assert updated.json["phone"] == "555-0100"

        all_suppliers = client.get("/api/suppliers/all", headers=manager_headers).json
        assert [s["name"] for s in all_suppliers] == ["Globex"]

        assert client.delete(f"/api/suppliers/{supplier_id}", headers=manager_headers).status_code == 200
        assert client.get(f"/api/suppliers/{supplier_id}", headers=manager_headers).status_code == 404

    def test_cannot_delete_supplier_with_products(self, client, db_session, manager_headers, supplier, product):
        product.supplier_id = supplier.id
        db_session.commit()
        assert client.delete(f"/api/suppliers/{supplier.id}", headers=manager_headers).status_code == 409

    def test_clerk_cannot_create_supplier(self, client, clerk_headers):
        assert client.post("/api/suppliers", json={"name": "X"}, headers=clerk_headers).status_code == 403


class TestAdjustments:
    def test_adjust_changes_stock_not_cost(self, client, db_session, manager_headers, manager_user, product):
        resp = client.post("/api/adjustments", json={
            "product_id": product.id, "qty_change": -3, "reason": "Water damage",
        }, headers=manager_headers)

        assert resp.status_code == 201
        assert resp.json["user_id"] == manager_user.id

        refreshed = db_session.get(Product, product.id)
        assert refreshed.stock_qty == 7
        assert refreshed.cost_price == Decimal("5.0000")

        listing = client.get(f"/api/adjustments?product_id={product.id}", headers=manager_headers).json
        assert listing["items"][0]["reason"] == "Water damage"

    def test_validation(self, client, manager_headers, product):
        resp = client.post("/api/adjustments", json={
            "product_id": product.id, "qty_change": 0, "reason": "",
        }, headers=manager_headers)
        assert resp.status_code == 400
        paths = [i["path"] for i in resp.json["issues"]]
        assert ["qty_change"] in paths and ["reason"] in paths

    def test_unknown_product(self, client, db_session, manager_headers):
        resp = client.post("/api/adjustments", json={
            "product_id": 999, "qty_change": 1, "reason": "Found one",
        }, headers=manager_headers)
        assert resp.status_code == 404
        assert db_session.query(Adjustment).count() == 0
