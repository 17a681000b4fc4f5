"""
Catalog tests: product CRUD, archive, delete guard and bulk import.
"""

import io
from decimal import Decimal

import pytest
from sqlalchemy import text

from shopstock.models import Product
from shopstock.services import products_service
from shopstock.services.adjustment_service import adjust_stock
from shopstock.services.transaction_service import post_transaction
from shopstock.validation import ConflictError


class TestProductRoutes:
    def test_create_product(self, client, manager_headers, supplier):
        resp = client.post("/api/products", json={
            "sku": "NEW-1",
            "name": "New Thing",
            "cost_price": "3.25",
            "sale_price": 9.99,
            "supplier_id": supplier.id,
        }, headers=manager_headers)

        assert resp.status_code == 201
        assert resp.json["cost_price"] == "3.2500"
        assert resp.json["sale_price"] == "9.99"
        assert resp.json["stock_qty"] == 0
        assert resp.json["min_stock"] == 5
        assert resp.json["supplier"]["name"] == "Acme Wholesale"

    def test_create_requires_fields(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "No SKU"}, headers=manager_headers)
        assert resp.status_code == 400
        paths = [i["path"] for i in resp.json["issues"]]
        assert ["sku"] in paths
        assert ["cost_price"] in paths

    def test_rejects_unknown_fields(self, client, manager_headers):
        resp = client.post("/api/products", json={
            "sku": "S", "name": "N", "cost_price": "1", "sale_price": "1", "version_id": 7,
        }, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json["issues"][0]["message"] == "Field not allowed: version_id"

    def test_duplicate_sku_is_409(self, client, manager_headers, product):
        resp = client.post("/api/products", json={
            "sku": product.sku, "name": "Dup", "cost_price": "1", "sale_price": "1",
        }, headers=manager_headers)
        assert resp.status_code == 409
        assert resp.json["error"] == "Product with this sku already exists."

    def test_update_product(self, client, manager_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"sale_price": "21.50", "brand": ""},
                          headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["sale_price"] == "21.50"
        assert resp.json["brand"] is None

    def test_concurrent_modification_is_conflict(self, db_session, product):
        loaded = db_session.get(Product, product.id)
        assert loaded.version_id == 1
        # A posting commits behind this session's back
        db_session.execute(
            text("UPDATE products SET stock_qty = stock_qty - 1, version_id = version_id + 1 WHERE id = :id"),
            {"id": product.id},
        )

        with pytest.raises(ConflictError, match="modified concurrently"):
            products_service.update_product(product_id=product.id, patch={"name": "Renamed"})

        refreshed = db_session.get(Product, product.id)
        assert refreshed.name == "Blue Widget"

    def test_update_missing_is_404(self, client, manager_headers):
        assert client.put("/api/products/999", json={"name": "x"}, headers=manager_headers).status_code == 404

    def test_archive_hides_from_listing(self, client, manager_headers, product, other_product):
        resp = client.post(f"/api/products/{product.id}/archive", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["is_archived"] is True

        active = client.get("/api/products", headers=manager_headers).json
        assert [p["sku"] for p in active["items"]] == [other_product.sku]

        archived = client.get("/api/products?archived=true", headers=manager_headers).json
        assert [p["sku"] for p in archived["items"]] == [product.sku]

        client.post(f"/api/products/{product.id}/unarchive", headers=manager_headers)
        assert client.get("/api/products", headers=manager_headers).json["count"] == 2

    def test_list_filters(self, client, clerk_headers, product, other_product):
        resp = client.get("/api/products?category=Gadgets", headers=clerk_headers)
        assert [p["sku"] for p in resp.json["items"]] == [other_product.sku]

        resp = client.get("/api/products?min_price=10", headers=clerk_headers)
        assert [p["sku"] for p in resp.json["items"]] == [product.sku]

        resp = client.get("/api/products?q=widget", headers=clerk_headers)
        assert [p["sku"] for p in resp.json["items"]] == [product.sku]

        resp = client.get("/api/products?min_price=abc", headers=clerk_headers)
        assert resp.status_code == 400

    def test_distinct_values(self, client, clerk_headers, product, other_product):
        resp = client.get("/api/products/distinct", headers=clerk_headers)
        assert resp.json == {"categories": ["Gadgets", "Widgets"], "brands": ["Acme", "Globex"]}


class TestDeleteGuard:
    def test_delete_unused_product(self, client, manager_headers, db_session, product):
        resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 200
        assert db_session.query(Product).count() == 0

    def test_cannot_delete_sold_product(self, db_session, clerk_actor, product):
        assert post_transaction(clerk_actor, "SALE", [
            {"product_id": product.id, "quantity": 1, "price": "19.99"},
        ]).ok

        with pytest.raises(ConflictError, match="existing sales or purchases"):
            products_service.delete_product(product_id=product.id)

    def test_cannot_delete_adjusted_product(self, client, manager_headers, manager_actor, product):
        adjust_stock(actor=manager_actor, product_id=product.id, qty_change=-1, reason="Damaged")

        resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 409
        assert "inventory adjustments" in resp.json["error"]


class TestImport:
    def test_json_rows_upsert_by_sku(self, client, manager_headers, db_session, product):
        resp = client.post("/api/products/import", json={"rows": [
            {"sku": product.sku, "name": "Renamed", "cost_price": "5", "sale_price": "20"},
            {"sku": "IMP-1", "name": "Imported", "cost_price": "1.5", "sale_price": "3"},
            {"sku": "IMP-2", "name": "Bad", "cost_price": "oops", "sale_price": "3"},
        ]}, headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["success"] == 2
        assert resp.json["failed"] == 1
        assert resp.json["errors"][0]["row"] == 3
        assert resp.json["errors"][0]["sku"] == "IMP-2"

        assert db_session.query(Product).filter_by(sku=product.sku).one().name == "Renamed"
        assert db_session.query(Product).filter_by(sku="IMP-1").one().sale_price == Decimal("3.00")

    def test_csv_upload(self, client, manager_headers, db_session):
        csv_body = "sku,name,brand,cost_price,sale_price,stock_qty\nCSV-1,From CSV,,2.00,4.00,7\n"
        resp = client.post(
            "/api/products/import",
            data={"file": (io.BytesIO(csv_body.encode("utf-8")), "products.csv")},
            content_type="multipart/form-data",
            headers=manager_headers,
        )

        assert resp.status_code == 200
        assert resp.json["success"] == 1
        imported = db_session.query(Product).filter_by(sku="CSV-1").one()
        assert imported.stock_qty == 7
        assert imported.brand is None

    def test_duplicate_barcode_row_fails(self, db_session, product):
        product.barcode = "123456"
        db_session.commit()

        result = products_service.import_products([
            {"sku": "NEW-BC", "name": "Clash", "cost_price": "1", "sale_price": "1", "barcode": "123456"},
        ])
        assert result["failed"] == 1
        assert "Unique constraint" in result["errors"][0]["error"]
