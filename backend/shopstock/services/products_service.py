# backend/shopstock/services/products_service.py
"""
Products Service

Catalog maintenance around the stock position that postings own:
- stock_qty / cost_price may be seeded on create and corrected on update by
  a manager, but day-to-day they only move through transactions and
  adjustments
- products referenced by transaction history or adjustments are never
  deleted; archive them instead
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..cache import cached, invalidate_tags
from ..extensions import db
from ..models import Adjustment, Product, Supplier, TransactionItem
from ..pagination import paginate
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "sku", "name", "brand", "category", "description", "barcode",
        "cost_price", "sale_price", "stock_qty", "min_stock", "supplier_id",
    }),
    required_on_create=frozenset({"sku", "name", "cost_price", "sale_price"}),
    non_negative=frozenset({"cost_price", "sale_price", "stock_qty", "min_stock"}),
)

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields | {"is_archived"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def _check_unique(patch: dict, exclude_id: int | None = None) -> None:
    for field in ("sku", "barcode"):
        value = patch.get(field)
        if value is None:
            continue
        q = db.session.query(Product).filter(getattr(Product, field) == value)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first() is not None:
            raise ConflictError(f"Product with this {field} already exists.")


def _check_supplier(patch: dict) -> None:
    supplier_id = patch.get("supplier_id")
    if supplier_id is not None and db.session.get(Supplier, supplier_id) is None:
        raise ValidationError(f"Supplier {supplier_id} not found")


def _commit_catalog_change(action: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Failed to %s product: %s", action, exc.orig)
        raise ConflictError("Product with this sku or barcode already exists.") from exc
    except StaleDataError as exc:
        db.session.rollback()
        current_app.logger.warning("Concurrent change while trying to %s product: %s", action, exc)
        raise ConflictError("Product was modified concurrently, reload and retry") from exc
    invalidate_tags("products", "reports", sender="products")


@cached("products")
def list_products(
    query: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    categories: tuple[str, ...] = (),
    brands: tuple[str, ...] = (),
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    in_stock: bool = False,
    archived: bool = False,
) -> dict:
    """
    Catalog listing, newest first.

    query matches name, sku, brand or category (case-insensitive). Archived
    products are hidden unless archived=True, which lists only archived ones.
    """
    q = db.session.query(Product).filter(Product.is_archived.is_(archived))

    if query:
        pattern = f"%{query.strip()}%"
        q = q.filter(db.or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.brand.ilike(pattern),
            Product.category.ilike(pattern),
        ))

    if categories:
        q = q.filter(Product.category.in_(categories))
    if brands:
        q = q.filter(Product.brand.in_(brands))
    if min_price is not None:
        q = q.filter(Product.sale_price >= min_price)
    if max_price is not None:
        q = q.filter(Product.sale_price <= max_price)
    if in_stock:
        q = q.filter(Product.stock_qty > 0)

    q = q.order_by(Product.created_at.desc(), Product.id.desc())
    page_data = paginate(q, page, per_page)

    return {
        "items": [p.to_dict() for p in page_data["items"]],
        "count": len(page_data["items"]),
        "pagination": page_data["pagination"],
    }


@cached("products")
def get_distinct_values() -> dict:
    """Categories and brands in use by active products, for filter pickers."""
    categories = (
        db.session.query(Product.category)
        .filter(Product.is_archived.is_(False), Product.category.isnot(None))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    brands = (
        db.session.query(Product.brand)
        .filter(Product.is_archived.is_(False), Product.brand.isnot(None))
        .distinct()
        .order_by(Product.brand.asc())
        .all()
    )
    return {
        "categories": [c for (c,) in categories if c],
        "brands": [b for (b,) in brands if b],
    }


def get_product(product_id: int) -> dict:
    return _get_product(product_id).to_dict()


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If SKU or barcode already exists
        ValidationError: If supplier_id does not exist
    """
    _check_unique(patch)
    _check_supplier(patch)

    p = Product()
    if "min_stock" not in patch:
        p.min_stock = current_app.config.get("LOW_STOCK_DEFAULT_MIN", 5)
    apply_product_patch(p, patch)

    db.session.add(p)
    _commit_catalog_change("create")
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    product = _get_product(product_id)
    _check_unique(patch, exclude_id=product_id)
    _check_supplier(patch)

    apply_product_patch(product, patch)
    _commit_catalog_change("update")
    return product.to_dict()


def set_archived(*, product_id: int, archived: bool) -> dict:
    product = _get_product(product_id)
    product.is_archived = archived
    _commit_catalog_change("archive" if archived else "unarchive")
    return product.to_dict()


def delete_product(*, product_id: int) -> None:
    """
    Delete a product that has no history.

    Raises:
        NotFoundError: If the product does not exist
        ConflictError: If transaction items or adjustments reference it
    """
    product = _get_product(product_id)

    dependency_count = db.session.query(TransactionItem).filter_by(product_id=product_id).count()
    if dependency_count > 0:
        raise ConflictError(
            "Cannot delete product with existing sales or purchases. Please archive it instead."
        )

    adjustment_count = db.session.query(Adjustment).filter_by(product_id=product_id).count()
    if adjustment_count > 0:
        raise ConflictError(
            "Cannot delete product with inventory adjustments. Please archive it instead."
        )

    db.session.delete(product)
    db.session.commit()
    invalidate_tags("products", "reports", sender="products")


def import_products(rows: list) -> dict:
    """
    Upsert already-parsed rows by SKU.

    Each row is validated and committed on its own, so one bad row does not
    block the rest. Returns {"success": n, "failed": n, "errors": [{row, error, sku}]}
    with 1-based row numbers.
    """
    result = {"success": 0, "failed": 0, "errors": []}

    for index, row in enumerate(rows, start=1):
        sku = row.get("sku") if isinstance(row, dict) else None
        try:
            patch = validate_payload(model=Product, payload=row, policy=PRODUCT_POLICY, partial=False)
            _check_supplier(patch)
            existing = db.session.query(Product).filter_by(sku=patch["sku"]).first()
            if existing is None:
                _check_unique({"barcode": patch.get("barcode")})
                product = Product(min_stock=current_app.config.get("LOW_STOCK_DEFAULT_MIN", 5))
                db.session.add(product)
            else:
                _check_unique({"barcode": patch.get("barcode")}, exclude_id=existing.id)
                product = existing
            apply_product_patch(product, patch)
            db.session.commit()
            result["success"] += 1
        except ValidationError as e:
            db.session.rollback()
            result["failed"] += 1
            message = e.issues[0].message if e.issues else str(e)
            result["errors"].append({"row": index, "error": message, "sku": sku})
        except (ConflictError, IntegrityError):
            db.session.rollback()
            result["failed"] += 1
            result["errors"].append({
                "row": index,
                "error": "Unique constraint violation (SKU or Barcode already exists)",
                "sku": sku,
            })

    if result["success"]:
        invalidate_tags("products", "reports", sender="products")
    return result
