# Overview: Supplier records; the optional counterparty on purchases and the product source.

from __future__ import annotations

from ..cache import invalidate_tags
from ..extensions import db
from ..models import Product, Supplier, Transaction
from ..pagination import paginate
from ..validation import ConflictError, ModelValidationPolicy, NotFoundError

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "contact_person", "email", "phone", "address"}),
    required_on_create=frozenset({"name"}),
)


def _get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def list_suppliers(*, page: int | None = None, per_page: int | None = None, search: str | None = None) -> dict:
    """Newest first; search matches name, contact person or email."""
    q = db.session.query(Supplier)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(db.or_(
            Supplier.name.ilike(pattern),
            Supplier.contact_person.ilike(pattern),
            Supplier.email.ilike(pattern),
        ))
    q = q.order_by(Supplier.created_at.desc(), Supplier.id.desc())
    page_data = paginate(q, page, per_page)
    return {
        "items": [s.to_dict() for s in page_data["items"]],
        "count": len(page_data["items"]),
        "pagination": page_data["pagination"],
    }


def list_all_suppliers() -> list[dict]:
    """Unpaginated, by name; feeds supplier pickers."""
    return [s.to_dict() for s in db.session.query(Supplier).order_by(Supplier.name.asc()).all()]


def get_supplier(supplier_id: int) -> dict:
    return _get_supplier(supplier_id).to_dict()


def create_supplier(*, patch: dict) -> dict:
    supplier = Supplier(**patch)
    db.session.add(supplier)
    db.session.commit()
    return supplier.to_dict()


def update_supplier(*, supplier_id: int, patch: dict) -> dict:
    supplier = _get_supplier(supplier_id)
    for k, v in patch.items():
        setattr(supplier, k, v)
    db.session.commit()
    invalidate_tags("transactions", "products", "reports", sender="suppliers")
    return supplier.to_dict()


def delete_supplier(*, supplier_id: int) -> None:
    supplier = _get_supplier(supplier_id)
    if db.session.query(Transaction).filter_by(supplier_id=supplier_id).count() > 0:
        raise ConflictError("Cannot delete supplier with existing purchases.")
    if db.session.query(Product).filter_by(supplier_id=supplier_id).count() > 0:
        raise ConflictError("Cannot delete supplier linked to products. Reassign the products first.")
    db.session.delete(supplier)
    db.session.commit()
