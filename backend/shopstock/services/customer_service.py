# Overview: Customer records; the optional counterparty on sales.

from __future__ import annotations

from ..cache import invalidate_tags
from ..extensions import db
from ..models import Customer, Transaction
from ..pagination import paginate
from ..validation import ConflictError, ModelValidationPolicy, NotFoundError

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "email", "phone", "address"}),
    required_on_create=frozenset({"name"}),
)


def _get_customer(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def list_customers(*, page: int | None = None, per_page: int | None = None, search: str | None = None) -> dict:
    """Newest first; search matches name, email or phone."""
    q = db.session.query(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(db.or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))
    q = q.order_by(Customer.created_at.desc(), Customer.id.desc())
    page_data = paginate(q, page, per_page)
    return {
        "items": [c.to_dict() for c in page_data["items"]],
        "count": len(page_data["items"]),
        "pagination": page_data["pagination"],
    }


def get_customer(customer_id: int) -> dict:
    return _get_customer(customer_id).to_dict()


def create_customer(*, patch: dict) -> dict:
    customer = Customer(**patch)
    db.session.add(customer)
    db.session.commit()
    return customer.to_dict()


def update_customer(*, customer_id: int, patch: dict) -> dict:
    customer = _get_customer(customer_id)
    for k, v in patch.items():
        setattr(customer, k, v)
    db.session.commit()
    # Listings embed the customer name
    invalidate_tags("transactions", sender="customers")
    return customer.to_dict()


def delete_customer(*, customer_id: int) -> None:
    customer = _get_customer(customer_id)
    if db.session.query(Transaction).filter_by(customer_id=customer_id).count() > 0:
        raise ConflictError("Cannot delete customer with existing sales.")
    db.session.delete(customer)
    db.session.commit()
