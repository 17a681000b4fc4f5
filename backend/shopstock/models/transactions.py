from __future__ import annotations

from ..extensions import db
from ..money import money_str
from shopstock.time_utils import to_utc_z

TRANSACTION_SALE = "SALE"
TRANSACTION_PURCHASE = "PURCHASE"
TRANSACTION_TYPES = (TRANSACTION_SALE, TRANSACTION_PURCHASE)


class Transaction(db.Model):
    """
    A posted SALE or PURCHASE.

    IMMUTABLE: created exactly once, together with its items and the product
    stock/cost mutations they cause, inside a single unit of work. There is no
    update path and no persisted pending state.

    INVARIANT: total == sum(item.quantity * item.price - item.discount)
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("type IN ('SALE', 'PURCHASE')", name="ck_transactions_type"),
        db.Index("ix_transactions_type_date", "type", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Counterparties are not cross-checked against type
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    user = db.relationship("User")
    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.id",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} total={self.total}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "date": to_utc_z(self.date),
            "total": money_str(self.total),
            "user_id": self.user_id,
            "user": {"id": self.user.id, "name": self.user.name, "email": self.user.email} if self.user else None,
            "customer_id": self.customer_id,
            "customer": {"id": self.customer.id, "name": self.customer.name} if self.customer else None,
            "supplier_id": self.supplier_id,
            "supplier": {"id": self.supplier.id, "name": self.supplier.name} if self.supplier else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class TransactionItem(db.Model):
    """One line of a Transaction; owned by it and immutable after creation."""
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transaction_items_quantity_pos"),
        db.CheckConstraint("price >= 0", name="ck_transaction_items_price_nonneg"),
        db.CheckConstraint("discount >= 0", name="ck_transaction_items_discount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Unit sale price for SALE, unit acquisition cost for PURCHASE
    price = db.Column(db.Numeric(12, 2), nullable=False)
    # Monetary amount off the line's gross
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    transaction = db.relationship("Transaction", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product": {"id": self.product.id, "sku": self.product.sku, "name": self.product.name}
            if self.product else None,
            "quantity": self.quantity,
            "price": money_str(self.price),
            "discount": money_str(self.discount),
        }
