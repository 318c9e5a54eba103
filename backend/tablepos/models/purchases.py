from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import PurchasePaymentMethod, enum_column


class Supplier(db.Model):
    """
    Vendor that delivers stock.

    Suppliers are deactivated rather than deleted once they have purchases;
    inactive suppliers cannot receive new purchases.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_suppliers_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(100), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Purchase(db.Model):
    """
    Supplier delivery header.

    AGGREGATE: owns its PurchaseLines (cascade delete). Lines are appended
    through add_line only, which keeps total_cents == sum(line.subtotal_cents).
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_delivery_date", "delivery_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    document_number = db.Column(db.String(50), nullable=False, index=True)
    delivery_date = db.Column(db.Date, nullable=False)
    payment_method = enum_column(PurchasePaymentMethod, nullable=False, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.String(500), nullable=True)
    user = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy="dynamic"))
    lines = db.relationship(
        "PurchaseLine",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.id",
    )

    def add_line(self, product, quantity: int, unit_cost_cents: int) -> "PurchaseLine":
        """Append a line snapshotting the product name; the unit cost is the delivery's."""
        line = PurchaseLine(
            product=product,
            product_name=product.name,
            unit_cost_cents=unit_cost_cents,
            quantity=quantity,
            subtotal_cents=quantity * unit_cost_cents,
        )
        self.lines.append(line)
        self.recalculate_total()
        return line

    def recalculate_total(self) -> None:
        self.total_cents = sum(line.subtotal_cents for line in self.lines)

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} document={self.document_number!r} total={self.total_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "document_number": self.document_number,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "payment_method": self.payment_method.value,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "user": self.user,
            "lines": [line.to_dict() for line in self.lines],
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseLine(db.Model):
    """One delivered product; name snapshotted at intake."""
    __tablename__ = "purchase_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_cost_cents": self.unit_cost_cents,
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
        }
