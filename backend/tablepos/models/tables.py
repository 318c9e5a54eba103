from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import TableState, enum_column


class DiningTable(db.Model):
    """
    Physical restaurant table and its open order.

    AGGREGATE: the table exclusively owns its OrderLines. Lines are only
    created, re-quantified and removed through the methods below, which keep
    `total_cents` and `state` consistent:
    - total_cents == sum(line.subtotal_cents)
    - OCCUPIED whenever lines exist; an empty table returns to FREE
      (a seated reservation may occupy a table before its first line).

    Stock is not touched here; services.table_service pairs every line
    mutation with the matching stock_service call in the same transaction.
    """
    __tablename__ = "dining_tables"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_dining_tables_number"),
        db.CheckConstraint("number >= 1", name="ck_dining_tables_number_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(50), nullable=False)

    state = enum_column(TableState, nullable=False, default=TableState.FREE, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    lines = db.relationship(
        "OrderLine",
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    # =========================================================================
    # AGGREGATE API
    # =========================================================================

    @property
    def label(self) -> str:
        return f"{self.number} - {self.name}"

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_free(self) -> bool:
        return self.state == TableState.FREE

    def find_line(self, line_id: int) -> "OrderLine | None":
        for line in self.lines:
            if line.id == line_id:
                return line
        return None

    def add_line(self, product, quantity: int) -> "OrderLine":
        """Append a line snapshotting the product's current name, category and price."""
        line = OrderLine(
            product=product,
            product_name=product.name,
            product_category=product.category,
            unit_price_cents=product.price_cents,
            quantity=quantity,
        )
        line.recalculate_subtotal()
        self.lines.append(line)
        self.recalculate_total()
        self.state = TableState.OCCUPIED
        return line

    def change_line_quantity(self, line: "OrderLine", quantity: int) -> None:
        line.quantity = quantity
        line.recalculate_subtotal()
        self.recalculate_total()

    def remove_line(self, line: "OrderLine") -> None:
        self.lines.remove(line)
        self.recalculate_total()
        if not self.lines:
            self.state = TableState.FREE
            self.total_cents = 0

    def clear_lines(self) -> None:
        self.lines.clear()
        self.total_cents = 0
        self.state = TableState.FREE

    def occupy(self) -> None:
        self.state = TableState.OCCUPIED

    def recalculate_total(self) -> None:
        self.total_cents = sum(line.subtotal_cents for line in self.lines)

    def __repr__(self) -> str:
        return f"<DiningTable id={self.id} number={self.number} state={self.state.value}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "number": self.number,
            "name": self.name,
            "label": self.label,
            "state": self.state.value,
            "total_cents": self.total_cents,
            "item_count": self.item_count,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """
    One product quantity on a table's open order.

    SNAPSHOT: product_name, product_category and unit_price_cents are copied
    from the product when the line is created and never re-read, so later
    catalog edits do not change what the customer was charged.
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    table_id = db.Column(db.Integer, db.ForeignKey("dining_tables.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    product_category = db.Column(db.String(50), nullable=True)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    table = db.relationship("DiningTable", back_populates="lines")
    product = db.relationship("Product")

    def recalculate_subtotal(self) -> None:
        self.subtotal_cents = self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_id": self.table_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_category": self.product_category,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }
