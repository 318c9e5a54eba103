from __future__ import annotations

from ..extensions import db
from ..snapshots import load_order_lines
from ..time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    Immutable record of a paid and closed table.

    WHY: The table's lines are cleared on closure, so `lines_snapshot` keeps
    the only copy of what was sold (name, category, quantity, unit price).
    `table_label` is a copy too; renaming or deleting the table later does
    not rewrite history.

    INVARIANT: total_cents <= cash_paid_cents + transfer_paid_cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    table_id = db.Column(db.Integer, db.ForeignKey("dining_tables.id", ondelete="SET NULL"), nullable=True, index=True)
    register_id = db.Column(db.Integer, db.ForeignKey("cash_registers.id"), nullable=False, index=True)

    table_label = db.Column(db.String(100), nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    cash_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    transfer_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    # Serialized order lines (see snapshots.py)
    lines_snapshot = db.Column(db.Text, nullable=False)

    user = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    register = db.relationship("CashRegister", backref=db.backref("sales", lazy="dynamic"))

    @property
    def paid_cents(self) -> int:
        return self.cash_paid_cents + self.transfer_paid_cents

    @property
    def change_cents(self) -> int:
        return self.paid_cents - self.total_cents

    @property
    def lines(self) -> list[dict]:
        return load_order_lines(self.lines_snapshot)

    def __repr__(self) -> str:
        return f"<Sale id={self.id} table={self.table_label!r} total={self.total_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_id": self.table_id,
            "register_id": self.register_id,
            "table_label": self.table_label,
            "total_cents": self.total_cents,
            "cash_paid_cents": self.cash_paid_cents,
            "transfer_paid_cents": self.transfer_paid_cents,
            "change_cents": self.change_cents,
            "lines": self.lines,
            "user": self.user,
            "created_at": to_utc_z(self.created_at),
        }
