from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import PaymentMethod, enum_column


class Expense(db.Model):
    """
    Recorded outflow of money.

    NON-REVERSAL: deleting an expense never re-credits the register it was
    debited from. `register_id` only records where the money came from.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_period", "period"),
        db.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    concept = db.Column(db.String(200), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = enum_column(PaymentMethod, nullable=False, index=True)

    category = db.Column(db.String(50), nullable=True)
    period = db.Column(db.String(20), nullable=True)
    user = db.Column(db.String(100), nullable=True)

    register_id = db.Column(db.Integer, db.ForeignKey("cash_registers.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "concept": self.concept,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method.value,
            "category": self.category,
            "period": self.period,
            "user": self.user,
            "register_id": self.register_id,
            "created_at": to_utc_z(self.created_at),
        }
