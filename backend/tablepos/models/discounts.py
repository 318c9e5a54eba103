from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import DiscountKind, enum_column


class Discount(db.Model):
    """
    Whole-ticket discount.

    PERCENTAGE: `value` is a whole percent (1..100).
    FIXED_AMOUNT: `value` is in minor units.
    A discount applies when active, inside its optional validity window and
    when the ticket total reaches `min_purchase_cents`.
    """
    __tablename__ = "discounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    kind = enum_column(DiscountKind, nullable=False)
    value = db.Column(db.Integer, nullable=False)
    min_purchase_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    starts_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ends_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def is_valid_at(self, moment) -> bool:
        if not self.is_active:
            return False
        if self.starts_at and moment < self.starts_at:
            return False
        if self.ends_at and moment > self.ends_at:
            return False
        return True

    def amount_for(self, total_cents: int) -> int:
        """Reduction for a ticket total; 0 below the minimum purchase, never more than the total."""
        if total_cents < self.min_purchase_cents:
            return 0
        if self.kind == DiscountKind.PERCENTAGE:
            amount = total_cents * self.value // 100
        else:
            amount = self.value
        return min(amount, total_cents)

    def apply(self, total_cents: int) -> int:
        return total_cents - self.amount_for(total_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "kind": self.kind.value,
            "value": self.value,
            "min_purchase_cents": self.min_purchase_cents,
            "is_active": self.is_active,
            "starts_at": to_utc_z(self.starts_at),
            "ends_at": to_utc_z(self.ends_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
