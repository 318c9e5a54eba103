from __future__ import annotations

from ..errors import InsufficientFundsError, RegisterClosedError
from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import Shift, enum_column


class CashRegister(db.Model):
    """
    One cash-drawer instance for one shift.

    LIFECYCLE:
    - OPEN: created by register_service.open_register; balances may move
    - CLOSED: terminal. A new instance must be opened for the same number.

    At most one OPEN instance exists per register_number (enforced by the
    service under a row lock). Balance mutators below refuse to run while
    closed; cash can never go below zero, transfers are not guarded.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.Index("ix_cash_registers_number_open", "register_number", "is_open"),
        db.CheckConstraint("register_number >= 1", name="ck_cash_registers_number_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    register_number = db.Column(db.Integer, nullable=False, index=True)
    shift = enum_column(Shift, nullable=False)

    # All balances in minor units
    cash_cents = db.Column(db.Integer, nullable=False, default=0)
    transfer_cents = db.Column(db.Integer, nullable=False, default=0)
    receivable_cents = db.Column(db.Integer, nullable=False, default=0)
    opening_float_cents = db.Column(db.Integer, nullable=False, default=0)

    is_open = db.Column(db.Boolean, nullable=False, default=True, index=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    opened_by = db.Column(db.String(100), nullable=True)
    closed_by = db.Column(db.String(100), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_cents(self) -> int:
        return self.cash_cents + self.transfer_cents

    def require_open(self) -> None:
        if not self.is_open:
            raise RegisterClosedError(self.id)

    def credit_cash(self, amount_cents: int) -> None:
        self.require_open()
        self.cash_cents += amount_cents

    def credit_transfer(self, amount_cents: int) -> None:
        self.require_open()
        self.transfer_cents += amount_cents

    def debit_cash(self, amount_cents: int) -> None:
        self.require_open()
        if self.cash_cents < amount_cents:
            raise InsufficientFundsError(available=self.cash_cents, requested=amount_cents)
        self.cash_cents -= amount_cents

    def debit_transfer(self, amount_cents: int) -> None:
        self.require_open()
        self.transfer_cents -= amount_cents

    def mark_closed(self, user: str | None, closed_at=None) -> None:
        self.require_open()
        self.is_open = False
        self.closed_at = closed_at or utcnow()
        self.closed_by = user

    def __repr__(self) -> str:
        return f"<CashRegister id={self.id} number={self.register_number} open={self.is_open}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "register_number": self.register_number,
            "shift": self.shift.value,
            "cash_cents": self.cash_cents,
            "transfer_cents": self.transfer_cents,
            "receivable_cents": self.receivable_cents,
            "opening_float_cents": self.opening_float_cents,
            "total_cents": self.total_cents,
            "is_open": self.is_open,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "opened_by": self.opened_by,
            "closed_by": self.closed_by,
            "version_id": self.version_id,
        }


class RegisterClosure(db.Model):
    """
    Immutable snapshot taken when a register is closed.

    Values are copies, not references: later activity on other registers or
    expenses never changes a closure. Exactly one row per closed register.
    """
    __tablename__ = "register_closures"
    __table_args__ = (
        db.UniqueConstraint("register_id", name="uq_register_closures_register"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    register_id = db.Column(db.Integer, db.ForeignKey("cash_registers.id"), nullable=False, index=True)
    register_number = db.Column(db.Integer, nullable=False, index=True)
    shift = enum_column(Shift, nullable=False)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    opening_float_cents = db.Column(db.Integer, nullable=False)
    final_cash_cents = db.Column(db.Integer, nullable=False)
    final_transfer_cents = db.Column(db.Integer, nullable=False)
    total_sales_cents = db.Column(db.Integer, nullable=False)
    total_expenses_cents = db.Column(db.Integer, nullable=False)
    receivable_cents = db.Column(db.Integer, nullable=False)
    next_float_cents = db.Column(db.Integer, nullable=False)

    closed_by = db.Column(db.String(100), nullable=True)
    report = db.Column(db.Text, nullable=True)

    register = db.relationship("CashRegister", backref=db.backref("closure", uselist=False))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "register_id": self.register_id,
            "register_number": self.register_number,
            "shift": self.shift.value,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "opening_float_cents": self.opening_float_cents,
            "final_cash_cents": self.final_cash_cents,
            "final_transfer_cents": self.final_transfer_cents,
            "total_sales_cents": self.total_sales_cents,
            "total_expenses_cents": self.total_expenses_cents,
            "receivable_cents": self.receivable_cents,
            "next_float_cents": self.next_float_cents,
            "closed_by": self.closed_by,
            "report": self.report,
        }
