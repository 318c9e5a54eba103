"""
Cash Register Service

WHY: Every sale and expense moves money in exactly one register instance.
A register instance lives for one shift and is never reopened.

DESIGN PRINCIPLES:
- At most one OPEN instance per register number
- Balances only move while OPEN (RegisterClosedError otherwise)
- Cash never goes negative (InsufficientFundsError); transfer debits are
  not guarded but a negative transfer balance is logged as a warning
- Closing writes exactly one immutable RegisterClosure, then flips the
  register to CLOSED in the same transaction

CLOSURE EXPENSES:
CLOSURE_EXPENSE_SCOPE="system" (default) totals every expense ever recorded;
"period" totals only expenses recorded between opened_at and the close.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import NoOpenRegisterError, NotFoundError, RegisterAlreadyOpenError, ValidationError, require_amount, require_int
from ..extensions import db
from ..models import CashRegister, Expense, RegisterClosure, Shift
from ..models.enums import coerce_enum
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction


# =============================================================================
# LOADING
# =============================================================================

def load_register(register_id: int, *, for_update: bool = False) -> CashRegister:
    query = db.session.query(CashRegister).filter_by(id=register_id)
    if for_update:
        query = lock_for_update(query)
    register = query.first()
    if not register:
        raise NotFoundError("Register", register_id)
    return register


def first_open_register(*, for_update: bool = False) -> CashRegister:
    """Oldest open register; NoOpenRegisterError when none is open."""
    query = db.session.query(CashRegister).filter(CashRegister.is_open.is_(True)).order_by(CashRegister.id)
    if for_update:
        query = lock_for_update(query)
    register = query.first()
    if not register:
        raise NoOpenRegisterError()
    return register


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_register(
    *,
    register_number: int,
    shift: Shift | str,
    opening_float_cents: int,
    user: str | None = None,
) -> CashRegister:
    """
    Open a new register instance.

    Cash starts at the opening float; transfers and receivable at zero.

    Raises:
        RegisterAlreadyOpenError: an OPEN instance exists for register_number
    """
    register_number = require_int(register_number, "register_number")
    if register_number < 1:
        raise ValidationError("register_number must be at least 1", {"field": "register_number"})
    shift = coerce_enum(Shift, shift, "shift")
    opening_float_cents = require_amount(opening_float_cents, "opening_float_cents", allow_zero=True)

    def _op():
        existing = lock_for_update(
            db.session.query(CashRegister).filter_by(register_number=register_number, is_open=True)
        ).first()
        if existing:
            raise RegisterAlreadyOpenError(register_number)
        register = CashRegister(
            register_number=register_number,
            shift=shift,
            cash_cents=opening_float_cents,
            transfer_cents=0,
            receivable_cents=0,
            opening_float_cents=opening_float_cents,
            is_open=True,
            opened_at=utcnow(),
            opened_by=user,
        )
        db.session.add(register)
        return register

    register = run_in_transaction(_op)
    current_app.logger.info(
        "Register opened id=%s number=%s shift=%s float=%s by=%s",
        register.id, register_number, shift.value, opening_float_cents, user,
    )
    return register


def _total_expenses(register: CashRegister, closed_at) -> int:
    query = db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
    if current_app.config.get("CLOSURE_EXPENSE_SCOPE", "system") == "period":
        query = query.filter(Expense.created_at >= register.opened_at, Expense.created_at <= closed_at)
    return int(query.scalar() or 0)


def close_register(register_id: int, *, user: str | None = None) -> RegisterClosure:
    """
    Close a register and snapshot it.

    total_sales = cash + transfers - opening float
    next_float  = opening float (carried to the next shift)
    """
    def _op():
        register = load_register(register_id, for_update=True)
        register.require_open()
        closed_at = utcnow()
        closure = RegisterClosure(
            register_id=register.id,
            register_number=register.register_number,
            shift=register.shift,
            opened_at=register.opened_at,
            closed_at=closed_at,
            opening_float_cents=register.opening_float_cents,
            final_cash_cents=register.cash_cents,
            final_transfer_cents=register.transfer_cents,
            total_sales_cents=register.total_cents - register.opening_float_cents,
            total_expenses_cents=_total_expenses(register, closed_at),
            receivable_cents=register.receivable_cents,
            next_float_cents=register.opening_float_cents,
            closed_by=user,
            report=f"Register {register.register_number} closure - Shift: {register.shift.value} - User: {user}",
        )
        db.session.add(closure)
        register.mark_closed(user, closed_at)
        return closure

    closure = run_in_transaction(_op)
    current_app.logger.info(
        "Register closed id=%s sales=%s expenses=%s by=%s",
        register_id, closure.total_sales_cents, closure.total_expenses_cents, user,
    )
    return closure


# =============================================================================
# BALANCES
# =============================================================================

def credit_cash_locked(register: CashRegister, amount_cents: int) -> None:
    register.credit_cash(amount_cents)


def credit_transfer_locked(register: CashRegister, amount_cents: int) -> None:
    register.credit_transfer(amount_cents)


def debit_cash_locked(register: CashRegister, amount_cents: int) -> None:
    register.debit_cash(amount_cents)


def debit_transfer_locked(register: CashRegister, amount_cents: int) -> None:
    register.debit_transfer(amount_cents)
    if register.transfer_cents < 0:
        current_app.logger.warning(
            "Register %s transfer balance is negative (%s)", register.id, register.transfer_cents,
        )


def _balance_op(register_id: int, amount_cents: int, mutator) -> CashRegister:
    amount_cents = require_amount(amount_cents, "amount_cents")

    def _op():
        register = load_register(register_id, for_update=True)
        mutator(register, amount_cents)
        return register
    return run_in_transaction(_op)


def credit_cash(register_id: int, amount_cents: int) -> CashRegister:
    return _balance_op(register_id, amount_cents, credit_cash_locked)


def credit_transfer(register_id: int, amount_cents: int) -> CashRegister:
    return _balance_op(register_id, amount_cents, credit_transfer_locked)


def debit_cash(register_id: int, amount_cents: int) -> CashRegister:
    """Raises InsufficientFundsError if cash would go negative."""
    return _balance_op(register_id, amount_cents, debit_cash_locked)


def debit_transfer(register_id: int, amount_cents: int) -> CashRegister:
    return _balance_op(register_id, amount_cents, debit_transfer_locked)


def set_receivable(register_id: int, amount_cents: int) -> CashRegister:
    amount_cents = require_amount(amount_cents, "amount_cents", allow_zero=True)

    def _op():
        register = load_register(register_id, for_update=True)
        register.require_open()
        register.receivable_cents = amount_cents
        return register
    return run_in_transaction(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_register(register_id: int) -> CashRegister:
    return load_register(register_id)


def list_open_registers() -> list[CashRegister]:
    return db.session.query(CashRegister).filter(CashRegister.is_open.is_(True)).order_by(CashRegister.register_number).all()


def find_open_by_number(register_number: int) -> CashRegister | None:
    return db.session.query(CashRegister).filter_by(register_number=register_number, is_open=True).first()


def register_history(register_number: int) -> list[CashRegister]:
    return (
        db.session.query(CashRegister)
        .filter_by(register_number=register_number)
        .order_by(CashRegister.opened_at.desc(), CashRegister.id.desc())
        .all()
    )


def count_open_registers() -> int:
    return int(db.session.query(func.count(CashRegister.id)).filter(CashRegister.is_open.is_(True)).scalar() or 0)


def list_closures(register_number: int | None = None) -> list[RegisterClosure]:
    query = db.session.query(RegisterClosure)
    if register_number is not None:
        query = query.filter(RegisterClosure.register_number == register_number)
    return query.order_by(RegisterClosure.closed_at.desc(), RegisterClosure.id.desc()).all()


def get_closure(closure_id: int) -> RegisterClosure:
    closure = db.session.query(RegisterClosure).filter_by(id=closure_id).first()
    if not closure:
        raise NotFoundError("RegisterClosure", closure_id)
    return closure
