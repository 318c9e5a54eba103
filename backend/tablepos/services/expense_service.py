"""
Expense Ledger Service

WHY: Expenses paid out of a register must leave the register balance in
step with the recorded outflow.

POLICY:
- recording with a register_id debits that register (cash or transfer
  according to the payment method) in the same transaction; if the debit
  fails, the expense is not recorded either
- deleting an expense NEVER re-credits the register
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, ValidationError, require_amount
from ..extensions import db
from ..models import Expense, PaymentMethod
from ..models.enums import coerce_enum
from .concurrency import run_in_transaction
from .register_service import debit_cash_locked, debit_transfer_locked, load_register


def _validate_concept(concept) -> str:
    concept = (concept or "").strip()
    if not 3 <= len(concept) <= 200:
        raise ValidationError("concept must be between 3 and 200 characters", {"field": "concept"})
    return concept


def record_expense(
    *,
    concept: str,
    amount_cents: int,
    payment_method: PaymentMethod | str,
    category: str | None = None,
    period: str | None = None,
    user: str | None = None,
    register_id: int | None = None,
) -> Expense:
    """
    Record an expense, optionally debiting a register.

    Raises:
        InvalidQuantityError: amount_cents <= 0
        NotFoundError: register_id given but missing
        RegisterClosedError / InsufficientFundsError: from the register debit
    """
    concept = _validate_concept(concept)
    amount_cents = require_amount(amount_cents, "amount_cents")
    payment_method = coerce_enum(PaymentMethod, payment_method, "payment_method")

    def _op():
        expense = Expense(
            concept=concept,
            amount_cents=amount_cents,
            payment_method=payment_method,
            category=category,
            period=period,
            user=user,
            register_id=register_id,
        )
        db.session.add(expense)
        if register_id is not None:
            register = load_register(register_id, for_update=True)
            if payment_method == PaymentMethod.CASH:
                debit_cash_locked(register, amount_cents)
            else:
                debit_transfer_locked(register, amount_cents)
        return expense

    expense = run_in_transaction(_op)
    current_app.logger.info(
        "Expense recorded id=%s amount=%s method=%s register_id=%s",
        expense.id, amount_cents, payment_method.value, register_id,
    )
    return expense


def get_expense(expense_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id).first()
    if not expense:
        raise NotFoundError("Expense", expense_id)
    return expense


def delete_expense(expense_id: int) -> None:
    """Remove the record only; the register is not re-credited."""
    def _op():
        db.session.delete(get_expense(expense_id))
    run_in_transaction(_op)


def _filtered(query, *, period=None, payment_method=None, start=None, end=None):
    if period:
        query = query.filter(Expense.period == period)
    if payment_method is not None:
        query = query.filter(Expense.payment_method == coerce_enum(PaymentMethod, payment_method, "payment_method"))
    if start is not None:
        query = query.filter(Expense.created_at >= start)
    if end is not None:
        query = query.filter(Expense.created_at < end)
    return query


def list_expenses(*, period=None, payment_method=None, start=None, end=None) -> list[Expense]:
    query = _filtered(db.session.query(Expense), period=period, payment_method=payment_method, start=start, end=end)
    return query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def total_expenses(*, period=None, payment_method=None, start=None, end=None) -> int:
    query = _filtered(
        db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0)),
        period=period, payment_method=payment_method, start=start, end=end,
    )
    return int(query.scalar() or 0)
