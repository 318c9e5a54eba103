"""
Sale Closure Service

WHY: Closing a table is the one operation that touches the order, the
register and the sales history at once. It runs as a single transaction:
a failure at any step leaves table, register and stock as they were.

FLOW (close_table):
1. Load table; EmptyOrderError if it has no lines
2. InsufficientPaymentError if cash + transfer < table total
3. Resolve register: the given one (must be OPEN) or the first OPEN one
4. Credit cash and transfer to the register
5. Snapshot the order lines (snapshots.dump_order_lines)
6. Persist the Sale
7. Release the table (lines cleared, FREE, total 0); stock is not touched,
   it was debited when the lines were added
"""

from __future__ import annotations

from flask import current_app

from ..errors import EmptyOrderError, InsufficientPaymentError, NotFoundError, require_amount
from ..extensions import db
from ..models import Sale
from ..snapshots import dump_order_lines
from .concurrency import run_in_transaction
from .register_service import credit_cash_locked, credit_transfer_locked, first_open_register, load_register
from .table_service import load_table, release_locked


def close_table(
    table_id: int,
    *,
    cash_paid_cents: int = 0,
    transfer_paid_cents: int = 0,
    register_id: int | None = None,
    user: str | None = None,
) -> Sale:
    """
    Turn a table's open order into an immutable Sale.

    Raises:
        NotFoundError: table (or given register) missing
        EmptyOrderError: table has no lines
        InsufficientPaymentError: payment short of the table total
        RegisterClosedError: given register is closed
        NoOpenRegisterError: no register given and none open
    """
    cash_paid_cents = require_amount(cash_paid_cents, "cash_paid_cents", allow_zero=True)
    transfer_paid_cents = require_amount(transfer_paid_cents, "transfer_paid_cents", allow_zero=True)

    def _op():
        table = load_table(table_id, for_update=True)
        if not table.lines:
            raise EmptyOrderError(table.id)

        total = table.total_cents
        paid = cash_paid_cents + transfer_paid_cents
        if paid < total:
            raise InsufficientPaymentError(total=total, paid=paid)

        if register_id is not None:
            register = load_register(register_id, for_update=True)
            register.require_open()
        else:
            register = first_open_register(for_update=True)

        credit_cash_locked(register, cash_paid_cents)
        credit_transfer_locked(register, transfer_paid_cents)

        sale = Sale(
            table_id=table.id,
            register_id=register.id,
            table_label=table.label,
            total_cents=total,
            cash_paid_cents=cash_paid_cents,
            transfer_paid_cents=transfer_paid_cents,
            lines_snapshot=dump_order_lines(table.lines),
            user=user,
        )
        db.session.add(sale)
        release_locked(table)
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info(
        "Sale closed id=%s table_id=%s total=%s cash=%s transfer=%s register_id=%s",
        sale.id, table_id, sale.total_cents, cash_paid_cents, transfer_paid_cents, sale.register_id,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(*, start=None, end=None, register_id: int | None = None) -> list[Sale]:
    """Sales newest first; `end` is exclusive."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at < end)
    if register_id is not None:
        query = query.filter(Sale.register_id == register_id)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
