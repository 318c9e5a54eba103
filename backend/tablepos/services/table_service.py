"""
Table and Order Session Service

WHY: A table's open order is where stock is consumed. Every line mutation
moves stock and the table total together, in one transaction, so that at
every commit:
- table.total_cents == sum(line.subtotal_cents)
- product.stock reflects exactly the quantities currently on open orders
- a StockMovement exists for each stock change (OUT when served, RETURN
  when taken back)

LIFECYCLE (per table):
- FREE -> OCCUPIED: first line added (or explicit occupy / seated reservation)
- OCCUPIED -> FREE: last line removed, release after a sale, or cancel_order

release() vs cancel_order():
- release: clears lines WITHOUT returning stock (the sale consumed it)
- cancel_order: returns every line's quantity to stock, then frees the table
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import (
    ConflictError, DuplicateNameError, NotFoundError, TableOccupiedError, ValidationError,
    require_int, require_positive,
)
from ..extensions import db
from ..models import DiningTable, MovementKind, OrderLine, Reservation, TableState
from ..models.enums import ACTIVE_RESERVATION_STATUSES
from .concurrency import lock_for_update, run_in_transaction
from .stock_service import decrease_locked, increase_locked, load_product


# =============================================================================
# LOADING
# =============================================================================

def load_table(table_id: int, *, for_update: bool = False) -> DiningTable:
    query = db.session.query(DiningTable).filter_by(id=table_id)
    if for_update:
        query = lock_for_update(query)
    table = query.first()
    if not table:
        raise NotFoundError("Table", table_id)
    return table


def _load_line(table: DiningTable, line_id: int) -> OrderLine:
    line = table.find_line(line_id)
    if not line:
        raise NotFoundError("OrderLine", line_id)
    return line


def _movement_reason(table: DiningTable) -> str:
    return f"Table {table.label}"


# =============================================================================
# TABLE MANAGEMENT
# =============================================================================

def _validate_number(number) -> int:
    number = require_int(number, "number")
    if number < 1:
        raise ValidationError("number must be at least 1", {"field": "number", "value": number})
    return number


def _validate_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", {"field": "name"})
    if len(name) > 50:
        raise ValidationError("name must be at most 50 characters", {"field": "name"})
    return name


def _ensure_unique_number(number: int, exclude_id: int | None = None) -> None:
    query = db.session.query(DiningTable).filter(DiningTable.number == number)
    if exclude_id is not None:
        query = query.filter(DiningTable.id != exclude_id)
    if query.first():
        raise DuplicateNameError("Table", "number", number)


def create_table(*, number: int, name: str) -> DiningTable:
    """New tables start FREE with a zero total."""
    number = _validate_number(number)
    name = _validate_name(name)

    def _op():
        _ensure_unique_number(number)
        table = DiningTable(number=number, name=name, state=TableState.FREE, total_cents=0)
        db.session.add(table)
        return table
    return run_in_transaction(_op)


def update_table(table_id: int, *, number: int | None = None, name: str | None = None) -> DiningTable:
    """Rename / renumber only; state and total are owned by the order flow."""
    def _op():
        table = load_table(table_id, for_update=True)
        if number is not None:
            new_number = _validate_number(number)
            _ensure_unique_number(new_number, exclude_id=table.id)
            table.number = new_number
        if name is not None:
            table.name = _validate_name(name)
        return table
    return run_in_transaction(_op)


def delete_table(table_id: int) -> None:
    """Fails with TableOccupiedError while occupied; refuses tables with active reservations."""
    def _op():
        table = load_table(table_id, for_update=True)
        if table.state == TableState.OCCUPIED:
            raise TableOccupiedError(table.id)
        reservations = db.session.query(Reservation).filter_by(table_id=table.id).all()
        if any(r.status in ACTIVE_RESERVATION_STATUSES for r in reservations):
            raise ConflictError(
                f"Table {table.id} has active reservations",
                {"table_id": table.id},
            )
        for reservation in reservations:
            db.session.delete(reservation)
        db.session.delete(table)
    run_in_transaction(_op)


def get_table(table_id: int) -> DiningTable:
    return load_table(table_id)


def list_tables(state: TableState | None = None) -> list[DiningTable]:
    query = db.session.query(DiningTable)
    if state is not None:
        query = query.filter(DiningTable.state == state)
    return query.order_by(DiningTable.number).all()


def count_tables(state: TableState | None = None) -> int:
    query = db.session.query(func.count(DiningTable.id))
    if state is not None:
        query = query.filter(DiningTable.state == state)
    return int(query.scalar() or 0)


def occupy_table(table_id: int) -> DiningTable:
    def _op():
        table = load_table(table_id, for_update=True)
        table.occupy()
        return table
    return run_in_transaction(_op)


# =============================================================================
# ORDER LINES
# =============================================================================

def add_line(table_id: int, product_id: int, quantity: int, *, user: str | None = None) -> OrderLine:
    """
    Serve `quantity` of a product at a table.

    Snapshots the product's name and price on the new line, recomputes the
    table total, occupies the table and debits stock (OUT movement).

    Raises:
        NotFoundError: table or product missing
        InvalidQuantityError: quantity <= 0
        InsufficientStockError: product.stock < quantity
    """
    quantity = require_positive(quantity, "quantity")

    def _op():
        table = load_table(table_id, for_update=True)
        product = load_product(product_id, for_update=True)
        decrease_locked(product, quantity, MovementKind.OUT, reason=_movement_reason(table), user=user)
        line = table.add_line(product, quantity)
        return line

    line = run_in_transaction(_op)
    current_app.logger.info(
        "Order line added table_id=%s product_id=%s qty=%s", table_id, product_id, quantity,
    )
    return line


def update_line_quantity(
    table_id: int,
    line_id: int,
    new_quantity: int,
    *,
    user: str | None = None,
) -> OrderLine:
    """
    Change a line's quantity; stock moves by the difference only.

    delta > 0 requires product.stock >= delta (OUT movement);
    delta < 0 returns |delta| to stock (RETURN movement).
    The line keeps its snapshotted unit price.
    """
    new_quantity = require_positive(new_quantity, "quantity")

    def _op():
        table = load_table(table_id, for_update=True)
        line = _load_line(table, line_id)
        delta = new_quantity - line.quantity
        if delta != 0:
            product = load_product(line.product_id, for_update=True)
            if delta > 0:
                decrease_locked(product, delta, MovementKind.OUT, reason=_movement_reason(table), user=user)
            else:
                increase_locked(product, -delta, MovementKind.RETURN, reason=_movement_reason(table), user=user)
            table.change_line_quantity(line, new_quantity)
        return line
    return run_in_transaction(_op)


def remove_line(table_id: int, line_id: int, *, user: str | None = None) -> DiningTable:
    """Take a line back: its quantity returns to stock; an emptied table becomes FREE."""
    def _op():
        table = load_table(table_id, for_update=True)
        line = _load_line(table, line_id)
        product = load_product(line.product_id, for_update=True)
        increase_locked(product, line.quantity, MovementKind.RETURN, reason=_movement_reason(table), user=user)
        table.remove_line(line)
        return table
    return run_in_transaction(_op)


def release_locked(table: DiningTable) -> DiningTable:
    """Clear lines and free the table inside the caller's transaction; stock untouched."""
    table.clear_lines()
    return table


def release_table(table_id: int) -> DiningTable:
    """
    Free a table after its order has been paid.

    Stock is NOT returned: the lines were consumed. Use cancel_order to
    discard an unpaid order.
    """
    def _op():
        table = load_table(table_id, for_update=True)
        return release_locked(table)
    return run_in_transaction(_op)


def cancel_order(table_id: int, *, user: str | None = None) -> DiningTable:
    """Discard an unpaid order: every line's quantity goes back to stock, then the table is freed."""
    def _op():
        table = load_table(table_id, for_update=True)
        for line in list(table.lines):
            product = load_product(line.product_id, for_update=True)
            increase_locked(
                product, line.quantity, MovementKind.RETURN,
                reason=f"Cancelled order - {_movement_reason(table)}", user=user,
            )
        return release_locked(table)

    table = run_in_transaction(_op)
    current_app.logger.info("Order cancelled table_id=%s", table_id)
    return table
