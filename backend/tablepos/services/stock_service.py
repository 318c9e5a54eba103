"""
Stock Ledger Service

WHY: Product stock is shared by every table, purchase and manual count.
This module is the only place that changes Product.stock.

DESIGN PRINCIPLES:
- Stock never goes negative (InsufficientStockError before any mutation)
- Quantities must be positive (InvalidQuantityError)
- Every change writes one StockMovement with stock before/after, so the
  audit trail covers sales, returns, purchases and manual adjustments alike

LAYERS:
- apply_increase / apply_decrease: pure ledger rules on a loaded Product,
  used inside other services' transactions
- record_movement: appends the audit row
- increase / decrease / register_entry / register_exit / adjust: public
  operations, each its own transaction
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import (
    InsufficientStockError, InvalidQuantityError, NotFoundError, require_amount, require_int, require_positive,
)
from ..extensions import db
from ..models import MovementKind, Product, StockMovement
from .concurrency import lock_for_update, run_in_transaction


# =============================================================================
# LEDGER RULES (no commit)
# =============================================================================

def load_product(product_id: int, *, for_update: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if for_update:
        query = lock_for_update(query)
    product = query.first()
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def apply_increase(product: Product, quantity: int) -> tuple[int, int]:
    """Add quantity to stock. Returns (stock_before, stock_after)."""
    quantity = require_positive(quantity, "quantity")
    before = product.stock
    product.stock = before + quantity
    return before, product.stock


def apply_decrease(product: Product, quantity: int) -> tuple[int, int]:
    """Remove quantity from stock. Returns (stock_before, stock_after)."""
    quantity = require_positive(quantity, "quantity")
    before = product.stock
    if before < quantity:
        raise InsufficientStockError(available=before, requested=quantity, product_name=product.name)
    product.stock = before - quantity
    return before, product.stock


def record_movement(
    product: Product,
    kind: MovementKind,
    quantity: int,
    stock_before: int,
    stock_after: int,
    *,
    unit_cost_cents: int | None = None,
    reason: str | None = None,
    document_number: str | None = None,
    user: str | None = None,
) -> StockMovement:
    movement = StockMovement(
        product=product,
        kind=kind,
        quantity=quantity,
        stock_before=stock_before,
        stock_after=stock_after,
        unit_cost_cents=unit_cost_cents,
        total_cost_cents=unit_cost_cents * quantity if unit_cost_cents is not None else None,
        reason=reason,
        document_number=document_number,
        user=user,
    )
    db.session.add(movement)
    return movement


def increase_locked(product: Product, quantity: int, kind: MovementKind, **movement_fields) -> StockMovement:
    before, after = apply_increase(product, quantity)
    return record_movement(product, kind, quantity, before, after, **movement_fields)


def decrease_locked(product: Product, quantity: int, kind: MovementKind, **movement_fields) -> StockMovement:
    before, after = apply_decrease(product, quantity)
    return record_movement(product, kind, quantity, before, after, **movement_fields)


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def increase(
    product_id: int,
    quantity: int,
    *,
    kind: MovementKind = MovementKind.ADJUST_POSITIVE,
    reason: str | None = None,
    user: str | None = None,
) -> Product:
    """Add stock to a product; always succeeds for a positive quantity."""
    def _op():
        product = load_product(product_id, for_update=True)
        increase_locked(product, quantity, kind, reason=reason, user=user)
        return product
    return run_in_transaction(_op)


def decrease(
    product_id: int,
    quantity: int,
    *,
    kind: MovementKind = MovementKind.ADJUST_NEGATIVE,
    reason: str | None = None,
    user: str | None = None,
) -> Product:
    """Remove stock from a product; fails with InsufficientStockError if it would go negative."""
    def _op():
        product = load_product(product_id, for_update=True)
        decrease_locked(product, quantity, kind, reason=reason, user=user)
        return product
    return run_in_transaction(_op)


def register_entry(
    product_id: int,
    quantity: int,
    *,
    unit_cost_cents: int | None = None,
    reason: str | None = None,
    document_number: str | None = None,
    user: str | None = None,
) -> StockMovement:
    """Manual goods-in outside a purchase (e.g. transfer from another site)."""
    quantity = require_positive(quantity, "quantity")
    if unit_cost_cents is not None:
        unit_cost_cents = require_amount(unit_cost_cents, "unit_cost_cents")

    def _op():
        product = load_product(product_id, for_update=True)
        return increase_locked(
            product, quantity, MovementKind.IN,
            unit_cost_cents=unit_cost_cents, reason=reason,
            document_number=document_number, user=user,
        )
    return run_in_transaction(_op)


def register_exit(
    product_id: int,
    quantity: int,
    *,
    reason: str | None = None,
    user: str | None = None,
) -> StockMovement:
    """Manual goods-out (waste, breakage, staff meal)."""
    quantity = require_positive(quantity, "quantity")

    def _op():
        product = load_product(product_id, for_update=True)
        return decrease_locked(product, quantity, MovementKind.OUT, reason=reason, user=user)
    return run_in_transaction(_op)


def adjust(product_id: int, new_stock: int, *, reason: str | None = None, user: str | None = None) -> StockMovement:
    """
    Set stock to a counted value.

    The difference is written as ADJUST_POSITIVE or ADJUST_NEGATIVE;
    a count equal to the current stock is rejected (nothing to record).
    """
    new_stock = require_int(new_stock, "new_stock")
    if new_stock < 0:
        raise InvalidQuantityError("new_stock", new_stock)

    def _op():
        product = load_product(product_id, for_update=True)
        difference = new_stock - product.stock
        if difference == 0:
            raise InvalidQuantityError("difference", 0)
        if difference > 0:
            return increase_locked(product, difference, MovementKind.ADJUST_POSITIVE, reason=reason, user=user)
        return decrease_locked(product, -difference, MovementKind.ADJUST_NEGATIVE, reason=reason, user=user)
    return run_in_transaction(_op)


# =============================================================================
# QUERIES
# =============================================================================

def list_movements(
    *,
    product_id: int | None = None,
    kind: MovementKind | None = None,
    start=None,
    end=None,
    limit: int | None = None,
) -> list[StockMovement]:
    """Movements newest first, optionally filtered; `end` is exclusive."""
    query = db.session.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if kind is not None:
        query = query.filter(StockMovement.kind == kind)
    if start is not None:
        query = query.filter(StockMovement.occurred_at >= start)
    if end is not None:
        query = query.filter(StockMovement.occurred_at < end)
    query = query.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def latest_movements(limit: int = 10) -> list[StockMovement]:
    return list_movements(limit=limit)


def total_entry_cost(start=None, end=None) -> int:
    """Sum of total_cost_cents for IN movements in [start, end)."""
    query = db.session.query(func.coalesce(func.sum(StockMovement.total_cost_cents), 0)).filter(
        StockMovement.kind == MovementKind.IN
    )
    if start is not None:
        query = query.filter(StockMovement.occurred_at >= start)
    if end is not None:
        query = query.filter(StockMovement.occurred_at < end)
    return int(query.scalar() or 0)
