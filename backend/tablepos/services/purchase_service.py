"""
Purchase Intake Service

WHY: Deliveries are the only regular source of new stock. Each purchase
line raises stock once and leaves an IN movement carrying the unit cost,
so inventory value can be traced back to supplier documents.

ATOMICITY: the purchase, its lines, the stock increases and the movements
commit together. Any invalid line (unknown product, non-positive quantity
or cost) aborts the whole purchase.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, SupplierInactiveError, ValidationError, require_amount, require_positive
from ..extensions import db
from ..models import MovementKind, Purchase, PurchasePaymentMethod, Supplier
from ..models.enums import coerce_enum
from .concurrency import run_in_transaction
from .stock_service import increase_locked, load_product


@dataclass(frozen=True)
class PurchaseLineInput:
    product_id: int
    quantity: int
    unit_cost_cents: int

    @classmethod
    def from_dict(cls, data: dict) -> "PurchaseLineInput":
        try:
            return cls(
                product_id=int(data["product_id"]),
                quantity=data["quantity"],
                unit_cost_cents=data["unit_cost_cents"],
            )
        except (KeyError, TypeError, ValueError):
            raise ValidationError(
                "Each line needs product_id, quantity and unit_cost_cents",
                {"line": data},
            )


def register_purchase(
    *,
    supplier_id: int,
    document_number: str,
    delivery_date: date,
    payment_method: PurchasePaymentMethod | str,
    lines: list[PurchaseLineInput],
    notes: str | None = None,
    user: str | None = None,
) -> Purchase:
    """
    Record a supplier delivery and raise stock for each line.

    Raises:
        NotFoundError: supplier or any product missing
        SupplierInactiveError: supplier deactivated
        InvalidQuantityError: quantity or unit cost <= 0
        ValidationError: no lines, missing document number / delivery date
    """
    document_number = (document_number or "").strip()
    if not document_number:
        raise ValidationError("document_number is required", {"field": "document_number"})
    if delivery_date is None:
        raise ValidationError("delivery_date is required", {"field": "delivery_date"})
    payment_method = coerce_enum(PurchasePaymentMethod, payment_method, "payment_method")
    if not lines:
        raise ValidationError("A purchase needs at least one line", {"field": "lines"})
    lines = [
        PurchaseLineInput(
            product_id=line.product_id,
            quantity=require_positive(line.quantity, "quantity"),
            unit_cost_cents=require_amount(line.unit_cost_cents, "unit_cost_cents"),
        )
        for line in lines
    ]

    def _op():
        supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        if not supplier.is_active:
            raise SupplierInactiveError(supplier.id)

        purchase = Purchase(
            supplier=supplier,
            document_number=document_number,
            delivery_date=delivery_date,
            payment_method=payment_method,
            notes=notes,
            user=user,
        )
        db.session.add(purchase)

        reason = f"Purchase #{document_number} - {supplier.name}"
        for line in lines:
            product = load_product(line.product_id, for_update=True)
            purchase.add_line(product, line.quantity, line.unit_cost_cents)
            increase_locked(
                product, line.quantity, MovementKind.IN,
                unit_cost_cents=line.unit_cost_cents, reason=reason,
                document_number=document_number, user=user,
            )
        purchase.recalculate_total()
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info(
        "Purchase registered id=%s document=%s supplier_id=%s total=%s lines=%s",
        purchase.id, document_number, supplier_id, purchase.total_cents, len(lines),
    )
    return purchase


# =============================================================================
# QUERIES
# =============================================================================

def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.query(Purchase).filter_by(id=purchase_id).first()
    if not purchase:
        raise NotFoundError("Purchase", purchase_id)
    return purchase


def list_purchases(
    *,
    supplier_id: int | None = None,
    payment_method=None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = None,
) -> list[Purchase]:
    """Newest first; delivery date range is inclusive on both ends."""
    query = db.session.query(Purchase)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if payment_method is not None:
        query = query.filter(
            Purchase.payment_method == coerce_enum(PurchasePaymentMethod, payment_method, "payment_method")
        )
    if start_date is not None:
        query = query.filter(Purchase.delivery_date >= start_date)
    if end_date is not None:
        query = query.filter(Purchase.delivery_date <= end_date)
    query = query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def latest_purchases(limit: int = 10) -> list[Purchase]:
    return list_purchases(limit=limit)


def search_by_document(term: str) -> list[Purchase]:
    pattern = f"%{(term or '').strip()}%"
    return (
        db.session.query(Purchase)
        .filter(Purchase.document_number.ilike(pattern))
        .order_by(Purchase.created_at.desc())
        .all()
    )


def total_purchased(start_date: date | None = None, end_date: date | None = None) -> int:
    query = db.session.query(func.coalesce(func.sum(Purchase.total_cents), 0))
    if start_date is not None:
        query = query.filter(Purchase.delivery_date >= start_date)
    if end_date is not None:
        query = query.filter(Purchase.delivery_date <= end_date)
    return int(query.scalar() or 0)
