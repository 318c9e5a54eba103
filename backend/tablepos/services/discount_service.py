"""
Discount Service

Whole-ticket discounts: a percentage or a fixed amount, gated by a minimum
purchase, an active flag and an optional validity window.
best_discount_for() picks the discount with the largest reduction for a
given total; applying a discount never takes a total below zero.
"""

from __future__ import annotations

from datetime import datetime

from ..errors import NotFoundError, ValidationError, require_amount
from ..extensions import db
from ..models import Discount, DiscountKind
from ..models.enums import coerce_enum
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction


def _validate_value(kind: DiscountKind, value) -> int:
    value = require_amount(value, "value")
    if kind == DiscountKind.PERCENTAGE and value > 100:
        raise ValidationError("Percentage discounts must be between 1 and 100", {"field": "value", "value": value})
    return value


def _validate_window(starts_at: datetime | None, ends_at: datetime | None) -> None:
    if starts_at and ends_at and ends_at <= starts_at:
        raise ValidationError("ends_at must be after starts_at", {"field": "ends_at"})


def load_discount(discount_id: int, *, for_update: bool = False) -> Discount:
    query = db.session.query(Discount).filter_by(id=discount_id)
    if for_update:
        query = lock_for_update(query)
    discount = query.first()
    if not discount:
        raise NotFoundError("Discount", discount_id)
    return discount


def create_discount(
    *,
    name: str,
    kind: DiscountKind | str,
    value: int,
    min_purchase_cents: int = 0,
    description: str | None = None,
    starts_at: datetime | None = None,
    ends_at: datetime | None = None,
    is_active: bool = True,
) -> Discount:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", {"field": "name"})
    kind = coerce_enum(DiscountKind, kind, "kind")
    value = _validate_value(kind, value)
    min_purchase_cents = require_amount(min_purchase_cents, "min_purchase_cents", allow_zero=True)
    _validate_window(starts_at, ends_at)

    def _op():
        discount = Discount(
            name=name,
            description=description,
            kind=kind,
            value=value,
            min_purchase_cents=min_purchase_cents,
            starts_at=starts_at,
            ends_at=ends_at,
            is_active=is_active,
        )
        db.session.add(discount)
        return discount
    return run_in_transaction(_op)


def update_discount(discount_id: int, **changes) -> Discount:
    """Accepts the same fields as create_discount; omitted fields are kept."""
    allowed = {"name", "description", "kind", "value", "min_purchase_cents", "starts_at", "ends_at", "is_active"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}", {"fields": sorted(unknown)})

    def _op():
        discount = load_discount(discount_id, for_update=True)
        kind = coerce_enum(DiscountKind, changes.get("kind", discount.kind), "kind")
        value = _validate_value(kind, changes.get("value", discount.value))
        starts_at = changes.get("starts_at", discount.starts_at)
        ends_at = changes.get("ends_at", discount.ends_at)
        _validate_window(starts_at, ends_at)

        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("name is required", {"field": "name"})
            discount.name = name
        if "description" in changes:
            discount.description = changes["description"]
        if "min_purchase_cents" in changes:
            discount.min_purchase_cents = require_amount(
                changes["min_purchase_cents"], "min_purchase_cents", allow_zero=True,
            )
        if "is_active" in changes:
            discount.is_active = bool(changes["is_active"])
        discount.kind = kind
        discount.value = value
        discount.starts_at = starts_at
        discount.ends_at = ends_at
        return discount
    return run_in_transaction(_op)


def toggle_active(discount_id: int) -> Discount:
    def _op():
        discount = load_discount(discount_id, for_update=True)
        discount.is_active = not discount.is_active
        return discount
    return run_in_transaction(_op)


def delete_discount(discount_id: int) -> None:
    def _op():
        db.session.delete(load_discount(discount_id))
    run_in_transaction(_op)


def list_discounts() -> list[Discount]:
    return db.session.query(Discount).order_by(Discount.name).all()


def list_valid(now: datetime | None = None) -> list[Discount]:
    moment = now or utcnow()
    candidates = db.session.query(Discount).filter(Discount.is_active.is_(True)).order_by(Discount.name).all()
    return [d for d in candidates if d.is_valid_at(moment)]


def best_discount_for(total_cents: int, now: datetime | None = None) -> Discount | None:
    """Valid discount with the largest reduction for total_cents, or None if nothing applies."""
    best = None
    best_amount = 0
    for discount in list_valid(now):
        amount = discount.amount_for(total_cents)
        if amount > best_amount:
            best, best_amount = discount, amount
    return best
