"""
Supplier Service

Suppliers feed PurchaseIntake. Names are unique (case-insensitive);
deactivation is preferred over deletion once purchases exist.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConflictError, DuplicateNameError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Purchase, Supplier
from .concurrency import run_in_transaction


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Supplier).filter(func.lower(Supplier.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise DuplicateNameError("Supplier", "name", name)


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", {"field": "name"})
    if len(name) > 100:
        raise ValidationError("name must be at most 100 characters", {"field": "name"})
    return name


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def create_supplier(*, name: str, phone: str | None = None, email: str | None = None) -> Supplier:
    name = _clean_name(name)

    def _op():
        _ensure_unique_name(name)
        supplier = Supplier(name=name, phone=phone, email=email, is_active=True)
        db.session.add(supplier)
        return supplier
    return run_in_transaction(_op)


def update_supplier(
    supplier_id: int,
    *,
    name: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> Supplier:
    def _op():
        supplier = get_supplier(supplier_id)
        if name is not None:
            new_name = _clean_name(name)
            _ensure_unique_name(new_name, exclude_id=supplier.id)
            supplier.name = new_name
        if phone is not None:
            supplier.phone = phone
        if email is not None:
            supplier.email = email
        return supplier
    return run_in_transaction(_op)


def toggle_active(supplier_id: int) -> Supplier:
    def _op():
        supplier = get_supplier(supplier_id)
        supplier.is_active = not supplier.is_active
        return supplier
    return run_in_transaction(_op)


def delete_supplier(supplier_id: int) -> None:
    def _op():
        supplier = get_supplier(supplier_id)
        if db.session.query(Purchase).filter_by(supplier_id=supplier.id).first():
            raise ConflictError(
                f"Supplier {supplier.id} has purchases; deactivate it instead",
                {"supplier_id": supplier.id},
            )
        db.session.delete(supplier)
    run_in_transaction(_op)


def list_suppliers(*, active_only: bool = False) -> list[Supplier]:
    query = db.session.query(Supplier)
    if active_only:
        query = query.filter(Supplier.is_active.is_(True))
    return query.order_by(Supplier.name).all()


def search_suppliers(term: str) -> list[Supplier]:
    pattern = f"%{(term or '').strip()}%"
    return db.session.query(Supplier).filter(Supplier.name.ilike(pattern)).order_by(Supplier.name).all()
