"""
Product Catalog Service

WHY: Products are referenced by order lines, purchase lines and stock
movements, so names are unique and deletion is refused once a product has
any history.

Stock is never set directly here; the initial stock of a new product is
written through the stock ledger so the audit trail starts at zero.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import ConflictError, DuplicateNameError, NotFoundError, ValidationError, require_amount, require_int
from ..extensions import db
from ..models import MovementKind, OrderLine, Product, PurchaseLine, StockMovement
from .concurrency import run_in_transaction
from .stock_service import increase_locked, load_product


def _clean_name(value, field: str, max_length: int) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{field} is required", {"field": field})
    if len(name) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", {"field": field})
    return name


def _validate_min_stock(value) -> int:
    min_stock = require_int(value, "min_stock")
    if min_stock < 0:
        raise ValidationError("min_stock cannot be negative", {"field": "min_stock"})
    return min_stock


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(func.lower(Product.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise DuplicateNameError("Product", "name", name)


def create_product(
    *,
    name: str,
    category: str,
    price_cents: int,
    stock: int = 0,
    min_stock: int | None = None,
    user: str | None = None,
) -> Product:
    name = _clean_name(name, "name", 100)
    category = _clean_name(category, "category", 50)
    price_cents = require_amount(price_cents, "price_cents")
    stock = require_int(stock, "stock") if stock is not None else 0
    if stock < 0:
        raise ValidationError("stock cannot be negative", {"field": "stock", "value": stock})
    if min_stock is None:
        min_stock = current_app.config.get("DEFAULT_MIN_STOCK", 10)
    min_stock = _validate_min_stock(min_stock)

    def _op():
        _ensure_unique_name(name)
        product = Product(name=name, category=category, price_cents=price_cents, stock=0, min_stock=min_stock)
        db.session.add(product)
        db.session.flush()
        if stock > 0:
            increase_locked(product, stock, MovementKind.ADJUST_POSITIVE, reason="Initial stock", user=user)
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product created id=%s name=%r stock=%s", product.id, product.name, product.stock)
    return product


def update_product(
    product_id: int,
    *,
    name: str | None = None,
    category: str | None = None,
    price_cents: int | None = None,
    min_stock: int | None = None,
) -> Product:
    """Change catalog fields; stock is only changed through stock_service."""
    def _op():
        product = load_product(product_id, for_update=True)
        if name is not None:
            new_name = _clean_name(name, "name", 100)
            _ensure_unique_name(new_name, exclude_id=product.id)
            product.name = new_name
        if category is not None:
            product.category = _clean_name(category, "category", 50)
        if price_cents is not None:
            product.price_cents = require_amount(price_cents, "price_cents")
        if min_stock is not None:
            product.min_stock = _validate_min_stock(min_stock)
        return product
    return run_in_transaction(_op)


def delete_product(product_id: int) -> None:
    def _op():
        product = load_product(product_id, for_update=True)
        for model, label in ((OrderLine, "order lines"), (PurchaseLine, "purchase lines"), (StockMovement, "stock movements")):
            if db.session.query(model).filter_by(product_id=product.id).first():
                raise ConflictError(
                    f"Product {product.id} is referenced by {label} and cannot be deleted",
                    {"product_id": product.id, "referenced_by": label},
                )
        db.session.delete(product)
    run_in_transaction(_op)


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def list_products(category: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    return query.order_by(Product.name).all()


def search_products(term: str) -> list[Product]:
    pattern = f"%{(term or '').strip()}%"
    return db.session.query(Product).filter(Product.name.ilike(pattern)).order_by(Product.name).all()


def list_categories() -> list[str]:
    rows = db.session.query(Product.category).distinct().order_by(Product.category).all()
    return [row[0] for row in rows]


def low_stock_products() -> list[Product]:
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 20)
    return db.session.query(Product).filter(Product.stock < threshold).order_by(Product.stock, Product.name).all()


def critical_stock_products() -> list[Product]:
    threshold = current_app.config.get("CRITICAL_STOCK_THRESHOLD", 10)
    return db.session.query(Product).filter(Product.stock < threshold).order_by(Product.stock, Product.name).all()
