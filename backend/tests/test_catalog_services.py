# Overview: Pytest coverage for products, suppliers and discounts.

from datetime import datetime, timedelta

import pytest

from tablepos.errors import ConflictError, DuplicateNameError, NotFoundError, ValidationError
from tablepos.models import DiscountKind, MovementKind, StockMovement
from tablepos.services import discount_service, product_service, supplier_service, table_service


class TestProducts:
    def test_initial_stock_goes_through_the_ledger(self, db_session):
        product = product_service.create_product(name="Agua", category="Drinks", price_cents=1200, stock=24)
        assert product.stock == 24
        assert product.min_stock == 10
        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.kind == MovementKind.ADJUST_POSITIVE
        assert (movement.stock_before, movement.stock_after) == (0, 24)
        assert movement.reason == "Initial stock"

    def test_without_stock_no_movement(self, db_session):
        product_service.create_product(name="Flan", category="Desserts", price_cents=2000)
        assert db_session.query(StockMovement).count() == 0

    def test_duplicate_name_case_insensitive(self, db_session, product):
        with pytest.raises(DuplicateNameError):
            product_service.create_product(name="cola 500ML", category="Drinks", price_cents=100)

    @pytest.mark.parametrize("fields", [
        {"name": "", "category": "Drinks", "price_cents": 100},
        {"name": "Tea", "category": "", "price_cents": 100},
        {"name": "Tea", "category": "Drinks", "price_cents": -1},
        {"name": "Tea", "category": "Drinks", "price_cents": 100, "stock": -1},
    ])
    def test_invalid_fields(self, db_session, fields):
        with pytest.raises(ValidationError):
            product_service.create_product(**fields)

    @pytest.mark.parametrize("field,value", [("stock", 2.5), ("stock", True), ("min_stock", 1.5), ("price_cents", 99.9)])
    def test_fractional_numbers_rejected(self, db_session, field, value):
        fields = {"name": "Tea", "category": "Drinks", "price_cents": 100, field: value}
        with pytest.raises(ValidationError):
            product_service.create_product(**fields)
        assert product_service.list_products() == []
        assert db_session.query(StockMovement).count() == 0

    def test_whole_float_stock_accepted(self, db_session):
        assert product_service.create_product(name="Tea", category="Drinks", price_cents=100, stock=12.0).stock == 12

    def test_update_keeps_stock(self, db_session, product):
        updated = product_service.update_product(product.id, name="Cola 1L", price_cents=4500, min_stock=5)
        assert (updated.name, updated.price_cents, updated.min_stock, updated.stock) == ("Cola 1L", 4500, 5, 50)

    def test_delete_unreferenced(self, db_session, product):
        product_service.delete_product(product.id)
        with pytest.raises(NotFoundError):
            product_service.get_product(product.id)

    def test_delete_referenced_refused(self, db_session, product, table1):
        table_service.add_line(table1.id, product.id, 1)
        with pytest.raises(ConflictError):
            product_service.delete_product(product.id)
        assert product_service.get_product(product.id).name == "Cola 500ml"

    def test_queries_and_alerts(self, db_session, product, scarce_product):
        assert [p.name for p in product_service.list_products()] == ["Cola 500ml", "Empanada"]
        assert [p.name for p in product_service.list_products("Food")] == ["Empanada"]
        assert [p.name for p in product_service.search_products("cola")] == ["Cola 500ml"]
        assert product_service.list_categories() == ["Drinks", "Food"]
        assert [p.name for p in product_service.low_stock_products()] == ["Empanada"]
        assert [p.name for p in product_service.critical_stock_products()] == ["Empanada"]
        assert scarce_product.is_low_stock()


class TestSuppliers:
    def test_create_update_search(self, db_session, supplier):
        other = supplier_service.create_supplier(name="Bebidas Norte", email="ventas@norte.test")
        supplier_service.update_supplier(supplier.id, phone="555-0199")
        assert supplier_service.get_supplier(supplier.id).phone == "555-0199"
        assert [s.name for s in supplier_service.search_suppliers("norte")] == [other.name]

    def test_duplicate_name(self, db_session, supplier):
        with pytest.raises(DuplicateNameError):
            supplier_service.create_supplier(name="distribuidora sur")

    def test_toggle_and_active_filter(self, db_session, supplier):
        supplier_service.create_supplier(name="Bebidas Norte")
        supplier_service.toggle_active(supplier.id)
        assert [s.name for s in supplier_service.list_suppliers(active_only=True)] == ["Bebidas Norte"]
        assert len(supplier_service.list_suppliers()) == 2

    def test_delete_without_purchases(self, db_session, supplier):
        supplier_service.delete_supplier(supplier.id)
        with pytest.raises(NotFoundError):
            supplier_service.get_supplier(supplier.id)


class TestDiscounts:
    def test_percentage_and_fixed_amounts(self, db_session):
        ten = discount_service.create_discount(name="Happy hour", kind="percentage", value=10)
        fixed = discount_service.create_discount(
            name="Big table", kind=DiscountKind.FIXED_AMOUNT, value=5000, min_purchase_cents=20000,
        )
        assert ten.amount_for(12345) == 1234
        assert fixed.amount_for(19999) == 0
        assert fixed.apply(30000) == 25000

    def test_fixed_amount_never_exceeds_total(self, db_session):
        fixed = discount_service.create_discount(name="Voucher", kind="fixed_amount", value=5000)
        assert fixed.apply(3000) == 0

    def test_percentage_over_100_rejected(self, db_session):
        with pytest.raises(ValidationError):
            discount_service.create_discount(name="Bad", kind="percentage", value=150)

    def test_window_must_be_ordered(self, db_session):
        now = datetime(2024, 5, 1, 12, 0)
        with pytest.raises(ValidationError):
            discount_service.create_discount(name="Bad", kind="percentage", value=5, starts_at=now, ends_at=now)

    def test_best_discount_respects_validity(self, db_session):
        now = datetime(2024, 5, 1, 12, 0)
        discount_service.create_discount(name="Five", kind="percentage", value=5)
        big = discount_service.create_discount(name="Twenty", kind="percentage", value=20)
        expired = discount_service.create_discount(
            name="Thirty", kind="percentage", value=30,
            starts_at=now - timedelta(days=10), ends_at=now - timedelta(days=1),
        )
        assert discount_service.best_discount_for(10000, now=now).id == big.id

        discount_service.toggle_active(big.id)
        assert discount_service.best_discount_for(10000, now=now).name == "Five"
        assert expired.id not in [d.id for d in discount_service.list_valid(now)]

    def test_nothing_applies(self, db_session):
        discount_service.create_discount(name="Min", kind="fixed_amount", value=100, min_purchase_cents=5000)
        assert discount_service.best_discount_for(1000) is None

    def test_update_and_delete(self, db_session):
        discount = discount_service.create_discount(name="Five", kind="percentage", value=5)
        updated = discount_service.update_discount(discount.id, value=15, description="Lunch")
        assert (updated.value, updated.description) == (15, "Lunch")
        with pytest.raises(ValidationError):
            discount_service.update_discount(discount.id, colour="red")
        discount_service.delete_discount(discount.id)
        assert discount_service.list_discounts() == []
