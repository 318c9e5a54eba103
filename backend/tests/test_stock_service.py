# Overview: Pytest coverage for the stock ledger and its audit trail.

import pytest

from tablepos.errors import InsufficientStockError, InvalidQuantityError, NotFoundError
from tablepos.models import MovementKind, StockMovement
from tablepos.services import stock_service


class TestLedgerRules:
    """apply_increase / apply_decrease guard stock on a loaded product."""

    def test_increase_adds_quantity(self, db_session, product):
        before, after = stock_service.apply_increase(product, 5)
        assert (before, after) == (50, 55)
        assert product.stock == 55

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_rejected(self, db_session, product, quantity):
        with pytest.raises(InvalidQuantityError):
            stock_service.apply_increase(product, quantity)
        with pytest.raises(InvalidQuantityError):
            stock_service.apply_decrease(product, quantity)
        assert product.stock == 50

    def test_decrease_to_exactly_zero(self, db_session, product):
        stock_service.apply_decrease(product, 50)
        assert product.stock == 0

    def test_decrease_beyond_stock_reports_available_and_requested(self, db_session, scarce_product):
        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.apply_decrease(scarce_product, 100)
        assert exc_info.value.details == {"available": 5, "requested": 100}
        assert scarce_product.stock == 5


class TestPublicOperations:
    def test_increase_commits_and_records_adjustment(self, db_session, product):
        stock_service.increase(product.id, 7, reason="Found in storage")
        assert product.stock == 57
        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.kind == MovementKind.ADJUST_POSITIVE
        assert (movement.stock_before, movement.stock_after) == (50, 57)

    def test_decrease_failure_leaves_no_movement(self, db_session, scarce_product):
        with pytest.raises(InsufficientStockError):
            stock_service.decrease(scarce_product.id, 6)
        assert scarce_product.stock == 5
        assert db_session.query(StockMovement).count() == 0

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.increase(999, 1)

    def test_register_entry_records_cost(self, db_session, product):
        movement = stock_service.register_entry(product.id, 10, unit_cost_cents=400, document_number="R-1")
        assert movement.kind == MovementKind.IN
        assert movement.total_cost_cents == 4000
        assert product.stock == 60
        assert stock_service.total_entry_cost() == 4000

    def test_register_exit(self, db_session, product):
        movement = stock_service.register_exit(product.id, 3, reason="Broken")
        assert movement.kind == MovementKind.OUT
        assert movement.stock_after == 47

    def test_adjust_up_and_down(self, db_session, product):
        up = stock_service.adjust(product.id, 60, reason="Count")
        assert up.kind == MovementKind.ADJUST_POSITIVE and up.quantity == 10
        down = stock_service.adjust(product.id, 55, reason="Count")
        assert down.kind == MovementKind.ADJUST_NEGATIVE and down.quantity == 5
        assert product.stock == 55

    def test_adjust_to_same_value_rejected(self, db_session, product):
        with pytest.raises(InvalidQuantityError):
            stock_service.adjust(product.id, 50)


class TestMovementQueries:
    def test_filters_by_kind_and_product(self, db_session, product, scarce_product):
        stock_service.register_entry(product.id, 5)
        stock_service.register_exit(product.id, 2)
        stock_service.register_entry(scarce_product.id, 1)

        assert len(stock_service.list_movements(product_id=product.id)) == 2
        entries = stock_service.list_movements(kind=MovementKind.IN)
        assert {m.product_id for m in entries} == {product.id, scarce_product.id}
        assert len(stock_service.latest_movements(limit=1)) == 1

    def test_every_movement_is_consistent_with_its_kind(self, db_session, product):
        stock_service.register_entry(product.id, 5)
        stock_service.register_exit(product.id, 2)
        stock_service.adjust(product.id, 40)
        for movement in stock_service.list_movements():
            assert movement.stock_after == movement.stock_before + movement.kind.sign * movement.quantity
