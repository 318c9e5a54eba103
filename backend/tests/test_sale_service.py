# Overview: Pytest coverage for closing a table into a sale.

import pytest

from tablepos.errors import (
    EmptyOrderError, InsufficientPaymentError, NoOpenRegisterError, NotFoundError, RegisterClosedError,
    ValidationError,
)
from tablepos.models import OrderLine, Sale, TableState
from tablepos.services import register_service, sale_service, table_service


@pytest.fixture
def served_table(db_session, table1, product):
    """Table 1 with 3 colas: total 9000."""
    table_service.add_line(table1.id, product.id, 3)
    return table1


class TestCloseTable:
    def test_cash_sale_credits_register_and_frees_table(self, db_session, served_table, open_register, product):
        """Float 100000, pay 9000 cash on a 9000 table -> cash 109000, table free, sale 9000."""
        sale = sale_service.close_table(served_table.id, cash_paid_cents=9000, transfer_paid_cents=0)

        assert open_register.cash_cents == 109000
        assert open_register.transfer_cents == 0
        assert sale.total_cents == 9000
        assert sale.register_id == open_register.id
        assert sale.table_label == "1 - Window"

        table = table_service.get_table(served_table.id)
        assert table.state == TableState.FREE
        assert table.lines == []
        assert table.total_cents == 0
        # Stock was consumed when the lines were added, not again at closure
        assert product.stock == 47

    def test_snapshot_preserves_lines(self, db_session, served_table, open_register):
        sale = sale_service.close_table(served_table.id, cash_paid_cents=10000)
        assert sale.lines == [{
            "product_id": sale.lines[0]["product_id"],
            "product_name": "Cola 500ml",
            "product_category": "Drinks",
            "quantity": 3,
            "unit_price_cents": 3000,
            "subtotal_cents": 9000,
        }]
        assert sale.change_cents == 1000
        assert db_session.query(OrderLine).count() == 0

    def test_split_payment(self, db_session, served_table, open_register):
        sale_service.close_table(served_table.id, cash_paid_cents=4000, transfer_paid_cents=5000)
        assert open_register.cash_cents == 104000
        assert open_register.transfer_cents == 5000

    def test_insufficient_payment_changes_nothing(self, db_session, served_table, open_register, product):
        with pytest.raises(InsufficientPaymentError) as exc_info:
            sale_service.close_table(served_table.id, cash_paid_cents=5000, transfer_paid_cents=3999)

        assert exc_info.value.details == {"total": 9000, "paid": 8999}
        assert open_register.cash_cents == 100000
        assert open_register.transfer_cents == 0
        table = table_service.get_table(served_table.id)
        assert table.state == TableState.OCCUPIED
        assert table.total_cents == 9000
        assert len(table.lines) == 1
        assert product.stock == 47
        assert db_session.query(Sale).count() == 0

    def test_empty_table(self, db_session, table1, open_register):
        with pytest.raises(EmptyOrderError):
            sale_service.close_table(table1.id, cash_paid_cents=0)

    def test_missing_table(self, db_session, open_register):
        with pytest.raises(NotFoundError):
            sale_service.close_table(404, cash_paid_cents=100)

    def test_no_open_register(self, db_session, served_table):
        with pytest.raises(NoOpenRegisterError):
            sale_service.close_table(served_table.id, cash_paid_cents=9000)
        assert table_service.get_table(served_table.id).state == TableState.OCCUPIED

    def test_explicit_closed_register(self, db_session, served_table, open_register):
        register_service.close_register(open_register.id)
        with pytest.raises(RegisterClosedError):
            sale_service.close_table(served_table.id, cash_paid_cents=9000, register_id=open_register.id)
        assert table_service.get_table(served_table.id).state == TableState.OCCUPIED
        assert db_session.query(Sale).count() == 0

    def test_explicit_register_is_used(self, db_session, served_table, open_register):
        second = register_service.open_register(register_number=2, shift="NIGHT", opening_float_cents=0)
        sale = sale_service.close_table(served_table.id, transfer_paid_cents=9000, register_id=second.id)
        assert sale.register_id == second.id
        assert second.transfer_cents == 9000
        assert open_register.transfer_cents == 0

    def test_negative_payment_rejected(self, db_session, served_table, open_register):
        with pytest.raises(ValidationError):
            sale_service.close_table(served_table.id, cash_paid_cents=-1, transfer_paid_cents=10000)


class TestSaleQueries:
    def test_list_and_get(self, db_session, served_table, open_register, product):
        first = sale_service.close_table(served_table.id, cash_paid_cents=9000)
        table_service.add_line(served_table.id, product.id, 1)
        second = sale_service.close_table(served_table.id, cash_paid_cents=3000)

        assert [s.id for s in sale_service.list_sales()] == [second.id, first.id]
        assert sale_service.get_sale(first.id).total_cents == 9000
        assert len(sale_service.list_sales(register_id=open_register.id)) == 2
        with pytest.raises(NotFoundError):
            sale_service.get_sale(first.id + 100)


class TestPaymentAmounts:
    @pytest.mark.parametrize("field", ["cash_paid_cents", "transfer_paid_cents"])
    def test_fractional_payment_rejected(self, db_session, served_table, open_register, field):
        with pytest.raises(ValidationError):
            sale_service.close_table(served_table.id, **{field: 9000.99})
        assert open_register.cash_cents == 100000
        assert open_register.transfer_cents == 0
        assert table_service.get_table(served_table.id).state == TableState.OCCUPIED
        assert db_session.query(Sale).count() == 0
