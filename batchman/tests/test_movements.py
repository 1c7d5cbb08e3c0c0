"""
Tests for manual stock movements (receive, issue, adjust).
"""

from decimal import Decimal

import pytest

from batchman import StockError, ledger
from batchman.models import AuditAction, AuditEntry, Direction, ReferenceType


pytestmark = pytest.mark.django_db


class TestReceive:
    """Tests for ledger.receive()."""

    def test_receive_increments_level_and_total(self, product, warehouse_x):
        move = ledger.receive(Decimal('50'), product, warehouse_x)

        assert move.direction == Direction.IN
        assert move.reference_type == ReferenceType.MANUAL
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('50')
        assert ledger.get_product_total(product) == Decimal('50')

    def test_receive_by_location_code(self, product, warehouse_x):
        ledger.receive(Decimal('5'), product, 'deposito-x')

        assert ledger.get_stock_level(product, 'deposito-x') == Decimal('5')

    def test_receive_invalid_quantity(self, product, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.receive(Decimal('0'), product, warehouse_x)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_receive_coerces_float_and_str(self, product, warehouse_x):
        ledger.receive(2.5, product, warehouse_x)
        ledger.receive('1.25', product, warehouse_x)
        ledger.issue(1, product, warehouse_x)

        assert ledger.get_stock_level(product, warehouse_x) == Decimal('2.75')
        assert ledger.get_product_total(product) == Decimal('2.75')

    @pytest.mark.parametrize('quantity', ['abc', None, True])
    def test_receive_rejects_non_numeric(self, product, warehouse_x, quantity):
        with pytest.raises(StockError) as exc:
            ledger.receive(quantity, product, warehouse_x)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_receive_audited(self, product, warehouse_x, user):
        ledger.receive(Decimal('5'), product, warehouse_x, user=user)

        entry = AuditEntry.objects.get(action=AuditAction.STOCK_RECEIVED)
        assert entry.entity_type == 'stockmovement'
        assert entry.after['location'] == 'deposito-x'


class TestIssue:
    """Tests for ledger.issue()."""

    def test_issue_decrements(self, product, warehouse_x):
        ledger.receive(Decimal('50'), product, warehouse_x)

        move = ledger.issue(Decimal('20'), product, warehouse_x, reference_id=42)

        assert move.direction == Direction.OUT
        assert move.reference_type == ReferenceType.SALE
        assert move.reference_id == 42
        assert (move.previous_quantity, move.new_quantity) == (Decimal('50'), Decimal('30'))
        assert ledger.get_product_total(product) == Decimal('30')

    def test_issue_insufficient(self, product, warehouse_x):
        ledger.receive(Decimal('10'), product, warehouse_x)

        with pytest.raises(StockError) as exc:
            ledger.issue(Decimal('11'), product, warehouse_x)

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'
        assert exc.value.data['available'] == Decimal('10')
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('10')

    def test_issue_from_empty_location(self, product, warehouse_y):
        with pytest.raises(StockError) as exc:
            ledger.issue(Decimal('1'), product, warehouse_y)

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'


class TestAdjust:
    """Tests for ledger.adjust()."""

    def test_adjust_down(self, product, warehouse_x):
        ledger.receive(Decimal('50'), product, warehouse_x)

        move = ledger.adjust(product, warehouse_x, Decimal('45'), reason='Contagem')

        assert move.direction == Direction.OUT
        assert move.quantity == Decimal('5')
        assert move.reference_type == ReferenceType.ADJUSTMENT
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('45')
        assert ledger.get_product_total(product) == Decimal('45')

    def test_adjust_up(self, product, warehouse_x):
        move = ledger.adjust(product, warehouse_x, Decimal('8'), reason='Achado no inventário')

        assert move.direction == Direction.IN
        assert ledger.get_product_total(product) == Decimal('8')

    def test_adjust_same_quantity_is_noop(self, product, warehouse_x):
        ledger.receive(Decimal('5'), product, warehouse_x)

        assert ledger.adjust(product, warehouse_x, Decimal('5'), reason='Conferido') is None

    def test_adjust_requires_reason(self, product, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.adjust(product, warehouse_x, Decimal('5'), reason='')

        assert exc.value.code == 'REASON_REQUIRED'

    def test_adjust_negative(self, product, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.adjust(product, warehouse_x, Decimal('-1'), reason='Erro')

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_adjust_accepts_float(self, product, warehouse_x):
        ledger.adjust(product, warehouse_x, 7.5, reason='Contagem')

        assert ledger.get_stock_level(product, warehouse_x) == Decimal('7.5')
