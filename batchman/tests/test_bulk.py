"""
Tests for bulk allocation and reversal.
"""

from decimal import Decimal

import pytest

from batchman import StockError, ledger
from batchman.models import BatchStatus, BulkAction
from batchman.tests.testapp.models import Product


pytestmark = pytest.mark.django_db


@pytest.fixture
def three_batches(make_batch, warehouse_x):
    """B1 with 20 remaining, B2 with nothing remaining, B3 with 15 remaining."""
    b1 = make_batch(50)
    ledger.allocate_to_locations(b1.pk, [(warehouse_x, 30)])
    b2 = make_batch(40)
    ledger.allocate_to_locations(b2.pk, [(warehouse_x, 40)])
    b3 = make_batch(15)
    return b1, b2, b3


class TestBulkAllocate:
    """Tests for ledger.bulk_allocate_to_location(action=ALLOCATE)."""

    def test_allocates_remainders_and_skips_full(self, three_batches, product, warehouse_w):
        b1, b2, b3 = three_batches

        report = ledger.bulk_allocate_to_location([b1.pk, b2.pk, b3.pk], warehouse_w)

        statuses = {item.batch_id: (item.status, item.quantity) for item in report.results}
        assert statuses[b1.pk] == ('allocated', Decimal('20'))
        assert statuses[b2.pk][0] == 'skipped'
        assert statuses[b3.pk] == ('allocated', Decimal('15'))
        assert report.total_quantity == Decimal('35')
        assert not report.failed
        assert ledger.get_stock_level(product, warehouse_w) == Decimal('35')

        for b in (b1, b2, b3):
            b.refresh_from_db()
            assert b.status == BatchStatus.DEPLETED

    def test_failure_is_isolated(self, three_batches, product, warehouse_w):
        b1, _, b3 = three_batches

        report = ledger.bulk_allocate_to_location([b1.pk, 999999, b3.pk], warehouse_w)

        assert [r.status for r in report.results] == ['allocated', 'failed', 'allocated']
        assert report.failed[0].error.code == 'BATCH_NOT_FOUND'
        assert report.failed[0].batch_number == ''
        assert ledger.get_stock_level(product, warehouse_w) == Decimal('35')

    def test_failed_item_carries_batch_number(self, make_batch, other_product, warehouse_w):
        orphan = make_batch(10, product=other_product)
        Product.objects.filter(pk=other_product.pk).delete()

        report = ledger.bulk_allocate_to_location([orphan.pk], warehouse_w)

        item = report.failed[0]
        assert item.error.code == 'PRODUCT_NOT_FOUND'
        assert item.batch_number == orphan.code
        orphan.refresh_from_db()
        assert orphan.allocated_quantity == Decimal('0')

    def test_raise_for_failures(self, three_batches, warehouse_w):
        b1, _, _ = three_batches
        report = ledger.bulk_allocate_to_location([b1.pk, 999999], warehouse_w)

        with pytest.raises(StockError) as exc:
            report.raise_for_failures()

        assert exc.value.code == 'PARTIAL_BULK_FAILURE'
        assert exc.value.kind == 'partial_bulk_failure'
        assert len(exc.value.data['results']) == 2

    def test_raise_for_failures_quiet_on_success(self, three_batches, warehouse_w):
        b1, _, _ = three_batches
        ledger.bulk_allocate_to_location([b1], warehouse_w).raise_for_failures()

    def test_unknown_location_rejects_whole_call(self, three_batches):
        b1, _, _ = three_batches

        with pytest.raises(StockError) as exc:
            ledger.bulk_allocate_to_location([b1.pk], 'nao-existe')

        assert exc.value.code == 'LOCATION_NOT_FOUND'
        b1.refresh_from_db()
        assert b1.allocated_quantity == Decimal('30')

    def test_unknown_action(self, three_batches, warehouse_w):
        with pytest.raises(StockError) as exc:
            ledger.bulk_allocate_to_location([], warehouse_w, action='explode')

        assert exc.value.code == 'INVALID_ALLOCATION'


class TestBulkReverse:
    """Tests for ledger.bulk_allocate_to_location(action=REVERSE)."""

    def test_reverses_each_batch(self, three_batches, product, warehouse_x, warehouse_w):
        b1, b2, b3 = three_batches

        report = ledger.bulk_allocate_to_location([b1.pk, b2.pk, b3.pk], warehouse_w, action=BulkAction.REVERSE)

        assert [r.status for r in report.results] == ['reversed', 'reversed', 'skipped']
        assert report.total_quantity == Decimal('70')
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('0')
        assert ledger.get_product_total(product) == Decimal('0')
