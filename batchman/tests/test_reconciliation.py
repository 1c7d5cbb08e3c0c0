"""
Tests for reconciliation of projections against the ledger.
"""

from decimal import Decimal

import pytest
from django.contrib.contenttypes.models import ContentType

from batchman import ledger
from batchman.models import (
    AuditAction,
    AuditEntry,
    Batch,
    Direction,
    ProductStock,
    ReferenceType,
    StockLevel,
    StockMovement,
)
from batchman.services.projection import StockLevels


pytestmark = pytest.mark.django_db


@pytest.fixture
def stocked(batch, product, warehouse_x, warehouse_y):
    ledger.allocate_to_locations(batch.pk, [(warehouse_x, 60), (warehouse_y, 40)])
    ledger.issue(Decimal('10'), product, warehouse_x)
    return batch


class TestReconciliation:
    """Tests for ledger.reconcile()."""

    def test_consistent_ledger(self, stocked):
        report = ledger.reconcile()

        assert report.ok
        assert report.levels_checked == 2
        assert report.totals_checked == 1
        assert report.batches_checked == 1

    def test_detects_level_drift(self, stocked, product, warehouse_x, caplog):
        StockLevel.objects.for_product(product).filter(location=warehouse_x).update(quantity=Decimal('7'))

        report = ledger.reconcile()

        levels = report.of_kind('level')
        assert len(levels) == 1
        assert levels[0].expected == Decimal('50')
        assert levels[0].actual == Decimal('7')
        assert not levels[0].repaired
        assert 'stock.reconcile.mismatch' in caplog.text
        # 7 + 40 no longer adds up to the stored 90
        assert len(report.of_kind('total')) == 1

    def test_repairs_level_and_total(self, stocked, product, warehouse_x):
        StockLevel.objects.for_product(product).filter(location=warehouse_x).update(quantity=Decimal('7'))
        ProductStock.objects.filter(object_id=product.pk).update(stock_quantity=Decimal('3'))

        report = ledger.reconcile(repair=True)

        assert all(m.repaired for m in report.of_kind('level') + report.of_kind('total'))
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('50')
        assert ledger.get_product_total(product) == Decimal('90')
        assert ledger.reconcile().ok
        assert AuditEntry.objects.filter(action=AuditAction.STOCK_RECONCILED).count() == 1

    def test_missing_level_row_is_restored(self, stocked, product, warehouse_y):
        StockLevel.objects.for_product(product).filter(location=warehouse_y).delete()

        ledger.reconcile(repair=True)

        assert ledger.get_stock_level(product, warehouse_y) == Decimal('40')

    def test_batch_mismatch_reported_only(self, stocked):
        Batch.objects.filter(pk=stocked.pk).update(allocated_quantity=Decimal('80'))

        report = ledger.reconcile(repair=True)

        batches = report.of_kind('batch')
        assert len(batches) == 1
        assert batches[0].key == stocked.code
        assert batches[0].expected == Decimal('100')
        assert not batches[0].repaired

    def test_reversed_batch_is_consistent(self, stocked):
        ledger.reverse_batch_allocations(stocked.pk)

        assert ledger.reconcile().ok

    def test_ledger_below_zero_is_repaired(self, stocked, product, warehouse_x):
        StockMovement.objects.create(
            content_type=ContentType.objects.get_for_model(product),
            object_id=product.pk,
            location=warehouse_x,
            direction=Direction.OUT,
            quantity=Decimal('60'),
            previous_quantity=Decimal('50'),
            new_quantity=Decimal('-10'),
            reference_type=ReferenceType.SALE,
        )

        report = ledger.reconcile(repair=True)

        level = report.of_kind('level')[0]
        assert level.expected == Decimal('-10')
        assert level.repaired
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('-10')
        assert ledger.get_product_total(product) == Decimal('30')
        assert ledger.reconcile().ok

    def test_repaired_only_when_projection_matches(self, stocked, product, warehouse_x, monkeypatch):
        StockLevel.objects.for_product(product).filter(location=warehouse_x).update(quantity=Decimal('7'))
        monkeypatch.setattr(StockLevels, 'recompute', classmethod(lambda cls, product, location: None))

        report = ledger.reconcile(repair=True)

        assert not report.of_kind('level')[0].repaired
        assert not ledger.reconcile().ok
