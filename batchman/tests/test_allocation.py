"""
Tests for allocation of batches to locations.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from batchman import StockError, ledger
from batchman.models import (
    AuditAction,
    AuditEntry,
    BatchStatus,
    Direction,
    ProductStock,
    ReferenceType,
    StockLevel,
    StockMovement,
)
from batchman.services.allocation import Allocation
from batchman.services.projection import ProductTotals


pytestmark = pytest.mark.django_db


class TestAllocateToLocations:
    """Tests for ledger.allocate_to_locations()."""

    def test_split_allocation_depletes_batch(self, batch, product, warehouse_x, warehouse_y):
        """100 split 60/40 fills the batch and both locations."""
        result = ledger.allocate_to_locations(batch.pk, [(warehouse_x, 60), (warehouse_y, 40)])

        batch.refresh_from_db()
        product.refresh_from_db()
        assert result.quantity == Decimal('100')
        assert batch.allocated_quantity == Decimal('100')
        assert batch.status == BatchStatus.DEPLETED
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('60')
        assert ledger.get_stock_level(product, warehouse_y) == Decimal('40')
        assert ledger.get_product_total(product) == Decimal('100')
        assert product.stock_quantity == Decimal('100')

    def test_movements_record_snapshots(self, batch, product, warehouse_x):
        """Each allocation writes an IN movement with before/after quantities."""
        ledger.allocate_to_locations(batch.pk, [(warehouse_x, 30)])
        ledger.allocate_to_locations(batch.pk, [(warehouse_x, 20)])

        first, second = StockMovement.objects.for_batch(batch)
        assert first.direction == Direction.IN
        assert first.reference_type == ReferenceType.BATCH_ALLOCATION
        assert first.reference_id == batch.pk
        assert first.batch_number == batch.code
        assert (first.previous_quantity, first.new_quantity) == (Decimal('0'), Decimal('30'))
        assert (second.previous_quantity, second.new_quantity) == (Decimal('30'), Decimal('50'))

    def test_partial_allocation_stays_active(self, batch, warehouse_x):
        ledger.allocate_to_locations(batch.pk, {warehouse_x: Decimal('25.5')})

        batch.refresh_from_db()
        assert batch.status == BatchStatus.ACTIVE
        assert batch.remaining_quantity == Decimal('74.5')

    def test_accepts_location_codes_and_pks(self, batch, product, warehouse_x, warehouse_y):
        ledger.allocate_to_locations(batch.pk, [('deposito-x', 10), (warehouse_y.pk, 5)])

        assert ledger.get_stock_level(product, warehouse_x) == Decimal('10')
        assert ledger.get_stock_level(product, warehouse_y) == Decimal('5')

    def test_duplicate_locations_are_merged(self, batch, product, warehouse_x):
        ledger.allocate_to_locations(batch.pk, [Allocation(warehouse_x, Decimal('10')), (warehouse_x, 15)])

        assert StockMovement.objects.for_batch(batch).count() == 1
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('25')

    def test_zero_entries_are_skipped(self, batch, warehouse_x, warehouse_y):
        ledger.allocate_to_locations(batch.pk, [(warehouse_x, 10), (warehouse_y, 0)])

        assert list(StockMovement.objects.for_batch(batch).values_list('location', flat=True)) == [warehouse_x.pk]

    def test_insufficient_batch_quantity(self, batch, product, warehouse_x, warehouse_y, warehouse_z):
        """Over-allocation is rejected with the shortfall and nothing changes."""
        ledger.allocate_to_locations(batch.pk, [(warehouse_x, 60), (warehouse_y, 40)])

        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [(warehouse_z, 10)])

        assert exc.value.code == 'INSUFFICIENT_BATCH_QUANTITY'
        assert exc.value.kind == 'insufficient_batch_quantity'
        assert exc.value.requested == Decimal('10')
        assert exc.value.remaining == Decimal('0')
        assert exc.value.shortfall == Decimal('10')
        assert batch.code in exc.value.message
        assert ledger.get_stock_level(product, warehouse_z) == Decimal('0')
        assert ledger.get_product_total(product) == Decimal('100')
        assert StockMovement.objects.for_batch(batch).count() == 2

    def test_over_request_in_one_call_writes_nothing(self, batch, product, warehouse_x, warehouse_y):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [(warehouse_x, 70), (warehouse_y, 40)])

        assert exc.value.shortfall == Decimal('10')
        assert not StockMovement.objects.exists()
        batch.refresh_from_db()
        assert batch.allocated_quantity == Decimal('0')

    def test_failure_after_posting_rolls_back(self, batch, product, warehouse_x, warehouse_y, monkeypatch):
        ledger.receive(Decimal('5'), product, warehouse_x)

        def broken_increment(cls, product, delta):
            raise RuntimeError('total unavailable')

        monkeypatch.setattr(ProductTotals, 'increment', classmethod(broken_increment))

        with pytest.raises(RuntimeError):
            ledger.allocate_to_locations(batch.pk, [(warehouse_x, 60), (warehouse_y, 40)])

        batch.refresh_from_db()
        product.refresh_from_db()
        assert batch.allocated_quantity == Decimal('0')
        assert batch.status == BatchStatus.ACTIVE
        assert not StockMovement.objects.for_batch(batch).exists()
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('5')
        assert not StockLevel.objects.for_product(product).filter(location=warehouse_y).exists()
        assert ProductStock.objects.get(object_id=product.pk).stock_quantity == Decimal('5')
        assert product.stock_quantity == Decimal('5')
        assert not AuditEntry.objects.filter(action=AuditAction.BATCH_ALLOCATED).exists()

    def test_negative_quantity_rejected(self, batch, warehouse_x, warehouse_y):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [(warehouse_x, 10), (warehouse_y, -5)])

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not StockMovement.objects.exists()

    def test_all_zero_rejected(self, batch, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [(warehouse_x, 0)])

        assert exc.value.code == 'INVALID_ALLOCATION'

    def test_empty_request_rejected(self, batch):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [])

        assert exc.value.code == 'INVALID_ALLOCATION'

    def test_non_numeric_quantity_rejected(self, batch, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [(warehouse_x, 'muito')])

        assert exc.value.code == 'INVALID_ALLOCATION'

    def test_unknown_location(self, batch):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(batch.pk, [('nao-existe', 10)])

        assert exc.value.code == 'LOCATION_NOT_FOUND'
        assert exc.value.kind == 'not_found'

    def test_unknown_batch(self, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.allocate_to_locations(999999, [(warehouse_x, 10)])

        assert exc.value.code == 'BATCH_NOT_FOUND'

    def test_audit_entry_written(self, batch, user, warehouse_x):
        ledger.allocate_to_locations(batch.pk, [(warehouse_x, 10)], user=user)

        entry = AuditEntry.objects.filter(action=AuditAction.BATCH_ALLOCATED).get()
        assert entry.entity_type == 'batch'
        assert entry.entity_id == str(batch.pk)
        assert entry.user == user
        assert Decimal(str(entry.after['allocated_quantity'])) == Decimal('10')

    def test_two_batches_same_location_accumulate(self, make_batch, product, warehouse_x):
        b1 = make_batch(10)
        b2 = make_batch(15)

        ledger.allocate_to_locations(b1.pk, [(warehouse_x, 10)])
        ledger.allocate_to_locations(b2.pk, [(warehouse_x, 15)])

        assert ledger.get_stock_level(product, warehouse_x) == Decimal('25')
        assert ledger.get_product_total(product) == Decimal('25')
        assert ledger.batch_distribution(b2.pk) == {'deposito-x': Decimal('15')}


class TestAllocateFifo:
    """Tests for ledger.allocate_fifo()."""

    def test_oldest_batches_first(self, make_batch, product, warehouse_x, today):
        newer = make_batch(30, manufacturing_date=today)
        older = make_batch(20, manufacturing_date=today - timedelta(days=5))

        result = ledger.allocate_fifo(product, warehouse_x, Decimal('35'))

        assert [(b.pk, qty) for b, qty in result.allocations] == [
            (older.pk, Decimal('20')),
            (newer.pk, Decimal('15')),
        ]
        assert result.allocated == Decimal('35')
        assert result.unallocated == Decimal('0')
        older.refresh_from_db()
        assert older.status == BatchStatus.DEPLETED
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('35')

    def test_shortfall_is_reported(self, make_batch, product, warehouse_x):
        make_batch(10)

        result = ledger.allocate_fifo(product, warehouse_x, Decimal('25'))

        assert result.allocated == Decimal('10')
        assert result.unallocated == Decimal('15')

    def test_skips_non_active_batches(self, make_batch, product, warehouse_x, today):
        quarantined = make_batch(50, manufacturing_date=today - timedelta(days=10))
        ledger.update_batch(quarantined.pk, {'status': BatchStatus.QUARANTINE})
        active = make_batch(50, manufacturing_date=today)

        result = ledger.allocate_fifo(product, warehouse_x, Decimal('5'))

        assert [b.pk for b, _ in result.allocations] == [active.pk]

    def test_invalid_quantity(self, product, warehouse_x):
        with pytest.raises(StockError) as exc:
            ledger.allocate_fifo(product, warehouse_x, Decimal('0'))

        assert exc.value.code == 'INVALID_QUANTITY'
