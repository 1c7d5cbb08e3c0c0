"""
Stock queries — read-only operations.

All methods are classmethods and use no locking.
"""

from datetime import date
from decimal import Decimal

from batchman.conf import batchman_settings
from batchman.models.batch import Batch
from batchman.models.enums import BatchStatus
from batchman.models.level import StockLevel
from batchman.models.location import Location
from batchman.models.movement import StockMovement
from batchman.services.ledger import StockLedger
from batchman.services.projection import ProductTotals, StockLevels
from batchman.services.registry import BatchRegistry, resolve_location


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def get_stock_level(cls, product, location) -> Decimal:
        """
        Quantity of a product at a location.

        Args:
            product: Product object
            location: Location instance, pk or code

        Returns:
            Decimal, 0 when the product has never been there
        """
        return StockLevels.get(product, resolve_location(location))

    @classmethod
    def get_product_total(cls, product) -> Decimal:
        """Stored product total (sum over locations)."""
        return ProductTotals.get(product)

    @classmethod
    def get_remaining(cls, batch_id) -> Decimal:
        """Unallocated quantity of a batch."""
        return BatchRegistry.get_batch(batch_id).remaining_quantity

    @classmethod
    def list_levels(cls, product=None, location: Location | None = None,
                    include_empty: bool = False):
        """List stock levels with filters."""
        if product is not None:
            qs = StockLevel.objects.for_product(product)
        else:
            qs = StockLevel.objects.all()
        qs = qs.select_related('location')

        if location is not None:
            qs = qs.filter(location=resolve_location(location))

        if not include_empty:
            qs = qs.exclude(quantity=0)

        return qs

    @classmethod
    def list_batches(cls, product=None, status: str | None = None, allocatable: bool = False):
        qs = Batch.objects.select_related('initial_location')
        if product is not None:
            qs = qs.for_product(product)
        if status is not None:
            qs = qs.filter(status=status)
        if allocatable:
            qs = qs.allocatable()
        return qs

    @classmethod
    def movements(cls, product=None, location: Location | None = None,
                  reference_type: str | None = None):
        """Ledger rows in chronological order."""
        qs = StockMovement.objects.select_related('location')
        if product is not None:
            qs = qs.for_product(product)
        if location is not None:
            qs = qs.filter(location=resolve_location(location))
        if reference_type is not None:
            qs = qs.filter(reference_type=reference_type)
        return qs

    @classmethod
    def movements_for_batch(cls, batch_id):
        """Allocation and reversal movements of a batch."""
        return StockLedger.movements_for_batch(BatchRegistry.get_batch(batch_id))

    @classmethod
    def batch_distribution(cls, batch_id) -> dict[str, Decimal]:
        """
        Where the current allocation cycle of a batch went.

        Returns:
            {location code: allocated quantity}
        """
        batch = BatchRegistry.get_batch(batch_id)
        distribution: dict[str, Decimal] = {}
        for move in StockLedger.open_allocations(batch):
            code = move.location.code
            distribution[code] = distribution.get(code, Decimal('0')) + move.quantity
        return distribution

    @classmethod
    def expiring_batches(cls, days: int | None = None, today: date | None = None):
        """Active or depleted batches expiring within ``days`` (default EXPIRY_NOTICE_DAYS)."""
        days = batchman_settings.EXPIRY_NOTICE_DAYS if days is None else days
        return Batch.objects.expiring_within(days, today=today).filter(
            status__in=[BatchStatus.ACTIVE, BatchStatus.DEPLETED]
        ).order_by('expiry_date', 'pk')
