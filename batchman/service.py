"""
Ledger Service — The single public interface for batch and stock operations.

Usage:
    from batchman import ledger, StockError
    from batchman.protocols import BatchRequest

    batch = ledger.create_batch(BatchRequest(product=queijo, quantity_produced=Decimal('100')))
    ledger.allocate_to_locations(batch.pk, [(deposito, 60), (van, 40)])
    ledger.get_stock_level(queijo, deposito)   # 60
    ledger.reverse_batch_allocations(batch.pk)
"""

from datetime import date
from decimal import Decimal

from batchman.models.batch import Batch
from batchman.models.enums import BulkAction
from batchman.models.movement import StockMovement
from batchman.protocols.intake import BatchRequest
from batchman.services.allocation import (
    AllocationEngine,
    AllocationResult,
    BulkReport,
    FifoResult,
    ReversalResult,
)
from batchman.services.movements import StockMovements
from batchman.services.queries import StockQueries
from batchman.services.reconciliation import Reconciliation, ReconciliationReport
from batchman.services.registry import BatchRegistry


class Ledger:
    """
    Single interface for all batch and stock operations.

    Parameter convention: (batch or product first, then where, then how much)

    IMPORTANT: All state-changing methods use atomic transactions
    with appropriate locking. See the service each one delegates to.
    """

    # ══════════════════════════════════════════════════════════════
    # BATCHES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_batch(cls, request: BatchRequest | dict, user=None) -> Batch:
        """
        Register a production batch. Nothing is allocated yet.

        Accepts a BatchRequest or a raw payload dict (see BatchRequest.from_payload).
        """
        if isinstance(request, dict):
            request = BatchRequest.from_payload(request)
        return BatchRegistry.create_batch(request, user=user)

    @classmethod
    def update_batch(cls, batch_id, patch: dict, user=None) -> Batch:
        return BatchRegistry.update_batch(batch_id, patch, user=user)

    @classmethod
    def delete_batch(cls, batch_id, user=None) -> int:
        """Reverse and purge a batch with its movements. Returns movements removed."""
        return BatchRegistry.delete_batch(batch_id, user=user)

    @classmethod
    def get_batch(cls, batch_id) -> Batch:
        return BatchRegistry.get_batch(batch_id)

    @classmethod
    def expire_batches(cls, today: date | None = None, user=None) -> list[Batch]:
        return BatchRegistry.expire_batches(today=today, user=user)

    # ══════════════════════════════════════════════════════════════
    # ALLOCATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def allocate_to_locations(cls, batch_id, allocations, user=None, notes: str = '') -> AllocationResult:
        return AllocationEngine.allocate_to_locations(batch_id, allocations, user=user, notes=notes)

    @classmethod
    def reverse_batch_allocations(cls, batch_id, user=None) -> ReversalResult:
        return AllocationEngine.reverse_batch_allocations(batch_id, user=user)

    @classmethod
    def bulk_allocate_to_location(cls, batch_ids, location, action: str = BulkAction.ALLOCATE,
                                  user=None) -> BulkReport:
        return AllocationEngine.bulk_allocate_to_location(batch_ids, location, action=action, user=user)

    @classmethod
    def allocate_fifo(cls, product, location, quantity: Decimal, user=None) -> FifoResult:
        return AllocationEngine.allocate_fifo(product, location, quantity, user=user)

    # ══════════════════════════════════════════════════════════════
    # MOVEMENTS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def receive(cls, quantity: Decimal, product, location, **kwargs) -> StockMovement:
        return StockMovements.receive(quantity, product, location, **kwargs)

    @classmethod
    def issue(cls, quantity: Decimal, product, location, **kwargs) -> StockMovement:
        return StockMovements.issue(quantity, product, location, **kwargs)

    @classmethod
    def adjust(cls, product, location, new_quantity: Decimal, reason: str,
               user=None) -> StockMovement | None:
        return StockMovements.adjust(product, location, new_quantity, reason, user=user)

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_stock_level(cls, product, location) -> Decimal:
        return StockQueries.get_stock_level(product, location)

    @classmethod
    def get_product_total(cls, product) -> Decimal:
        return StockQueries.get_product_total(product)

    @classmethod
    def get_remaining(cls, batch_id) -> Decimal:
        return StockQueries.get_remaining(batch_id)

    @classmethod
    def list_levels(cls, product=None, location=None, include_empty: bool = False):
        return StockQueries.list_levels(product, location, include_empty=include_empty)

    @classmethod
    def movements_for_batch(cls, batch_id):
        return StockQueries.movements_for_batch(batch_id)

    @classmethod
    def batch_distribution(cls, batch_id) -> dict[str, Decimal]:
        return StockQueries.batch_distribution(batch_id)

    @classmethod
    def expiring_batches(cls, days: int | None = None, today: date | None = None):
        return StockQueries.expiring_batches(days=days, today=today)

    # ══════════════════════════════════════════════════════════════
    # MAINTENANCE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def reconcile(cls, repair: bool = False, user=None) -> ReconciliationReport:
        """Compare projections with the ledger. See services.reconciliation."""
        return Reconciliation.run(repair=repair, user=user)
