"""
Batch and stock services — modular organization of ledger operations.

Re-exports the service classes:
    from batchman.services import BatchRegistry, AllocationEngine, StockMovements, StockQueries
"""

from batchman.services.allocation import AllocationEngine
from batchman.services.ledger import StockLedger
from batchman.services.movements import StockMovements
from batchman.services.projection import ProductTotals, StockLevels
from batchman.services.queries import StockQueries
from batchman.services.reconciliation import Reconciliation
from batchman.services.registry import BatchRegistry

__all__ = [
    'BatchRegistry',
    'AllocationEngine',
    'StockLedger',
    'StockLevels',
    'ProductTotals',
    'StockMovements',
    'StockQueries',
    'Reconciliation',
]
