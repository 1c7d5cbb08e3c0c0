"""
Batchman Models.

Core models for batch allocation:
- Location: Where stock lives (warehouse, vehicle)
- Batch: Production run and its allocated quantity
- StockMovement: Immutable ledger of changes
- StockLevel: Quantity per (product, location), derived from the ledger
- ProductStock: Quantity per product, summed over locations
- AuditEntry: Best-effort log of mutating actions
"""

from batchman.models.audit import AuditEntry
from batchman.models.batch import Batch
from batchman.models.enums import (
    AuditAction,
    BatchStatus,
    BulkAction,
    Direction,
    LocationKind,
    QualityStatus,
    ReferenceType,
)
from batchman.models.level import StockLevel
from batchman.models.location import Location
from batchman.models.movement import StockMovement
from batchman.models.product_stock import ProductStock

__all__ = [
    'AuditAction',
    'BatchStatus',
    'BulkAction',
    'Direction',
    'LocationKind',
    'QualityStatus',
    'ReferenceType',
    'Location',
    'Batch',
    'StockMovement',
    'StockLevel',
    'ProductStock',
    'AuditEntry',
]
