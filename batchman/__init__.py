"""
Django Batchman — Lotes, alocação e razão de estoque.

Uso:
    from batchman import ledger, StockError

    lote = ledger.create_batch({'product': queijo, 'quantity': '100'})
    ledger.allocate_to_locations(lote.pk, [(deposito, 60), (van, 40)])
    ledger.get_product_total(queijo)  # 100
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from batchman.service import Ledger
        return Ledger
    elif name == 'StockError':
        from batchman.exceptions import StockError
        return StockError
    elif name == 'BatchRequest':
        from batchman.protocols.intake import BatchRequest
        return BatchRequest
    elif name == 'Batch':
        from batchman.models.batch import Batch
        return Batch
    elif name == 'Location':
        from batchman.models.location import Location
        return Location
    elif name == 'StockLevel':
        from batchman.models.level import StockLevel
        return StockLevel
    elif name == 'StockMovement':
        from batchman.models.movement import StockMovement
        return StockMovement
    elif name == 'ProductStock':
        from batchman.models.product_stock import ProductStock
        return ProductStock
    elif name == 'AuditEntry':
        from batchman.models.audit import AuditEntry
        return AuditEntry
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'StockError',
    'BatchRequest',
    'Batch',
    'Location',
    'StockLevel',
    'StockMovement',
    'ProductStock',
    'AuditEntry',
]

__version__ = '0.1.0'
