"""
Batchman Protocols.

Defines interfaces for external system integration.
"""

from batchman.protocols.catalog import ProductCatalog
from batchman.protocols.intake import BatchRequest

__all__ = [
    "BatchRequest",
    "ProductCatalog",
]
