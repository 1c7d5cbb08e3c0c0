"""
Batchman Adapters.

Implementations of protocols for external systems.
"""

from batchman.adapters.catalog import (
    ModelFieldCatalog,
    get_product_catalog,
    reset_product_catalog,
)
from batchman.adapters.noop import NoopCatalog

__all__ = [
    "ModelFieldCatalog",
    "NoopCatalog",
    "get_product_catalog",
    "reset_product_catalog",
]
