"""
Product Catalog Protocol — Interface to the host project's product model.

Batchman references products generically (contenttypes). The catalog
tells it whether a product exists and receives the recomputed product
stock total.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable


@runtime_checkable
class ProductCatalog(Protocol):
    """
    Protocol for the product catalog.

    Implementations should provide methods to:
    - Check that a product exists
    - Describe a product for messages
    - Store the product's aggregate stock quantity
    """

    def exists(self, product) -> bool:
        """
        Check that the product is a saved, existing catalog entry.

        Args:
            product: Product instance

        Returns:
            True if the product exists
        """
        ...

    def describe(self, product) -> str:
        """Human-readable product name."""
        ...

    def publish_stock_quantity(self, product, quantity: Decimal) -> None:
        """
        Store the product's total stock (sum over locations).

        Args:
            product: Product instance
            quantity: New total
        """
        ...
