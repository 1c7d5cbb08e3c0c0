"""
Noop Product Catalog — Stub adapter for development and testing.

Every saved product exists and stock totals are not mirrored anywhere.
The ProductStock table still holds the totals.

Usage in settings.py:
    BATCHMAN = {
        "PRODUCT_CATALOG": "batchman.adapters.noop.NoopCatalog",
    }

WARNING: Do NOT use in production. Products are never checked against
the catalog, so batches for deleted products are accepted.
"""

from __future__ import annotations

from decimal import Decimal


class NoopCatalog:
    """No-operation product catalog."""

    def exists(self, product) -> bool:
        return getattr(product, 'pk', None) is not None

    def describe(self, product) -> str:
        return str(product)

    def publish_stock_quantity(self, product, quantity: Decimal) -> None:
        return None
