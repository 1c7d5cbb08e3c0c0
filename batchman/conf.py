"""
Batchman configuration.

Usage in settings.py:
    BATCHMAN = {
        "PRODUCT_CATALOG": "batchman.adapters.catalog.ModelFieldCatalog",
        "PRODUCT_STOCK_FIELD": "stock_quantity",
        "BATCH_NUMBER_PREFIX": "BATCH",
        "BATCH_NUMBER_ATTEMPTS": 5,
        "CONCURRENCY_RETRIES": 3,
        "EXPIRY_NOTICE_DAYS": 90,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class BatchmanSettings:
    """Batchman configuration settings."""

    # Product catalog backend (dotted path)
    PRODUCT_CATALOG: str = "batchman.adapters.catalog.ModelFieldCatalog"

    # Field on the product model that mirrors the product stock total
    PRODUCT_STOCK_FIELD: str = "stock_quantity"

    # Batch numbers look like BATCH-20260223-4821
    BATCH_NUMBER_PREFIX: str = "BATCH"

    # Attempts to find a free batch number before giving up
    BATCH_NUMBER_ATTEMPTS: int = 5

    # Retries on database lock errors before CONCURRENCY_CONFLICT
    CONCURRENCY_RETRIES: int = 3

    # Batches expiring within this many days are listed as expiring
    EXPIRY_NOTICE_DAYS: int = 90


def get_batchman_settings() -> BatchmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BATCHMAN", {})
    return BatchmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in BatchmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_batchman_settings(), name)


batchman_settings = _LazySettings()
