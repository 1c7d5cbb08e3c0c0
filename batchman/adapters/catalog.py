"""
Batchman Catalog Adapter — product catalog backed by the product model.

This adapter checks products in their own table and writes the stock
total to a plain field on the product model.

Usage:
    from batchman.adapters import get_product_catalog

    catalog = get_product_catalog()
    catalog.publish_stock_quantity(product, Decimal('35'))

Settings:
    BATCHMAN = {
        "PRODUCT_CATALOG": "batchman.adapters.catalog.ModelFieldCatalog",
        "PRODUCT_STOCK_FIELD": "stock_quantity",
    }

If PRODUCT_CATALOG is empty, get_product_catalog() raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal

from django.core.exceptions import FieldDoesNotExist, ImproperlyConfigured
from django.utils.module_loading import import_string

from batchman.conf import batchman_settings
from batchman.protocols.catalog import ProductCatalog

logger = logging.getLogger(__name__)


class ModelFieldCatalog:
    """
    Catalog adapter for products that are plain Django models.

    - exists(): the row is still in the product table
    - publish_stock_quantity(): queryset update() of PRODUCT_STOCK_FIELD,
      skipped when the model has no such field
    """

    def exists(self, product) -> bool:
        if product is None or getattr(product, 'pk', None) is None:
            return False
        return type(product)._default_manager.filter(pk=product.pk).exists()

    def describe(self, product) -> str:
        return str(product)

    def publish_stock_quantity(self, product, quantity: Decimal) -> None:
        field_name = batchman_settings.PRODUCT_STOCK_FIELD
        if not field_name:
            return
        model = type(product)
        try:
            model._meta.get_field(field_name)
        except FieldDoesNotExist:
            return
        model._default_manager.filter(pk=product.pk).update(**{field_name: quantity})
        setattr(product, field_name, quantity)


# Cached catalog instance
_lock = threading.Lock()
_product_catalog: ProductCatalog | None = None


def get_product_catalog() -> ProductCatalog:
    """
    Return the configured product catalog.

    Raises:
        ImproperlyConfigured: If PRODUCT_CATALOG is not configured or import fails
    """
    global _product_catalog

    if _product_catalog is None:
        with _lock:
            if _product_catalog is None:  # double-checked
                catalog_path = batchman_settings.PRODUCT_CATALOG

                if not catalog_path:
                    raise ImproperlyConfigured(
                        "BATCHMAN['PRODUCT_CATALOG'] must be configured. "
                        "Example: 'batchman.adapters.catalog.ModelFieldCatalog'"
                    )

                try:
                    catalog_class = import_string(catalog_path)
                    _product_catalog = catalog_class()
                    logger.debug("Loaded product catalog: %s", catalog_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import product catalog '{catalog_path}': {e}"
                    ) from e

    return _product_catalog


def reset_product_catalog() -> None:
    """Reset the cached catalog. Useful for testing."""
    global _product_catalog
    _product_catalog = None
