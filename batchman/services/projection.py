"""
Projections — stock levels and product totals derived from the ledger.

Two update modes each:
- incremental (fast path, used while allocating and moving stock)
- recompute (authoritative, used by reversal, purge and reconciliation)

Write methods expect to run inside the caller's transaction.atomic()
and lock the rows they touch with select_for_update().
"""

import logging
from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from batchman.adapters.catalog import get_product_catalog
from batchman.models.level import StockLevel
from batchman.models.location import Location
from batchman.models.movement import StockMovement
from batchman.models.product_stock import ProductStock

logger = logging.getLogger('batchman')


class StockLevels:
    """Quantity per (product, location)."""

    @classmethod
    def get(cls, product, location: Location) -> Decimal:
        """Current quantity, 0 when no row exists."""
        level = StockLevel.objects.for_product(product).filter(location=location).first()
        return level.quantity if level else Decimal('0')

    @classmethod
    def lock(cls, product, location: Location) -> StockLevel:
        """Read-or-create the level and lock it."""
        ct = ContentType.objects.get_for_model(product)
        level, _ = StockLevel.objects.get_or_create(
            content_type=ct,
            object_id=product.pk,
            location=location,
        )
        return StockLevel.objects.select_for_update().get(pk=level.pk)

    @classmethod
    def store(cls, level: StockLevel, quantity: Decimal, drop_empty: bool = False) -> None:
        """Write a new quantity; with drop_empty a zero row is deleted."""
        if drop_empty and quantity == 0:
            level.delete()
            return
        level.quantity = quantity
        level.save(update_fields=['quantity', 'updated_at'])

    @classmethod
    def recompute(cls, product, location: Location) -> Decimal:
        """
        Rebuild one level from the ledger.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            Quantity according to the ledger
        """
        total = StockMovement.objects.for_product(product).filter(
            location=location
        ).signed_total()

        level = cls.lock(product, location)
        if level.quantity != total:
            logger.warning(
                "stock.level.recomputed",
                extra={
                    "level_id": level.pk,
                    "product": str(product),
                    "location": location.code,
                    "old": str(level.quantity),
                    "new": str(total),
                },
            )
        cls.store(level, total, drop_empty=True)
        return total


class ProductTotals:
    """Quantity per product, summed over locations."""

    @classmethod
    def get(cls, product) -> Decimal:
        ct = ContentType.objects.get_for_model(product)
        row = ProductStock.objects.filter(content_type=ct, object_id=product.pk).first()
        return row.stock_quantity if row else Decimal('0')

    @classmethod
    def sum_levels(cls, product) -> Decimal:
        """Sum of the product's StockLevel rows (what the total should be)."""
        return StockLevel.objects.for_product(product).aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    @classmethod
    def lock(cls, product) -> ProductStock:
        ct = ContentType.objects.get_for_model(product)
        row, _ = ProductStock.objects.get_or_create(content_type=ct, object_id=product.pk)
        return ProductStock.objects.select_for_update().get(pk=row.pk)

    @classmethod
    def increment(cls, product, delta: Decimal) -> Decimal:
        """Fast path: add delta to the stored total."""
        row = cls.lock(product)
        row.stock_quantity += delta
        row.save(update_fields=['stock_quantity', 'updated_at'])
        get_product_catalog().publish_stock_quantity(product, row.stock_quantity)
        return row.stock_quantity

    @classmethod
    def recompute(cls, product) -> Decimal:
        """
        Authoritative path: total = sum of surviving StockLevel rows.

        Repairs any drift left by earlier incremental updates.
        """
        row = cls.lock(product)
        total = cls.sum_levels(product)
        if row.stock_quantity != total:
            logger.info(
                "stock.total.recomputed",
                extra={
                    "product": str(product),
                    "old": str(row.stock_quantity),
                    "new": str(total),
                },
            )
        row.stock_quantity = total
        row.recomputed_at = timezone.now()
        row.save(update_fields=['stock_quantity', 'recomputed_at', 'updated_at'])
        get_product_catalog().publish_stock_quantity(product, total)
        return total
