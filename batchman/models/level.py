"""
StockLevel model — on-hand quantity of one product at one location.
"""

from decimal import Decimal

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.utils.translation import gettext_lazy as _


class StockLevelManager(models.Manager):
    """Manager with helper methods for StockLevel queries."""

    def for_product(self, product):
        """Filter levels for a specific product."""
        ct = ContentType.objects.get_for_model(product)
        return self.filter(content_type=ct, object_id=product.pk)

    def at_location(self, location):
        return self.filter(location=location)


class StockLevel(models.Model):
    """
    Quantity of a product at a location.

    Materialized view of the StockMovement ledger:
    quantity == sum of signed movements for (product, location).

    Only the services in batchman.services.projection write it.
    Use StockLevels.recompute() for audit/correction.
    """

    # Generic reference to product (agnostic)
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        verbose_name=_('Tipo de Produto'),
    )
    object_id = models.PositiveIntegerField(
        verbose_name=_('ID do Produto'),
    )
    product = GenericForeignKey('content_type', 'object_id')

    location = models.ForeignKey(
        'batchman.Location',
        on_delete=models.PROTECT,
        related_name='stock_levels',
        verbose_name=_('Local'),
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockLevelManager()

    class Meta:
        verbose_name = _('Nível de Estoque')
        verbose_name_plural = _('Níveis de Estoque')
        constraints = [
            models.UniqueConstraint(
                fields=['content_type', 'object_id', 'location'],
                name='unique_stock_level_per_location',
            )
        ]
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='stock_level_product_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.product} [{self.location.code}]: {self.quantity}"
