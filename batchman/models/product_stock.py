"""
ProductStock model — total on-hand quantity of a product across locations.
"""

from decimal import Decimal

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.utils.translation import gettext_lazy as _


class ProductStock(models.Model):
    """
    Product aggregate: stock_quantity == sum of StockLevel.quantity
    for the product.

    One row per product, locked with select_for_update() while it is
    incremented or recomputed. The value is mirrored to the product
    catalog by ProductTotals.
    """

    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        verbose_name=_('Tipo de Produto'),
    )
    object_id = models.PositiveIntegerField(verbose_name=_('ID do Produto'))
    product = GenericForeignKey('content_type', 'object_id')

    stock_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Estoque Total'),
    )

    recomputed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Recalculado em'),
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Estoque do Produto')
        verbose_name_plural = _('Estoques dos Produtos')
        constraints = [
            models.UniqueConstraint(
                fields=['content_type', 'object_id'],
                name='unique_product_stock',
            )
        ]

    def __str__(self) -> str:
        return f"{self.product}: {self.stock_quantity}"
