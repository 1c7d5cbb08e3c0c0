"""
StockMovement model — Immutable ledger of quantity changes.
"""

from decimal import Decimal

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import Case, DecimalField, F, Q, Sum, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from batchman.exceptions import StockError
from batchman.models.enums import Direction, ReferenceType


SIGNED_QUANTITY = Case(
    When(direction=Direction.IN, then=F('quantity')),
    default=-F('quantity'),
    output_field=DecimalField(max_digits=12, decimal_places=3),
)


class StockMovementQuerySet(models.QuerySet):
    """Ledger queries. Bulk deletion is refused except through purge_for_batch()."""

    def for_product(self, product):
        ct = ContentType.objects.get_for_model(product)
        return self.filter(content_type=ct, object_id=product.pk)

    def for_batch(self, batch):
        """Movements referencing a batch (allocations and reversals)."""
        return self.filter(
            reference_type__in=[ReferenceType.BATCH_ALLOCATION, ReferenceType.BATCH_DEALLOCATION],
            reference_id=batch.pk,
        )

    def allocations(self):
        return self.filter(reference_type=ReferenceType.BATCH_ALLOCATION)

    def deallocations(self):
        return self.filter(reference_type=ReferenceType.BATCH_DEALLOCATION)

    def signed_total(self) -> Decimal:
        """Sum of +in / -out quantities."""
        return self.aggregate(
            t=Coalesce(Sum(SIGNED_QUANTITY), Value(Decimal('0')))
        )['t']

    def delete(self):
        raise StockError(
            'LEDGER_IMMUTABLE',
            message="Movimentos são imutáveis. Para estornar, crie um movimento inverso.",
        )

    delete.queryset_only = True

    def purge_for_batch(self, batch) -> int:
        """
        Remove every movement of a batch.

        The only path that prunes the ledger. Called by
        BatchRegistry.delete_batch() after a full reversal.
        """
        deleted, _ = models.QuerySet.delete(self.for_batch(batch))
        return deleted


class StockMovement(models.Model):
    """
    Immutable record of a quantity change at a location.

    Rules:
    - NEVER update() or delete()
    - Corrections are new movements in the opposite direction
    - quantity is always positive; direction carries the sign
    """

    # Generic reference to product (agnostic)
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Tipo de Produto'),
    )
    object_id = models.PositiveIntegerField(verbose_name=_('ID do Produto'))
    product = GenericForeignKey('content_type', 'object_id')

    location = models.ForeignKey(
        'batchman.Location',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Local'),
    )

    direction = models.CharField(
        max_length=3,
        choices=Direction.choices,
        verbose_name=_('Direção'),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Quantidade'),
        help_text=_('Sempre positiva; a direção indica entrada ou saída'),
    )
    previous_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Saldo Anterior'),
    )
    new_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Saldo Novo'),
    )

    # What caused the movement
    reference_type = models.CharField(
        max_length=30,
        choices=ReferenceType.choices,
        db_index=True,
        verbose_name=_('Tipo de Referência'),
    )
    reference_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('ID da Referência'),
    )
    batch_number = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Número do Lote'),
    )

    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observações'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['timestamp', 'pk']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='stock_movement_quantity_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['content_type', 'object_id', 'location'], name='stock_movement_product_loc_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='stock_movement_reference_idx'),
        ]

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity if self.direction == Direction.IN else -self.quantity

    def save(self, *args, **kwargs):
        if self.pk:
            raise StockError(
                'LEDGER_IMMUTABLE',
                message="Movimentos são imutáveis. Para corrigir, crie um movimento inverso.",
                movement=self.pk,
            )
        if self.quantity is None or self.quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=self.quantity)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise StockError(
            'LEDGER_IMMUTABLE',
            message="Movimentos são imutáveis. Para estornar, crie um movimento inverso.",
            movement=self.pk,
        )

    def __str__(self) -> str:
        signal = '+' if self.direction == Direction.IN else '-'
        return f"{signal}{self.quantity} @ {self.location_id} | {self.get_reference_type_display()}"
