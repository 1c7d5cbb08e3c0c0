"""
Batch model — a production run and how much of it has been allocated.

A Batch is created with nothing allocated. Its quantity reaches stock
only through allocation to locations, which writes StockMovements.

Usage:
    batch = ledger.create_batch(BatchRequest(
        product=queijo,
        quantity_produced=Decimal('100'),
        manufacturing_date=date.today(),
        expiry_date=date.today() + timedelta(days=30),
    ))

    ledger.allocate_to_locations(batch.pk, [(deposito, 60), (van, 40)])
"""

from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import BatchStatus, QualityStatus


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with convenience filters."""

    def for_product(self, product):
        """Filter batches for a specific product."""
        ct = ContentType.objects.get_for_model(product)
        return self.filter(content_type=ct, object_id=product.pk)

    def with_remaining(self):
        """Batches that still have unallocated quantity."""
        return self.filter(allocated_quantity__lt=F('quantity_produced'))

    def allocatable(self):
        """Active batches with remaining quantity (FIFO candidates)."""
        return self.with_remaining().filter(status=BatchStatus.ACTIVE)

    def expiring_before(self, day):
        """Batches expiring on or before the given date."""
        return self.filter(expiry_date__lte=day, expiry_date__isnull=False)

    def expiring_within(self, days: int, today: date | None = None):
        """Batches expiring within ``days`` days (already expired included)."""
        today = today or date.today()
        return self.expiring_before(today + timedelta(days=days))

    def expired(self, today: date | None = None):
        """Batches past their expiry date."""
        today = today or date.today()
        return self.filter(expiry_date__lt=today, expiry_date__isnull=False)

    def fifo(self):
        """Oldest first: manufacturing date, then creation."""
        return self.order_by(
            F('manufacturing_date').asc(nulls_last=True), 'created_at', 'pk'
        )


class Batch(models.Model):
    """
    A discrete production run of a product.

    Invariants (enforced by check constraints and the allocation engine):
    - 0 <= allocated_quantity <= quantity_produced
    - status == DEPLETED iff allocated_quantity >= quantity_produced
      (EXPIRED and QUARANTINE are set independently)

    allocated_quantity is only changed by AllocationEngine.
    """

    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Número do Lote'),
        help_text=_('Gerado automaticamente: BATCH-AAAAMMDD-NNNN'),
    )

    # Product reference (generic, any product model)
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        verbose_name=_('Tipo de Produto'),
    )
    object_id = models.PositiveIntegerField(verbose_name=_('ID do Produto'))
    product = GenericForeignKey('content_type', 'object_id')

    # Quantities
    quantity_produced = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade Produzida'),
    )
    allocated_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade Alocada'),
        help_text=_('Alterada apenas por alocação/estorno.'),
    )

    # Dates
    manufacturing_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Data de Fabricação'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Data de Validade'),
    )

    # Auxiliary unit counts
    rolls = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Rolos'),
    )
    weight = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Peso (kg)'),
    )

    cost_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Preço de Custo'),
    )

    quality_status = models.CharField(
        max_length=20,
        choices=QualityStatus.choices,
        default=QualityStatus.PENDING,
        verbose_name=_('Qualidade'),
    )
    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )

    initial_location = models.ForeignKey(
        'batchman.Location',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Local Inicial'),
        help_text=_('Sugestão de destino; não aloca nada por si só.'),
    )
    produced_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Produzido por'),
    )

    # Wastage
    wastage_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Perda'),
    )
    wastage_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Custo da Perda'),
    )

    notes = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observações'),
    )

    # Highest allocation movement id already covered by a reversal
    reversal_watermark = models.BigIntegerField(
        default=0,
        editable=False,
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Atualizado em'))

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=Q(allocated_quantity__gte=0),
                name='batch_allocated_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(allocated_quantity__lte=F('quantity_produced')),
                name='batch_allocated_within_produced',
            ),
        ]
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='batch_product_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def remaining_quantity(self) -> Decimal:
        """Quantity not yet allocated to any location."""
        return self.quantity_produced - self.allocated_quantity

    @property
    def is_fully_allocated(self) -> bool:
        return self.allocated_quantity >= self.quantity_produced

    @property
    def is_expired(self) -> bool:
        """Is this batch past its expiry date?"""
        if self.expiry_date is None:
            return False
        return date.today() > self.expiry_date

    @property
    def days_until_expiry(self) -> int | None:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - date.today()).days

    @property
    def expiry_band(self) -> str | None:
        """
        Urgency band: 'expired', 'critical' (<=7 days), 'warning' (<=30),
        'notice' (<=90) or None.
        """
        days = self.days_until_expiry
        if days is None or days > 90:
            return None
        if days < 0:
            return 'expired'
        if days <= 7:
            return 'critical'
        if days <= 30:
            return 'warning'
        return 'notice'

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def derive_status(self) -> str:
        """
        Status implied by allocation bookkeeping.

        EXPIRED and QUARANTINE are kept unless the batch just became
        fully allocated.
        """
        if self.is_fully_allocated and self.quantity_produced > 0:
            return BatchStatus.DEPLETED
        if self.status == BatchStatus.DEPLETED:
            return BatchStatus.ACTIVE
        return self.status

    def __str__(self) -> str:
        expiry = f" (val:{self.expiry_date})" if self.expiry_date else ""
        return f"Lote {self.code}{expiry}"
