"""
Batchman Admin with Unfold theme.

This module provides Unfold-styled admin classes for Batchman models.
To use, add 'batchman.contrib.admin_unfold' to INSTALLED_APPS after 'batchman'.

The admins will automatically register the Unfold versions.
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.decorators import display

from batchman.admin import (
    BATCH_READONLY_FIELDS,
    BatchAdminForm,
    expire_batches,
    reverse_batches,
    save_batch_through_ledger,
)
from batchman.contrib.admin_unfold.base import BaseModelAdmin, ReadOnlyModelAdmin, format_quantity
from batchman.models import (
    AuditEntry,
    Batch,
    BatchStatus,
    Direction,
    Location,
    ProductStock,
    StockLevel,
    StockMovement,
)


# =============================================================================
# HELPERS
# =============================================================================


def _format_datetime(dt):
    """Format datetime as DD/MM/AA · HH:MM."""
    if dt:
        return dt.strftime('%d/%m/%y · %H:%M')
    return '-'


def _format_date(d):
    """Format date as DD/MM/AA."""
    if d:
        return d.strftime('%d/%m/%y')
    return '-'


# =============================================================================
# LOCATION ADMIN
# =============================================================================


@admin.register(Location)
class LocationAdmin(BaseModelAdmin):
    """Admin for Location model."""

    list_display = ['code', 'name', 'kind', 'is_active']
    list_filter = ['kind', 'is_active']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']

    warn_unsaved_form = True


# =============================================================================
# LOTE (BATCH) ADMIN
# =============================================================================


@admin.register(Batch)
class BatchAdmin(BaseModelAdmin):
    """Admin for Lote/Batch model.

    Batches are created by ingestion. Edits go through ledger.update_batch()
    and allocation changes only through the ledger actions.
    """

    form = BatchAdminForm
    list_display = ['code', 'product_display', 'produced_display', 'allocated_display',
                    'remaining_display', 'status_display', 'expiry_date_display', 'expiry_band_display']
    list_filter = ['status', 'quality_status', 'expiry_date']
    search_fields = ['code', 'notes']
    readonly_fields = BATCH_READONLY_FIELDS
    actions = [reverse_batches, expire_batches]

    warn_unsaved_form = True

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        save_batch_through_ledger(obj, form, request.user)

    @display(description=_('Produto'))
    def product_display(self, obj):
        return str(obj.product) if obj.product else '?'

    @display(description=_('Produzido'))
    def produced_display(self, obj):
        return format_quantity(obj.quantity_produced)

    @display(description=_('Alocado'))
    def allocated_display(self, obj):
        return format_quantity(obj.allocated_quantity)

    @display(description=_('Restante'))
    def remaining_display(self, obj):
        return format_quantity(obj.remaining_quantity)

    @display(
        description=_('Status'),
        ordering='status',
        label={
            BatchStatus.ACTIVE: 'success',
            BatchStatus.DEPLETED: 'info',
            BatchStatus.EXPIRED: 'danger',
            BatchStatus.QUARANTINE: 'warning',
        },
    )
    def status_display(self, obj):
        return obj.status, obj.get_status_display()

    @display(description=_('Validade'))
    def expiry_date_display(self, obj):
        return _format_date(obj.expiry_date)

    @display(
        description=_('Faixa de Validade'),
        label={
            'expired': 'danger',
            'critical': 'danger',
            'warning': 'warning',
            'notice': 'info',
        },
    )
    def expiry_band_display(self, obj):
        return obj.expiry_band or '-'


# =============================================================================
# SALDO POR LOCAL (STOCK LEVEL) ADMIN
# =============================================================================


@admin.register(StockLevel)
class StockLevelAdmin(ReadOnlyModelAdmin):
    """Admin for StockLevel (read-only). Levels only change via the ledger."""

    list_display = ['product_display', 'location', 'quantity_display', 'updated_at_display']
    list_filter = ['location']
    search_fields = ['object_id', 'location__code']

    @display(description=_('Produto'))
    def product_display(self, obj):
        return str(obj.product) if obj.product else '?'

    @display(description=_('Quantidade'))
    def quantity_display(self, obj):
        return format_quantity(obj.quantity)

    @display(description=_('Atualizado'))
    def updated_at_display(self, obj):
        return _format_datetime(obj.updated_at)


# =============================================================================
# MOVIMENTO (STOCK MOVEMENT) ADMIN
# =============================================================================


@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyModelAdmin):
    """Admin for StockMovement (read-only). Immutable ledger."""

    list_display = ['timestamp_display', 'product_display', 'location', 'quantity_display',
                    'balance_display', 'reference_type', 'batch_number', 'user']
    list_filter = ['direction', 'reference_type', 'location']
    search_fields = ['batch_number', 'notes']
    date_hierarchy = 'timestamp'

    @display(description=_('Data e Hora'))
    def timestamp_display(self, obj):
        return _format_datetime(obj.timestamp)

    @display(description=_('Produto'))
    def product_display(self, obj):
        return str(obj.product) if obj.product else '?'

    @display(
        description=_('Quantidade'),
        label={'in': 'success', 'out': 'danger'},
    )
    def quantity_display(self, obj):
        sign = '+' if obj.direction == Direction.IN else '-'
        return obj.direction, f"{sign}{format_quantity(obj.quantity)}"

    @display(description=_('Saldo'))
    def balance_display(self, obj):
        return f"{format_quantity(obj.previous_quantity)} → {format_quantity(obj.new_quantity)}"


# =============================================================================
# TOTAL POR PRODUTO (PRODUCT STOCK) ADMIN
# =============================================================================


@admin.register(ProductStock)
class ProductStockAdmin(ReadOnlyModelAdmin):
    """Admin for ProductStock (read-only)."""

    list_display = ['product_display', 'quantity_display', 'recomputed_at_display']
    search_fields = ['object_id']

    @display(description=_('Produto'))
    def product_display(self, obj):
        return str(obj.product) if obj.product else '?'

    @display(description=_('Total'))
    def quantity_display(self, obj):
        return format_quantity(obj.stock_quantity)

    @display(description=_('Recalculado'))
    def recomputed_at_display(self, obj):
        return _format_datetime(obj.recomputed_at)


# =============================================================================
# AUDITORIA ADMIN
# =============================================================================


@admin.register(AuditEntry)
class AuditEntryAdmin(ReadOnlyModelAdmin):
    """Admin for AuditEntry (read-only)."""

    list_display = ['timestamp_display', 'action', 'entity_type', 'entity_id', 'user']
    list_filter = ['action', 'entity_type']
    search_fields = ['entity_id', 'notes']
    date_hierarchy = 'timestamp'

    @display(description=_('Data e Hora'))
    def timestamp_display(self, obj):
        return _format_datetime(obj.timestamp)
