"""
Batchman Admin — basic fallback (works without Unfold).

For the Unfold-styled version, add 'batchman.contrib.admin_unfold' to INSTALLED_APPS.
When the Unfold contrib is loaded, this module does nothing (avoids double registration).

Provides views for production debugging:
- Location: list + edit
- Batch: edit through the ledger, with "reverse allocations" and "mark expired" actions
- StockLevel, ProductStock: read-only projections
- StockMovement: read-only ledger
- AuditEntry: read-only audit trail
"""

import logging

from django import forms
from django.apps import apps
from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from batchman.exceptions import StockError
from batchman.models import Batch, BatchStatus

logger = logging.getLogger(__name__)

# Editable on the batch change form; everything else is read-only
BATCH_FORM_FIELDS = [
    'manufacturing_date', 'expiry_date', 'quantity_produced', 'rolls', 'weight',
    'cost_price', 'quality_status', 'status', 'initial_location',
    'wastage_quantity', 'wastage_cost', 'notes',
]

BATCH_READONLY_FIELDS = [
    'code', 'content_type', 'object_id', 'allocated_quantity', 'remaining_display',
    'produced_by', 'reversal_watermark', 'created_at', 'updated_at',
]


class BatchAdminForm(forms.ModelForm):
    """Rejects edits the ledger would refuse, before anything is saved."""

    class Meta:
        model = Batch
        fields = BATCH_FORM_FIELDS

    def clean(self):
        cleaned = super().clean()
        produced = cleaned.get('quantity_produced')
        if produced is not None and produced < self.instance.allocated_quantity:
            self.add_error('quantity_produced', _(
                'Menor que a quantidade já alocada ({allocated}).'
            ).format(allocated=self.instance.allocated_quantity))
        if cleaned.get('status') == BatchStatus.DEPLETED and self.instance.status != BatchStatus.DEPLETED:
            self.add_error('status', _('"Esgotado" é definido pela alocação.'))
        return cleaned


def save_batch_through_ledger(obj, form, user):
    """Send the changed fields to ledger.update_batch and refresh ``obj``."""
    from batchman import ledger

    patch = {name: form.cleaned_data[name] for name in form.changed_data}
    if patch.get('status') == BatchStatus.DEPLETED:
        patch.pop('status')
    if not patch:
        return obj
    batch = ledger.update_batch(obj.pk, patch, user=user)
    obj.refresh_from_db()
    return batch


@admin.action(description=_('Estornar alocações'))
def reverse_batches(modeladmin, request, queryset):
    from batchman import ledger

    count = 0
    for batch in queryset:
        try:
            result = ledger.reverse_batch_allocations(batch.pk, user=request.user)
        except StockError as exc:
            logger.warning("admin.reverse_failed", extra={"batch": batch.code, "error": str(exc)})
            modeladmin.message_user(request, f"{batch.code}: {exc.message}", messages.ERROR)
            continue
        if not result.was_noop:
            count += 1
    modeladmin.message_user(request, _('{count} lote(s) estornado(s).').format(count=count))


@admin.action(description=_('Marcar como vencido'))
def expire_batches(modeladmin, request, queryset):
    from batchman import ledger

    count = 0
    for batch in queryset.exclude(status=BatchStatus.EXPIRED):
        try:
            ledger.update_batch(batch.pk, {'status': BatchStatus.EXPIRED}, user=request.user)
            count += 1
        except StockError as exc:
            logger.warning("admin.expire_failed", extra={"batch": batch.code, "error": str(exc)})
            modeladmin.message_user(request, f"{batch.code}: {exc.message}", messages.ERROR)
    modeladmin.message_user(request, _('{count} lote(s) marcado(s) como vencido(s).').format(count=count))


class ReadOnlyAdminMixin:
    """No add, change or delete from the admin."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# Skip registration if the Unfold contrib is installed (it will register its own admins)
if not apps.is_installed('batchman.contrib.admin_unfold'):
    from batchman.models import AuditEntry, Location, ProductStock, StockLevel, StockMovement

    # =========================================================================
    # LOCATION ADMIN
    # =========================================================================

    @admin.register(Location)
    class LocationAdmin(admin.ModelAdmin):
        """Location admin — editable."""

        list_display = ['code', 'name', 'kind', 'is_active']
        list_filter = ['kind', 'is_active']
        search_fields = ['code', 'name']
        readonly_fields = ['created_at', 'updated_at']

    # =========================================================================
    # BATCH ADMIN
    # =========================================================================

    @admin.register(Batch)
    class BatchAdmin(admin.ModelAdmin):
        """Batch admin — batches are created by ingestion, edited through the ledger."""

        form = BatchAdminForm
        list_display = ['code', 'product_display', 'quantity_produced', 'allocated_quantity',
                        'remaining_display', 'status', 'expiry_date', 'quality_status']
        list_filter = ['status', 'quality_status', 'expiry_date']
        search_fields = ['code', 'notes']
        readonly_fields = BATCH_READONLY_FIELDS
        date_hierarchy = 'manufacturing_date'
        actions = [reverse_batches, expire_batches]

        def has_add_permission(self, request):
            return False

        def has_delete_permission(self, request, obj=None):
            return False

        def save_model(self, request, obj, form, change):
            save_batch_through_ledger(obj, form, request.user)

        @admin.display(description=_('Produto'))
        def product_display(self, obj):
            return str(obj.product) if obj.product else '?'

        @admin.display(description=_('Restante'))
        def remaining_display(self, obj):
            return obj.remaining_quantity

    # =========================================================================
    # STOCK LEVEL ADMIN (read-only)
    # =========================================================================

    @admin.register(StockLevel)
    class StockLevelAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """StockLevel admin — read-only. Levels only change via the ledger."""

        list_display = ['__str__', 'location', 'quantity', 'updated_at']
        list_filter = ['location']
        search_fields = ['object_id', 'location__code']

    # =========================================================================
    # STOCK MOVEMENT ADMIN (read-only ledger)
    # =========================================================================

    @admin.register(StockMovement)
    class StockMovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """StockMovement admin — read-only. Immutable ledger."""

        list_display = ['timestamp', 'location', 'direction', 'quantity',
                        'previous_quantity', 'new_quantity', 'reference_type',
                        'batch_number', 'user']
        list_filter = ['direction', 'reference_type', 'location']
        search_fields = ['batch_number', 'notes']
        date_hierarchy = 'timestamp'

    # =========================================================================
    # PRODUCT STOCK ADMIN (read-only)
    # =========================================================================

    @admin.register(ProductStock)
    class ProductStockAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """ProductStock admin — read-only."""

        list_display = ['__str__', 'stock_quantity', 'recomputed_at', 'updated_at']
        search_fields = ['object_id']

    # =========================================================================
    # AUDIT ADMIN (read-only)
    # =========================================================================

    @admin.register(AuditEntry)
    class AuditEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
        """AuditEntry admin — read-only."""

        list_display = ['timestamp', 'action', 'entity_type', 'entity_id', 'user']
        list_filter = ['action', 'entity_type']
        search_fields = ['entity_id', 'notes']
        date_hierarchy = 'timestamp'
