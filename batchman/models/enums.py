"""
Enums for Batchman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LocationKind(models.TextChoices):
    """
    Type of location holding stock.

    WAREHOUSE: Fixed storage (depósito, câmara fria, loja).
    VEHICLE:   Delivery vehicle carrying stock on a route.
    """
    WAREHOUSE = 'warehouse', _('Depósito')
    VEHICLE = 'vehicle', _('Veículo')


class QualityStatus(models.TextChoices):
    """Quality control result of a batch."""
    PENDING = 'pending', _('Pendente')
    PASSED = 'passed', _('Aprovado')
    FAILED = 'failed', _('Reprovado')


class BatchStatus(models.TextChoices):
    """
    Batch lifecycle status.

    ACTIVE and DEPLETED are driven by allocation bookkeeping.
    EXPIRED and QUARANTINE are set manually (or by the expiry job).
    """
    ACTIVE = 'active', _('Ativo')
    EXPIRED = 'expired', _('Vencido')
    DEPLETED = 'depleted', _('Esgotado')
    QUARANTINE = 'quarantine', _('Quarentena')


class Direction(models.TextChoices):
    """Direction of a stock movement."""
    IN = 'in', _('Entrada')
    OUT = 'out', _('Saída')


class ReferenceType(models.TextChoices):
    """What caused a stock movement."""
    BATCH_ALLOCATION = 'batch_allocation', _('Alocação de lote')
    BATCH_DEALLOCATION = 'batch_deallocation', _('Estorno de alocação')
    SALE = 'sale', _('Venda')
    MANUAL = 'manual', _('Manual')
    ADJUSTMENT = 'adjustment', _('Ajuste')


class AuditAction(models.TextChoices):
    """Mutating actions recorded in the audit trail."""
    BATCH_CREATED = 'batch_created', _('Lote criado')
    BATCH_UPDATED = 'batch_updated', _('Lote alterado')
    BATCH_DELETED = 'batch_deleted', _('Lote excluído')
    BATCH_ALLOCATED = 'batch_allocated', _('Lote alocado')
    BATCH_REVERSED = 'batch_reversed', _('Alocação estornada')
    BATCH_EXPIRED = 'batch_expired', _('Lote vencido')
    STOCK_RECEIVED = 'stock_received', _('Entrada de estoque')
    STOCK_ISSUED = 'stock_issued', _('Saída de estoque')
    STOCK_ADJUSTED = 'stock_adjusted', _('Ajuste de estoque')
    STOCK_RECONCILED = 'stock_reconciled', _('Estoque reconciliado')


class BulkAction(models.TextChoices):
    """Action applied by bulk_allocate_to_location."""
    ALLOCATE = 'allocate', _('Alocar')
    REVERSE = 'reverse', _('Estornar')
