"""
Batch registry — creation, update, expiry and deletion of batches.

allocated_quantity is not touched here; see services.allocation.
"""

import logging
import random
from datetime import date
from decimal import Decimal, InvalidOperation

from django.contrib.contenttypes.models import ContentType
from django.db import IntegrityError, transaction

from batchman.adapters.catalog import get_product_catalog
from batchman.conf import batchman_settings
from batchman.exceptions import StockError
from batchman.models.batch import Batch
from batchman.models.enums import AuditAction, BatchStatus, QualityStatus
from batchman.models.location import Location
from batchman.protocols.intake import BatchRequest
from batchman.services.audit import record_audit, snapshot
from batchman.services.concurrency import retry_on_conflict
from batchman.services.ledger import StockLedger

logger = logging.getLogger('batchman')

# Never patchable through update_batch()
IMMUTABLE_FIELDS = frozenset({
    'id', 'pk', 'code', 'allocated_quantity', 'reversal_watermark',
    'created_at', 'updated_at', 'content_type', 'object_id',
})

# Statuses a user may set; DEPLETED is derived from allocation
SETTABLE_STATUSES = (BatchStatus.ACTIVE, BatchStatus.EXPIRED, BatchStatus.QUARANTINE)

DECIMAL_FIELDS = ('quantity_produced', 'weight', 'cost_price', 'wastage_quantity', 'wastage_cost')


def resolve_location(value) -> Location | None:
    """Location instance, pk or code → Location."""
    if value is None or value == '':
        return None
    if isinstance(value, Location):
        return value
    lookup = {'pk': value} if isinstance(value, int) else {'code': value}
    try:
        return Location.objects.get(**lookup)
    except Location.DoesNotExist:
        raise StockError(
            'LOCATION_NOT_FOUND',
            message=f"Local não encontrado: {value}",
            location=value,
        )


class BatchRegistry:
    """Batch CRUD methods."""

    @classmethod
    def get_batch(cls, batch_id, lock: bool = False) -> Batch:
        """
        Fetch a batch by pk (or return the instance, refreshed when locking).

        Raises:
            StockError('BATCH_NOT_FOUND')
        """
        pk = batch_id.pk if isinstance(batch_id, Batch) else batch_id
        qs = Batch.objects.select_for_update() if lock else Batch.objects.all()
        try:
            return qs.get(pk=pk)
        except (Batch.DoesNotExist, ValueError, TypeError):
            raise StockError(
                'BATCH_NOT_FOUND',
                message=f"Lote não encontrado: {pk}",
                batch=pk,
            )

    @classmethod
    def generate_batch_number(cls, day: date | None = None) -> str:
        """BATCH-YYYYMMDD-NNNN with four random digits. Not unique by itself."""
        day = day or date.today()
        prefix = batchman_settings.BATCH_NUMBER_PREFIX
        return f"{prefix}-{day:%Y%m%d}-{random.randint(1000, 9999)}"

    # ══════════════════════════════════════════════════════════════
    # CREATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_batch(cls, request: BatchRequest, user=None) -> Batch:
        """
        Create a batch with nothing allocated.

        The batch number comes from request.code or is generated; a
        taken number is retried with a new suffix up to
        BATCH_NUMBER_ATTEMPTS times.

        Raises:
            StockError('PRODUCT_NOT_FOUND'): Product not in the catalog
            StockError('INVALID_QUANTITY'): Negative quantity
            StockError('INVALID_REQUEST'): Expiry before manufacturing
            StockError('LOCATION_NOT_FOUND'): Unknown initial location
            StockError('BATCH_NUMBER_COLLISION'): No free batch number
        """
        product = request.product
        catalog = get_product_catalog()
        if not catalog.exists(product):
            raise StockError(
                'PRODUCT_NOT_FOUND',
                message=f"Produto não encontrado: {product}",
                product=str(product),
            )

        for name in ('quantity_produced', 'wastage_quantity', 'wastage_cost', 'cost_price'):
            value = getattr(request, name)
            if value is None or value < 0:
                raise StockError(
                    'INVALID_QUANTITY',
                    message=f"{name} deve ser >= 0 (recebido {value})",
                    field=name,
                    requested=value,
                )

        if (request.manufacturing_date and request.expiry_date
                and request.expiry_date < request.manufacturing_date):
            raise StockError(
                'INVALID_REQUEST',
                message=(
                    f"Validade {request.expiry_date} anterior à fabricação "
                    f"{request.manufacturing_date}"
                ),
                field='expiry_date',
            )

        if request.quality_status not in QualityStatus.values:
            raise StockError('INVALID_REQUEST', field='quality_status')

        initial_location = resolve_location(request.initial_location)
        produced_by = request.produced_by or user
        attempts = max(1, batchman_settings.BATCH_NUMBER_ATTEMPTS)

        for attempt in range(1, attempts + 1):
            code = request.code or cls.generate_batch_number(request.manufacturing_date)
            try:
                with transaction.atomic():
                    batch = Batch.objects.create(
                        code=code,
                        content_type=ContentType.objects.get_for_model(product),
                        object_id=product.pk,
                        quantity_produced=request.quantity_produced,
                        manufacturing_date=request.manufacturing_date,
                        expiry_date=request.expiry_date,
                        rolls=request.rolls,
                        weight=request.weight,
                        cost_price=request.cost_price,
                        quality_status=request.quality_status,
                        status=BatchStatus.ACTIVE,
                        initial_location=initial_location,
                        produced_by=produced_by if getattr(produced_by, 'pk', None) else None,
                        wastage_quantity=request.wastage_quantity,
                        wastage_cost=request.wastage_cost,
                        notes=request.notes,
                    )
                break
            except IntegrityError:
                logger.warning(
                    "batch.number_collision",
                    extra={"code": code, "attempt": attempt},
                )
                if request.code:
                    raise StockError(
                        'BATCH_NUMBER_COLLISION',
                        message=f"Número de lote já existe: {code}",
                        batch=code,
                    )
        else:
            raise StockError('BATCH_NUMBER_COLLISION', attempts=attempts)

        record_audit(AuditAction.BATCH_CREATED, batch, after=snapshot(batch), user=user)
        logger.info(
            "batch.create",
            extra={
                "batch": batch.code,
                "product": str(product),
                "qty": str(batch.quantity_produced),
            },
        )
        return batch

    # ══════════════════════════════════════════════════════════════
    # UPDATE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @retry_on_conflict
    def update_batch(cls, batch_id, patch: dict, user=None) -> Batch:
        """
        Patch batch fields.

        Any editable field except the batch number and allocated_quantity.
        'product' may change only while nothing is allocated. 'status'
        accepts active/expired/quarantine; depleted follows allocation.

        Raises:
            StockError('INVALID_FIELD'): Immutable or unknown field
            StockError('INVALID_STATUS'): Status not settable
            StockError('INVALID_QUANTITY'): quantity_produced below allocated
            StockError('BATCH_ALLOCATED'): Product change with allocations
        """
        editable = {
            f.name for f in Batch._meta.concrete_fields if f.editable
        } - IMMUTABLE_FIELDS
        editable |= {'product'}

        for key in patch:
            if key not in editable:
                raise StockError(
                    'INVALID_FIELD',
                    message=f"Campo não pode ser alterado: {key}",
                    field=key,
                )

        with transaction.atomic():
            batch = cls.get_batch(batch_id, lock=True)
            before = snapshot(batch)
            values = dict(patch)

            if 'status' in values and values['status'] not in SETTABLE_STATUSES:
                raise StockError(
                    'INVALID_STATUS',
                    message=f"Lote {batch.code}: status '{values['status']}' não pode ser definido",
                    batch=batch.code,
                    current=batch.status,
                    requested=values['status'],
                )

            if 'product' in values:
                product = values.pop('product')
                if batch.allocated_quantity > 0:
                    raise StockError(
                        'BATCH_ALLOCATED',
                        message=(
                            f"Lote {batch.code}: produto não pode mudar com "
                            f"{batch.allocated_quantity} alocado"
                        ),
                        batch=batch.code,
                        allocated=batch.allocated_quantity,
                    )
                if not get_product_catalog().exists(product):
                    raise StockError('PRODUCT_NOT_FOUND', product=str(product))
                batch.content_type = ContentType.objects.get_for_model(product)
                batch.object_id = product.pk

            if values.get('quality_status', QualityStatus.PENDING) not in QualityStatus.values:
                raise StockError('INVALID_REQUEST', field='quality_status', batch=batch.code)

            if 'initial_location' in values:
                values['initial_location'] = resolve_location(values['initial_location'])

            for name in DECIMAL_FIELDS:
                if values.get(name) is not None:
                    values[name] = _as_decimal(name, values[name])

            if 'quantity_produced' in values:
                produced = values['quantity_produced']
                if produced is None or produced < 0 or produced < batch.allocated_quantity:
                    raise StockError(
                        'INVALID_QUANTITY',
                        message=(
                            f"Lote {batch.code}: quantidade produzida {produced} "
                            f"menor que alocada {batch.allocated_quantity}"
                        ),
                        batch=batch.code,
                        requested=produced,
                        allocated=batch.allocated_quantity,
                    )

            for name, value in values.items():
                setattr(batch, name, value)

            if values.get('status') not in (BatchStatus.EXPIRED, BatchStatus.QUARANTINE):
                batch.status = batch.derive_status()
            batch.save()

            record_audit(
                AuditAction.BATCH_UPDATED, batch,
                before=before, after=snapshot(batch), user=user,
            )

        logger.info(
            "batch.update",
            extra={"batch": batch.code, "fields": sorted(patch)},
        )
        return batch

    @classmethod
    def expire_batches(cls, today: date | None = None, user=None) -> list[Batch]:
        """
        Mark active/depleted batches past their expiry date as EXPIRED.

        Usage:
            Call daily via cron (manage.py expire_batches).

        Returns:
            Batches that were marked
        """
        today = today or date.today()
        marked = []

        with transaction.atomic():
            candidates = Batch.objects.select_for_update(skip_locked=True).expired(today).filter(
                status__in=[BatchStatus.ACTIVE, BatchStatus.DEPLETED]
            )
            for batch in candidates:
                before = snapshot(batch)
                batch.status = BatchStatus.EXPIRED
                batch.save(update_fields=['status', 'updated_at'])
                record_audit(
                    AuditAction.BATCH_EXPIRED, batch,
                    before=before, after=snapshot(batch), user=user,
                    notes=f"Vencido em {batch.expiry_date}",
                )
                marked.append(batch)

        if marked:
            logger.info("batch.expire", extra={"count": len(marked)})
        return marked

    # ══════════════════════════════════════════════════════════════
    # DELETE (PURGE)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @retry_on_conflict
    def delete_batch(cls, batch_id, user=None) -> int:
        """
        Purge a batch: full reversal, then delete the batch and every
        movement that references it.

        This is the only operation that removes ledger history. A batch
        whose stock was already issued or moved out cannot be purged: its
        movements no longer cancel out and removing them would leave the
        levels out of step with the ledger.

        Returns:
            Number of movements removed

        Raises:
            StockError('BATCH_CONSUMED'): Allocated stock left a location
                other than through reversal
        """
        from batchman.services.allocation import AllocationEngine

        with transaction.atomic():
            batch = cls.get_batch(batch_id, lock=True)
            before = snapshot(batch)
            code, pk = batch.code, batch.pk

            AllocationEngine.reverse_locked(batch, user=user)
            unbalanced = StockLedger.unbalanced_locations(batch)
            if unbalanced:
                raise StockError(
                    'BATCH_CONSUMED',
                    message=(
                        f"Lote {code}: estoque já movimentado em "
                        f"{', '.join(sorted(unbalanced))}; use o estorno em vez da exclusão"
                    ),
                    batch=code,
                    locations={loc: str(net) for loc, net in unbalanced.items()},
                )
            purged = cls._purge(batch)

            record_audit(
                AuditAction.BATCH_DELETED,
                before=before,
                user=user,
                entity_type='batch',
                entity_id=pk,
                notes=f"Lote {code} excluído; {purged} movimento(s) removido(s)",
            )

        logger.info("batch.delete", extra={"batch": code, "purged_moves": purged})
        return purged

    @classmethod
    def _purge(cls, batch) -> int:
        purged = StockLedger.purge_batch(batch)
        batch.delete()
        return purged


def _as_decimal(name: str, value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise StockError('INVALID_QUANTITY', message=f"Número inválido em {name}: {value!r}", field=name)
