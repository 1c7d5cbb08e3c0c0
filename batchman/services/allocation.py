"""
Allocation engine — moves a batch's unallocated quantity into locations
and reverses it.

Every single-batch operation runs in one transaction.atomic() with the
batch locked first, then stock levels (by location), then the product
total. Bulk operations process batches one by one, each in its own
transaction, and report per batch.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import DatabaseError, transaction

from batchman.adapters.catalog import get_product_catalog
from batchman.exceptions import StockError, insufficient_batch_quantity
from batchman.models.batch import Batch
from batchman.models.enums import AuditAction, BulkAction, Direction, ReferenceType
from batchman.models.location import Location
from batchman.models.movement import StockMovement
from batchman.services.audit import record_audit, snapshot
from batchman.services.concurrency import retry_on_conflict
from batchman.services.ledger import StockLedger
from batchman.services.projection import ProductTotals, StockLevels
from batchman.services.registry import BatchRegistry, resolve_location

logger = logging.getLogger('batchman')


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Allocation:
    """Quantity to place at a location."""

    location: Location
    quantity: Decimal


@dataclass
class AllocationResult:
    """Outcome of one allocation call on one batch."""

    batch: Batch
    movements: list[StockMovement]
    quantity: Decimal


@dataclass
class ReversalResult:
    """Outcome of reversing a batch. Empty when there was nothing to reverse."""

    batch: Batch
    movements: list[StockMovement] = field(default_factory=list)
    quantity: Decimal = Decimal('0')

    @property
    def was_noop(self) -> bool:
        return not self.movements and self.quantity == 0


@dataclass
class BulkItem:
    """Per-batch line of a bulk report."""

    batch_id: int
    status: str  # allocated, reversed, skipped, failed
    quantity: Decimal = Decimal('0')
    batch_number: str = ''
    error: StockError | None = None

    @property
    def ok(self) -> bool:
        return self.status != 'failed'


@dataclass
class BulkReport:
    """Results of a bulk call. Partial success is normal."""

    action: str
    location: Location
    results: list[BulkItem] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BulkItem]:
        return [r for r in self.results if r.status in ('allocated', 'reversed')]

    @property
    def skipped(self) -> list[BulkItem]:
        return [r for r in self.results if r.status == 'skipped']

    @property
    def failed(self) -> list[BulkItem]:
        return [r for r in self.results if r.status == 'failed']

    @property
    def total_quantity(self) -> Decimal:
        return sum((r.quantity for r in self.succeeded), Decimal('0'))

    def raise_for_failures(self) -> None:
        """
        Raises:
            StockError('PARTIAL_BULK_FAILURE'): If any batch failed
        """
        if not self.failed:
            return
        raise StockError(
            'PARTIAL_BULK_FAILURE',
            message=(
                f"{len(self.failed)} de {len(self.results)} lote(s) falharam: "
                + "; ".join(f"{r.batch_number or r.batch_id}: {r.error}" for r in self.failed)
            ),
            results=[
                {
                    'batch': r.batch_id,
                    'status': r.status,
                    'quantity': r.quantity,
                    'error': r.error.as_dict() if r.error else None,
                }
                for r in self.results
            ],
        )


@dataclass
class FifoResult:
    """Split of a FIFO allocation over batches."""

    allocations: list[tuple[Batch, Decimal]]
    allocated: Decimal
    unallocated: Decimal


# ══════════════════════════════════════════════════════════════
# ENGINE
# ══════════════════════════════════════════════════════════════


class AllocationEngine:
    """Allocation and reversal methods."""

    @classmethod
    @retry_on_conflict
    def allocate_to_locations(cls, batch_id, allocations, user=None, notes: str = '') -> AllocationResult:
        """
        Allocate part of a batch's remainder to one or more locations.

        Args:
            batch_id: Batch pk or instance
            allocations: list of Allocation / (location, qty) pairs,
                or {location: qty}. Locations may be instances, pks or codes.

        Raises:
            StockError('INVALID_QUANTITY'): Negative quantity
            StockError('INVALID_ALLOCATION'): Malformed or all-zero request
            StockError('LOCATION_NOT_FOUND'): Unknown location
            StockError('BATCH_NOT_FOUND'): Unknown batch
            StockError('INSUFFICIENT_BATCH_QUANTITY'): Not enough remaining

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the batch, then each StockLevel, then the ProductStock
            - Capacity is checked after the batch lock
        """
        entries = cls._normalize(allocations)

        with transaction.atomic():
            batch = BatchRegistry.get_batch(batch_id, lock=True)
            return cls._allocate_locked(batch, entries, user=user, notes=notes)

    @classmethod
    @retry_on_conflict
    def reverse_batch_allocations(cls, batch_id, user=None, notes: str = '') -> ReversalResult:
        """
        Undo every open allocation of a batch.

        Writes a compensating OUT movement per allocation movement,
        shrinks (or deletes) stock levels, recomputes the product total
        from the surviving levels and resets the batch to nothing
        allocated. A batch with nothing allocated is left untouched.

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the batch, then each StockLevel, then the ProductStock
        """
        with transaction.atomic():
            batch = BatchRegistry.get_batch(batch_id, lock=True)
            return cls.reverse_locked(batch, user=user, notes=notes)

    @classmethod
    def bulk_allocate_to_location(cls, batch_ids, location, action: str = BulkAction.ALLOCATE,
                                  user=None) -> BulkReport:
        """
        Apply one action to many batches.

        ALLOCATE: each batch's entire remainder goes to ``location``;
                  fully allocated batches are skipped.
        REVERSE:  each batch is fully reversed, wherever it was allocated.

        Each batch runs in its own transaction. A failing batch is
        reported and the rest continue.

        Raises:
            StockError('INVALID_ALLOCATION'): Unknown action
            StockError('LOCATION_NOT_FOUND'): Unknown location
        """
        if action not in BulkAction.values:
            raise StockError(
                'INVALID_ALLOCATION',
                message=f"Ação em massa desconhecida: {action}",
                action=action,
            )
        location = resolve_location(location)
        if location is None:
            raise StockError('LOCATION_NOT_FOUND', location=None)

        report = BulkReport(action=action, location=location)

        for batch_id in batch_ids:
            pk = batch_id.pk if isinstance(batch_id, Batch) else batch_id
            try:
                if action == BulkAction.ALLOCATE:
                    result = cls._allocate_remaining(pk, location, user=user)
                    if result is None:
                        item = BulkItem(pk, 'skipped')
                    else:
                        item = BulkItem(pk, 'allocated', result.quantity, result.batch.code)
                else:
                    result = cls.reverse_batch_allocations(pk, user=user, notes=f"Estorno em massa ({location.code})")
                    status = 'skipped' if result.was_noop else 'reversed'
                    item = BulkItem(pk, status, result.quantity, result.batch.code)
            except (StockError, DatabaseError) as exc:
                error = exc if isinstance(exc, StockError) else StockError(
                    'CONCURRENCY_CONFLICT', message=str(exc), batch=pk,
                )
                logger.warning(
                    "batch.bulk.item_failed",
                    extra={"batch_id": pk, "action": action, "error": str(error)},
                )
                item = BulkItem(pk, 'failed', error=error, batch_number=_batch_code(pk))
            report.results.append(item)

        logger.info(
            "batch.bulk",
            extra={
                "action": action,
                "location": location.code,
                "succeeded": len(report.succeeded),
                "skipped": len(report.skipped),
                "failed": len(report.failed),
                "qty": str(report.total_quantity),
            },
        )
        return report

    @classmethod
    @retry_on_conflict
    def allocate_fifo(cls, product, location, quantity: Decimal, user=None) -> FifoResult:
        """
        Allocate a quantity of a product from its oldest active batches.

        Batches are consumed by manufacturing date, then creation. A
        shortfall is not an error: it is returned as ``unallocated``.

        Raises:
            StockError('INVALID_QUANTITY'): quantity <= 0
            StockError('PRODUCT_NOT_FOUND'): Product not in the catalog
            StockError('LOCATION_NOT_FOUND'): Unknown location

        Concurrency:
            - Runs under transaction.atomic()
            - Locks all candidate batches in pk order
        """
        quantity = _as_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if not get_product_catalog().exists(product):
            raise StockError('PRODUCT_NOT_FOUND', product=str(product))
        location = resolve_location(location)
        if location is None:
            raise StockError('LOCATION_NOT_FOUND', location=None)

        splits = []
        remaining = quantity

        with transaction.atomic():
            candidates = list(
                Batch.objects.select_for_update().for_product(product).allocatable().order_by('pk')
            )
            candidates.sort(key=lambda b: (
                b.manufacturing_date is None,
                b.manufacturing_date or date.max,
                b.created_at,
                b.pk,
            ))

            for batch in candidates:
                if remaining <= 0:
                    break
                take = min(batch.remaining_quantity, remaining)
                if take <= 0:
                    continue
                cls._allocate_locked(
                    batch, [Allocation(location, take)], user=user,
                    notes=f"Alocação FIFO do lote {batch.code}",
                )
                splits.append((batch, take))
                remaining -= take

        if remaining > 0:
            logger.warning(
                "batch.fifo.shortfall",
                extra={
                    "product": str(product),
                    "location": location.code,
                    "requested": str(quantity),
                    "unallocated": str(remaining),
                },
            )
        return FifoResult(allocations=splits, allocated=quantity - remaining, unallocated=remaining)

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @retry_on_conflict
    def _allocate_remaining(cls, batch_id, location: Location, user=None) -> AllocationResult | None:
        """Allocate a batch's whole remainder to one location; None if nothing remains."""
        with transaction.atomic():
            batch = BatchRegistry.get_batch(batch_id, lock=True)
            remaining = batch.remaining_quantity
            if remaining <= 0:
                return None
            return cls._allocate_locked(
                batch, [Allocation(location, remaining)], user=user,
                notes=f"Alocação em massa do lote {batch.code} para {location.name}",
            )

    @classmethod
    def _allocate_locked(cls, batch: Batch, entries: list[Allocation], user=None,
                         notes: str = '') -> AllocationResult:
        """Allocate on an already locked batch. Caller owns the transaction."""
        total = sum((e.quantity for e in entries), Decimal('0'))
        if total <= 0:
            raise StockError(
                'INVALID_ALLOCATION',
                message=f"Lote {batch.code}: nenhuma quantidade positiva para alocar",
                batch=batch.code,
            )
        if batch.allocated_quantity + total > batch.quantity_produced:
            raise insufficient_batch_quantity(batch, total)

        product = cls._product_of(batch)
        before = snapshot(batch)
        movements = []

        for entry in sorted(entries, key=lambda e: e.location.pk):
            if entry.quantity <= 0:
                continue
            movements.append(StockLedger.post(
                product,
                entry.location,
                Direction.IN,
                entry.quantity,
                ReferenceType.BATCH_ALLOCATION,
                reference_id=batch.pk,
                batch_number=batch.code,
                user=user,
                notes=notes or f"Alocado do lote {batch.code}",
            ))

        batch.allocated_quantity += total
        batch.status = batch.derive_status()
        batch.save(update_fields=['allocated_quantity', 'status', 'updated_at'])

        ProductTotals.increment(product, total)

        record_audit(
            AuditAction.BATCH_ALLOCATED, batch,
            before=before, after=snapshot(batch), user=user,
            notes=f"{total} alocado em " + ", ".join(
                f"{m.location.code}: {m.quantity}" for m in movements
            ),
        )
        logger.info(
            "batch.allocate",
            extra={
                "batch": batch.code,
                "product": str(product),
                "qty": str(total),
                "locations": [m.location.code for m in movements],
            },
        )
        return AllocationResult(batch=batch, movements=movements, quantity=total)

    @classmethod
    def reverse_locked(cls, batch: Batch, user=None, notes: str = '') -> ReversalResult:
        """Reverse on an already locked batch. Caller owns the transaction."""
        open_moves = list(StockLedger.open_allocations(batch))
        if batch.allocated_quantity == 0 and not open_moves:
            return ReversalResult(batch=batch)

        product = cls._product_of(batch)
        before = snapshot(batch)
        compensations = []
        watermark = batch.reversal_watermark

        for move in open_moves:
            watermark = max(watermark, move.pk)
            level = StockLevels.lock(product, move.location)
            removed = min(move.quantity, max(level.quantity, Decimal('0')))

            if removed <= 0:
                StockLevels.store(level, level.quantity, drop_empty=True)
                logger.warning(
                    "batch.reverse.level_empty",
                    extra={
                        "batch": batch.code,
                        "location": move.location.code,
                        "expected": str(move.quantity),
                    },
                )
                continue

            compensations.append(StockLedger.post(
                product,
                move.location,
                Direction.OUT,
                removed,
                ReferenceType.BATCH_DEALLOCATION,
                reference_id=batch.pk,
                batch_number=batch.code,
                user=user,
                notes=notes or f"Estorno da alocação do lote {batch.code}",
                drop_empty=True,
                reverses=move.pk,
                requested=str(move.quantity),
            ))

        ProductTotals.recompute(product)

        reversed_qty = sum((m.quantity for m in compensations), Decimal('0'))
        batch.allocated_quantity = Decimal('0')
        batch.status = batch.derive_status()
        batch.reversal_watermark = watermark
        batch.save(update_fields=['allocated_quantity', 'status', 'reversal_watermark', 'updated_at'])

        record_audit(
            AuditAction.BATCH_REVERSED, batch,
            before=before, after=snapshot(batch), user=user,
            notes=f"{reversed_qty} estornado de {len(compensations)} local(is)",
        )
        logger.info(
            "batch.reverse",
            extra={
                "batch": batch.code,
                "product": str(product),
                "qty": str(reversed_qty),
                "moves": len(compensations),
            },
        )
        return ReversalResult(batch=batch, movements=compensations, quantity=reversed_qty)

    @classmethod
    def _product_of(cls, batch: Batch):
        product = batch.product
        if product is None:
            raise StockError(
                'PRODUCT_NOT_FOUND',
                message=f"Lote {batch.code}: produto {batch.object_id} não existe mais",
                batch=batch.code,
                product=batch.object_id,
            )
        return product

    @classmethod
    def _normalize(cls, allocations) -> list[Allocation]:
        """
        Validate and merge an allocation request before any write.

        Duplicate locations are summed.
        """
        if isinstance(allocations, dict):
            pairs = list(allocations.items())
        else:
            pairs = []
            for item in allocations or []:
                if isinstance(item, Allocation):
                    pairs.append((item.location, item.quantity))
                elif isinstance(item, (tuple, list)) and len(item) == 2:
                    pairs.append((item[0], item[1]))
                else:
                    raise StockError(
                        'INVALID_ALLOCATION',
                        message=f"Item de alocação inválido: {item!r}",
                        item=repr(item),
                    )

        if not pairs:
            raise StockError('INVALID_ALLOCATION', message="Nenhuma alocação informada")

        merged: dict[int, Allocation] = {}
        for raw_location, raw_quantity in pairs:
            quantity = _as_quantity(raw_quantity)
            location = resolve_location(raw_location)
            if location is None:
                raise StockError('LOCATION_NOT_FOUND', location=raw_location)
            if quantity < 0:
                raise StockError(
                    'INVALID_QUANTITY',
                    message=f"Quantidade negativa para {location.code}: {quantity}",
                    location=location.code,
                    requested=quantity,
                )
            if location.pk in merged:
                quantity += merged[location.pk].quantity
            merged[location.pk] = Allocation(location, quantity)

        entries = list(merged.values())
        if not any(e.quantity > 0 for e in entries):
            raise StockError(
                'INVALID_ALLOCATION',
                message="Pelo menos uma quantidade deve ser positiva",
            )
        return entries


def _as_quantity(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise StockError(
            'INVALID_ALLOCATION',
            message=f"Quantidade inválida: {value!r}",
            requested=str(value),
        )


def _batch_code(batch_id) -> str:
    """Batch number for a report line; empty when the batch does not exist."""
    return Batch.objects.filter(pk=batch_id).values_list('code', flat=True).first() or ''
