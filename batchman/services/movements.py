"""
Stock movements — state-changing operations outside batch allocation
(receive, issue, adjust).

All methods use transaction.atomic() and go through StockLedger.post(),
so the level, the product total and the ledger move together.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from batchman.adapters.catalog import get_product_catalog
from batchman.exceptions import StockError
from batchman.models.enums import AuditAction, Direction, ReferenceType
from batchman.models.movement import StockMovement
from batchman.services.audit import record_audit
from batchman.services.concurrency import retry_on_conflict
from batchman.services.ledger import StockLedger
from batchman.services.projection import ProductTotals, StockLevels
from batchman.services.registry import resolve_location

logger = logging.getLogger('batchman')


class StockMovements:
    """State-changing stock movement methods."""

    @classmethod
    @retry_on_conflict
    def receive(cls, quantity: Decimal, product, location, reference_type: str = ReferenceType.MANUAL,
                reference_id=None, user=None, notes: str = 'Recebimento', **metadata) -> StockMovement:
        """
        Stock entry at a location.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
            StockError('LOCATION_NOT_FOUND'): Unknown location
            StockError('PRODUCT_NOT_FOUND'): Product not in the catalog

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the StockLevel, then the ProductStock
        """
        quantity, location = cls._prepare(quantity, product, location)

        with transaction.atomic():
            move = StockLedger.post(
                product, location, Direction.IN, quantity, reference_type,
                reference_id=reference_id, user=user, notes=notes, **metadata,
            )
            ProductTotals.increment(product, quantity)
            record_audit(
                AuditAction.STOCK_RECEIVED, move, user=user,
                after=_move_summary(move), notes=notes,
            )

        logger.info(
            "stock.receive",
            extra={
                "product": str(product),
                "qty": str(quantity),
                "location": location.code,
                "move_id": move.pk,
            },
        )
        return move

    @classmethod
    @retry_on_conflict
    def issue(cls, quantity: Decimal, product, location, reference_type: str = ReferenceType.SALE,
              reference_id=None, user=None, notes: str = 'Saída', **metadata) -> StockMovement:
        """
        Stock exit from a location.

        Raises:
            StockError('INSUFFICIENT_QUANTITY'): If quantity > level
            StockError('INVALID_QUANTITY'): If quantity <= 0

        Concurrency:
            - Runs under transaction.atomic()
            - Verifies the level after locking it
        """
        quantity, location = cls._prepare(quantity, product, location)

        with transaction.atomic():
            level = StockLevels.lock(product, location)
            if level.quantity < quantity:
                raise StockError(
                    'INSUFFICIENT_QUANTITY',
                    message=(
                        f"{product} em {location.code}: solicitado {quantity}, "
                        f"disponível {level.quantity}"
                    ),
                    available=level.quantity,
                    requested=quantity,
                    location=location.code,
                )

            move = StockLedger.post(
                product, location, Direction.OUT, quantity, reference_type,
                reference_id=reference_id, user=user, notes=notes, **metadata,
            )
            ProductTotals.increment(product, -quantity)
            record_audit(
                AuditAction.STOCK_ISSUED, move, user=user,
                after=_move_summary(move), notes=notes,
            )

        logger.info(
            "stock.issue",
            extra={
                "product": str(product),
                "qty": str(quantity),
                "location": location.code,
                "move_id": move.pk,
            },
        )
        return move

    @classmethod
    @retry_on_conflict
    def adjust(cls, product, location, new_quantity: Decimal, reason: str,
               user=None) -> StockMovement | None:
        """
        Inventory adjustment.

        Movement quantity is new_quantity - current level, in the matching
        direction. Returns None when the level already matches.

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('INVALID_QUANTITY'): If new_quantity < 0
        """
        if not reason:
            raise StockError('REASON_REQUIRED')
        new_quantity = _as_quantity(new_quantity)
        if new_quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=new_quantity)
        location = resolve_location(location)
        if location is None:
            raise StockError('LOCATION_NOT_FOUND', location=None)

        with transaction.atomic():
            level = StockLevels.lock(product, location)
            delta = new_quantity - level.quantity
            if delta == 0:
                return None

            direction = Direction.IN if delta > 0 else Direction.OUT
            move = StockLedger.post(
                product, location, direction, abs(delta), ReferenceType.ADJUSTMENT,
                user=user, notes=f"Ajuste: {reason}", reason=reason,
            )
            ProductTotals.increment(product, delta)
            record_audit(
                AuditAction.STOCK_ADJUSTED, move, user=user,
                after=_move_summary(move), notes=reason,
            )

        logger.info(
            "stock.adjust",
            extra={
                "product": str(product),
                "location": location.code,
                "delta": str(delta),
                "reason": reason,
            },
        )
        return move

    @classmethod
    def _prepare(cls, quantity, product, location):
        quantity = _as_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if not get_product_catalog().exists(product):
            raise StockError('PRODUCT_NOT_FOUND', product=str(product))
        location = resolve_location(location)
        if location is None:
            raise StockError('LOCATION_NOT_FOUND', location=None)
        return quantity, location


def _as_quantity(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise StockError('INVALID_QUANTITY', requested=value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise StockError('INVALID_QUANTITY', requested=str(value))


def _move_summary(move: StockMovement) -> dict:
    return {
        'location': move.location.code,
        'direction': move.direction,
        'quantity': move.quantity,
        'previous_quantity': move.previous_quantity,
        'new_quantity': move.new_quantity,
        'reference_type': move.reference_type,
    }
