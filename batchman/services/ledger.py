"""
Stock ledger — append-only log of movements, the source of truth.

post() is the only way quantity enters or leaves a location: it locks
the StockLevel, appends the StockMovement with before/after snapshots
and writes the new level, all in the caller's transaction.
"""

from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce

from batchman.exceptions import StockError
from batchman.models.enums import Direction
from batchman.models.location import Location
from batchman.models.movement import SIGNED_QUANTITY, StockMovement
from batchman.services.projection import StockLevels


class StockLedger:
    """Ledger writes and batch-scoped ledger reads."""

    @classmethod
    def post(cls, product, location: Location, direction: str, quantity: Decimal,
             reference_type: str, reference_id=None, batch_number: str = '',
             user=None, notes: str = '', drop_empty: bool = False,
             **metadata) -> StockMovement:
        """
        Append one movement and apply it to the stock level.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
        """
        if quantity is None or quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity, location=location.code)

        with transaction.atomic():
            level = StockLevels.lock(product, location)
            previous = level.quantity
            if direction == Direction.IN:
                new = previous + quantity
            else:
                new = previous - quantity

            movement = StockMovement.objects.create(
                content_type=ContentType.objects.get_for_model(product),
                object_id=product.pk,
                location=location,
                direction=direction,
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=new,
                reference_type=reference_type,
                reference_id=reference_id,
                batch_number=batch_number,
                user=user if getattr(user, 'pk', None) else None,
                notes=notes[:255],
                metadata=metadata,
            )
            StockLevels.store(level, new, drop_empty=drop_empty)
            return movement

    @classmethod
    def movements_for_batch(cls, batch):
        """All movements of a batch, allocations and reversals."""
        return StockMovement.objects.for_batch(batch).select_related('location')

    @classmethod
    def open_allocations(cls, batch):
        """
        Allocation movements not yet covered by a reversal.

        Reversal is always total, so everything above the batch's
        watermark belongs to the current allocation cycle.
        """
        return cls.movements_for_batch(batch).allocations().filter(
            pk__gt=batch.reversal_watermark
        ).order_by('location_id', 'pk')

    @classmethod
    def open_allocated_quantity(cls, batch) -> Decimal:
        """What the ledger says the batch has allocated in its current cycle."""
        return cls.open_allocations(batch).aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    @classmethod
    def purge_batch(cls, batch) -> int:
        """Delete every movement of the batch. Only used by batch deletion."""
        return StockMovement.objects.purge_for_batch(batch)

    @classmethod
    def unbalanced_locations(cls, batch) -> dict[str, Decimal]:
        """
        Locations where the batch's own movements do not net to zero.

        Purging such a batch would change the ledger sum at that location,
        so the level would no longer match its movements.
        """
        rows = StockMovement.objects.for_batch(batch).order_by().values(
            'location__code'
        ).annotate(net=Sum(SIGNED_QUANTITY))
        return {row['location__code']: row['net'] for row in rows if row['net']}
