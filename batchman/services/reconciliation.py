"""
Reconciliation — compares projections with the ledger.

Usage:
    report = Reconciliation.run()             # detect only
    report = Reconciliation.run(repair=True)  # rewrite levels and totals

Checks, in order:
1. StockLevel.quantity == signed sum of movements per (product, location)
2. ProductStock.stock_quantity == sum of the product's StockLevel rows
3. Batch.allocated_quantity == open allocation movements of the batch

Batch mismatches are reported only; levels and totals can be rewritten.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.contrib.contenttypes.models import ContentType
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Sum

from batchman.models.batch import Batch
from batchman.models.enums import AuditAction
from batchman.models.level import StockLevel
from batchman.models.location import Location
from batchman.models.movement import SIGNED_QUANTITY, StockMovement
from batchman.models.product_stock import ProductStock
from batchman.services.audit import record_audit
from batchman.services.ledger import StockLedger
from batchman.services.projection import ProductTotals, StockLevels

logger = logging.getLogger('batchman')

ZERO = Decimal('0')


@dataclass
class Mismatch:
    """One projection that disagrees with its source."""

    kind: str  # level, total, batch
    key: str
    expected: Decimal
    actual: Decimal
    repaired: bool = False

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected


@dataclass
class ReconciliationReport:
    levels_checked: int = 0
    totals_checked: int = 0
    batches_checked: int = 0
    mismatches: list[Mismatch] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatches

    def of_kind(self, kind: str) -> list[Mismatch]:
        return [m for m in self.mismatches if m.kind == kind]


class Reconciliation:
    """Integrity check between the ledger and its projections."""

    @classmethod
    def run(cls, repair: bool = False, user=None) -> ReconciliationReport:
        report = ReconciliationReport()
        cls._check_levels(report, repair)
        cls._check_totals(report, repair)
        cls._check_batches(report)

        logger.info(
            "stock.reconcile",
            extra={
                "levels": report.levels_checked,
                "totals": report.totals_checked,
                "batches": report.batches_checked,
                "mismatches": len(report.mismatches),
                "repair": repair,
            },
        )
        if repair and report.mismatches:
            record_audit(
                AuditAction.STOCK_RECONCILED,
                entity_type='ledger',
                after={
                    'mismatches': [
                        {'kind': m.kind, 'key': m.key, 'expected': m.expected,
                         'actual': m.actual, 'repaired': m.repaired}
                        for m in report.mismatches
                    ],
                },
                user=user,
                notes=f"{sum(m.repaired for m in report.mismatches)} projeção(ões) corrigida(s)",
            )
        return report

    @classmethod
    def _check_levels(cls, report: ReconciliationReport, repair: bool) -> None:
        ledger = {
            (row['content_type'], row['object_id'], row['location']): row['total']
            for row in StockMovement.objects.order_by().values(
                'content_type', 'object_id', 'location'
            ).annotate(total=Sum(SIGNED_QUANTITY))
        }
        stored = {
            (ct, oid, loc): qty
            for ct, oid, loc, qty in StockLevel.objects.values_list(
                'content_type', 'object_id', 'location', 'quantity'
            )
        }

        for key in sorted(set(ledger) | set(stored)):
            report.levels_checked += 1
            expected = ledger.get(key) or ZERO
            actual = stored.get(key, ZERO)
            if expected == actual:
                continue

            ct_id, object_id, location_id = key
            mismatch = Mismatch('level', f"{ct_id}:{object_id}@{location_id}", expected, actual)
            cls._warn(mismatch)
            if repair:
                product = cls._product(ct_id, object_id)
                if product is not None:
                    location = Location.objects.get(pk=location_id)
                    with transaction.atomic():
                        StockLevels.recompute(product, location)
                    mismatch.repaired = StockLevels.get(product, location) == expected
            report.mismatches.append(mismatch)

    @classmethod
    def _check_totals(cls, report: ReconciliationReport, repair: bool) -> None:
        sums = {
            (row['content_type'], row['object_id']): row['total']
            for row in StockLevel.objects.order_by().values(
                'content_type', 'object_id'
            ).annotate(total=Sum('quantity'))
        }
        stored = {
            (ct, oid): qty
            for ct, oid, qty in ProductStock.objects.values_list(
                'content_type', 'object_id', 'stock_quantity'
            )
        }

        for key in sorted(set(sums) | set(stored)):
            report.totals_checked += 1
            expected = sums.get(key) or ZERO
            actual = stored.get(key, ZERO)
            if expected == actual:
                continue

            ct_id, object_id = key
            mismatch = Mismatch('total', f"{ct_id}:{object_id}", expected, actual)
            cls._warn(mismatch)
            if repair:
                product = cls._product(ct_id, object_id)
                if product is not None:
                    with transaction.atomic():
                        ProductTotals.recompute(product)
                    mismatch.repaired = ProductTotals.get(product) == expected
            report.mismatches.append(mismatch)

    @classmethod
    def _check_batches(cls, report: ReconciliationReport) -> None:
        for batch in Batch.objects.order_by('pk').iterator():
            report.batches_checked += 1
            expected = StockLedger.open_allocated_quantity(batch)
            if expected == batch.allocated_quantity:
                continue
            mismatch = Mismatch('batch', batch.code, expected, batch.allocated_quantity)
            cls._warn(mismatch)
            report.mismatches.append(mismatch)

    @classmethod
    def _product(cls, content_type_id: int, object_id: int):
        ct = ContentType.objects.get_for_id(content_type_id)
        try:
            return ct.get_object_for_this_type(pk=object_id)
        except ObjectDoesNotExist:
            logger.warning(
                "stock.reconcile.product_missing",
                extra={"content_type": ct.model, "object_id": object_id},
            )
            return None

    @staticmethod
    def _warn(mismatch: Mismatch) -> None:
        logger.warning(
            "stock.reconcile.mismatch",
            extra={
                "kind": mismatch.kind,
                "key": mismatch.key,
                "expected": str(mismatch.expected),
                "actual": str(mismatch.actual),
            },
        )
