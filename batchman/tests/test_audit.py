"""
Tests for the audit trail.
"""

from decimal import Decimal

import pytest
from django.db import DatabaseError

from batchman import ledger
from batchman.models import AuditAction, AuditEntry, Location
from batchman.services.audit import record_audit, snapshot


pytestmark = pytest.mark.django_db


class TestRecordAudit:
    """Tests for record_audit()."""

    def test_writes_entry(self, warehouse_x, user):
        entry = record_audit(AuditAction.STOCK_RECEIVED, warehouse_x, after=snapshot(warehouse_x), user=user, notes='x')

        assert entry.entity_type == 'location'
        assert entry.entity_id == str(warehouse_x.pk)
        assert entry.after['code'] == 'deposito-x'

    def test_explicit_entity(self):
        entry = record_audit(AuditAction.STOCK_RECONCILED, entity_type='ledger')

        assert entry.entity_type == 'ledger'
        assert entry.entity_id == ''

    def test_failure_does_not_abort_operation(self, batch, product, warehouse_x, monkeypatch, caplog):
        def broken_create(**kwargs):
            raise DatabaseError('disk full')

        monkeypatch.setattr(AuditEntry.objects, 'create', broken_create)

        result = ledger.allocate_to_locations(batch.pk, [(warehouse_x, 10)])

        assert result.quantity == Decimal('10')
        assert ledger.get_stock_level(product, warehouse_x) == Decimal('10')
        assert 'audit.write_failed' in caplog.text

    def test_failure_returns_none(self, monkeypatch):
        monkeypatch.setattr(AuditEntry.objects, 'create', lambda **kwargs: 1 / 0)

        assert record_audit(AuditAction.BATCH_UPDATED, entity_type='batch', entity_id=1) is None

    def test_snapshot_none(self):
        assert snapshot(None) is None

    def test_snapshot_has_id(self, warehouse_x):
        data = snapshot(Location.objects.get(pk=warehouse_x.pk))

        assert data['id'] == warehouse_x.pk
        assert data['name'] == 'Depósito X'
