"""
Tests for BatchRequest payload coercion.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from batchman import StockError
from batchman.models import QualityStatus
from batchman.protocols import BatchRequest


class TestBatchRequestFromPayload:
    """Tests for BatchRequest.from_payload()."""

    def test_coerces_values(self):
        request = BatchRequest.from_payload({
            'product': 'p',
            'quantity': '1250,5',
            'manufacturing_date': '2026-02-23T08:00:00',
            'expiry_date': datetime(2026, 3, 23, 12, 0),
            'rolls': '4',
            'cost_price': 12,
            'batch_number': ' LOTE-9 ',
            'unknown': 'ignored',
        })

        assert request.quantity_produced == Decimal('1250.5')
        assert request.manufacturing_date == date(2026, 2, 23)
        assert request.expiry_date == date(2026, 3, 23)
        assert request.rolls == 4
        assert request.cost_price == Decimal('12')
        assert request.code == 'LOTE-9'

    def test_aliases(self):
        request = BatchRequest.from_payload({'quantity': 1, 'location': 'van-01', 'performed_by': 'u'}, product='p')

        assert request.initial_location == 'van-01'
        assert request.produced_by == 'u'
        assert request.product == 'p'

    def test_blank_values_use_defaults(self):
        request = BatchRequest.from_payload({'product': 'p', 'quantity': 3, 'notes': None, 'weight': ''})

        assert request.notes == ''
        assert request.weight is None
        assert request.quality_status == QualityStatus.PENDING

    @pytest.mark.parametrize('payload', [
        {'quantity': 1},
        {'product': 'p'},
        {'product': 'p', 'quantity': 'dez'},
        {'product': 'p', 'quantity': 1, 'manufacturing_date': '23/02/2026'},
        {'product': 'p', 'quantity': 1, 'rolls': 'quatro'},
        {'product': 'p', 'quantity': 1, 'quality_status': 'great'},
    ])
    def test_invalid_payloads(self, payload):
        with pytest.raises(StockError) as exc:
            BatchRequest.from_payload(payload)

        assert exc.value.code == 'INVALID_REQUEST'
