"""
Batch Intake — typed batch creation request.

Manual entry and the document-extraction pipeline both create batches
through BatchRegistry.create_batch(). Extraction output is free-form, so
it is coerced into a BatchRequest here, at the boundary, and rejected
with INVALID_REQUEST before anything reaches the ledger.

Usage:
    request = BatchRequest.from_payload(
        {"quantity": "120", "manufacturing_date": "2026-02-23", "rolls": 4},
        product=queijo,
    )
    batch = ledger.create_batch(request, user=request_user)
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from batchman.exceptions import StockError
from batchman.models.enums import QualityStatus


# Extraction payload keys → BatchRequest fields
PAYLOAD_ALIASES = {
    'quantity': 'quantity_produced',
    'batch_number': 'code',
    'warehouse_id': 'initial_location',
    'location': 'initial_location',
    'performed_by': 'produced_by',
}

DECIMAL_FIELDS = ('quantity_produced', 'weight', 'cost_price', 'wastage_quantity', 'wastage_cost')
DATE_FIELDS = ('manufacturing_date', 'expiry_date')


@dataclass(frozen=True)
class BatchRequest:
    """Everything needed to create a Batch."""

    product: Any
    quantity_produced: Decimal
    manufacturing_date: date | None = None
    expiry_date: date | None = None
    rolls: int | None = None
    weight: Decimal | None = None
    cost_price: Decimal = Decimal('0')
    quality_status: str = QualityStatus.PENDING
    initial_location: Any = None  # Location, pk or code
    produced_by: Any = None
    wastage_quantity: Decimal = Decimal('0')
    wastage_cost: Decimal = Decimal('0')
    notes: str = ''
    code: str = ''  # Empty = generate

    @classmethod
    def from_payload(cls, payload: dict[str, Any], product=None) -> BatchRequest:
        """
        Build a request from a loosely typed dict.

        Numbers may be strings, dates may be ISO strings or datetimes,
        unknown keys are ignored. ``product`` overrides payload['product'].

        Raises:
            StockError('INVALID_REQUEST'): If a value cannot be coerced
                or a required value is missing
        """
        known = {f.name for f in fields(cls)}
        data: dict[str, Any] = {}
        for key, value in payload.items():
            name = PAYLOAD_ALIASES.get(key, key)
            if name in known and value not in (None, ''):
                data[name] = value

        if product is not None:
            data['product'] = product
        if 'product' not in data:
            raise StockError('INVALID_REQUEST', message="Produto é obrigatório", field='product')
        if 'quantity_produced' not in data:
            raise StockError('INVALID_REQUEST', message="Quantidade é obrigatória", field='quantity_produced')

        for name in DECIMAL_FIELDS:
            if name in data:
                data[name] = _to_decimal(name, data[name])
        for name in DATE_FIELDS:
            if name in data:
                data[name] = _to_date(name, data[name])
        if 'rolls' in data:
            data['rolls'] = _to_int('rolls', data['rolls'])
        if 'quality_status' in data and data['quality_status'] not in QualityStatus.values:
            raise StockError(
                'INVALID_REQUEST',
                message=f"Status de qualidade desconhecido: {data['quality_status']}",
                field='quality_status',
            )
        for name in ('notes', 'code'):
            if name in data:
                data[name] = str(data[name]).strip()

        return cls(**data)


def _to_decimal(name: str, value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip().replace(',', '.'))
    except InvalidOperation:
        raise StockError('INVALID_REQUEST', message=f"Número inválido em {name}: {value!r}", field=name)


def _to_date(name: str, value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise StockError('INVALID_REQUEST', message=f"Data inválida em {name}: {value!r}", field=name)


def _to_int(name: str, value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StockError('INVALID_REQUEST', message=f"Inteiro inválido em {name}: {value!r}", field=name)
