"""
Exceptions for Batchman.

All errors are StockError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Error with a machine-readable code, a message and context data.

    The message defaults to the class-level ``_default_messages`` entry
    for the code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.data:
            return f"[{self.code}] {self.message}"
        details = ", ".join(f"{k}={v}" for k, v in self.data.items())
        return f"[{self.code}] {self.message} ({details})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.data!r})"


class StockError(BaseError):
    """
    Structured exception for batch and stock operations.

    Usage:
        try:
            ledger.allocate_to_locations(batch.pk, [(deposito, 10)])
        except StockError as e:
            if e.code == 'INSUFFICIENT_BATCH_QUANTITY':
                print(f"Faltam {e.shortfall}")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
        kind: Error family (validation, insufficient_batch_quantity,
              not_found, concurrency_conflict, partial_bulk_failure)
    """

    _default_messages = {
        'INVALID_QUANTITY': 'Quantidade inválida',
        'INVALID_ALLOCATION': 'Pedido de alocação inválido',
        'INVALID_REQUEST': 'Pedido de criação de lote inválido',
        'INVALID_FIELD': 'Campo não pode ser alterado',
        'INVALID_STATUS': 'Status inválido para esta operação',
        'REASON_REQUIRED': 'Motivo é obrigatório',
        'BATCH_ALLOCATED': 'Lote possui alocações ativas',
        'BATCH_CONSUMED': 'Estoque do lote já foi movimentado; exclusão quebraria o razão',
        'LEDGER_IMMUTABLE': 'Movimentos são imutáveis',
        'INSUFFICIENT_BATCH_QUANTITY': 'Quantidade do lote insuficiente',
        'INSUFFICIENT_QUANTITY': 'Quantidade insuficiente no estoque',
        'BATCH_NOT_FOUND': 'Lote não encontrado',
        'LOCATION_NOT_FOUND': 'Local não encontrado',
        'PRODUCT_NOT_FOUND': 'Produto não encontrado',
        'CONCURRENCY_CONFLICT': 'Modificação concorrente detectada',
        'BATCH_NUMBER_COLLISION': 'Não foi possível gerar um número de lote único',
        'PARTIAL_BULK_FAILURE': 'Operação em massa falhou para alguns lotes',
    }

    _kinds = {
        'INSUFFICIENT_BATCH_QUANTITY': 'insufficient_batch_quantity',
        'INSUFFICIENT_QUANTITY': 'insufficient_quantity',
        'BATCH_NOT_FOUND': 'not_found',
        'LOCATION_NOT_FOUND': 'not_found',
        'PRODUCT_NOT_FOUND': 'not_found',
        'CONCURRENCY_CONFLICT': 'concurrency_conflict',
        'BATCH_NUMBER_COLLISION': 'concurrency_conflict',
        'PARTIAL_BULK_FAILURE': 'partial_bulk_failure',
    }

    @property
    def kind(self) -> str:
        """Error family; everything not listed is a validation error."""
        return self._kinds.get(self.code, 'validation')

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    @property
    def remaining(self) -> Decimal:
        """Shortcut for data['remaining']."""
        return self.data.get('remaining', Decimal('0'))

    @property
    def shortfall(self) -> Decimal:
        """Shortcut for data['shortfall']."""
        return self.data.get('shortfall', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'kind': self.kind,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


def insufficient_batch_quantity(batch, requested: Decimal) -> StockError:
    """Build the INSUFFICIENT_BATCH_QUANTITY error for a batch."""
    remaining = batch.remaining_quantity
    shortfall = requested - remaining
    return StockError(
        'INSUFFICIENT_BATCH_QUANTITY',
        message=(
            f"Lote {batch.code}: solicitado {requested}, "
            f"restante {remaining} (faltam {shortfall})"
        ),
        batch=batch.code,
        requested=requested,
        remaining=remaining,
        shortfall=shortfall,
    )
