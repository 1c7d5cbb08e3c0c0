"""
Audit trail — best-effort log of mutating actions.

Usage:
    from batchman.services.audit import record_audit, snapshot

    before = snapshot(batch)
    ...
    record_audit(AuditAction.BATCH_UPDATED, batch, before=before, after=snapshot(batch))

A failed audit write is logged and ignored. It never rolls back the
operation that triggered it.
"""

import logging
from typing import Any

from django.db import transaction
from django.forms.models import model_to_dict

from batchman.models.audit import AuditEntry

logger = logging.getLogger('batchman')


def snapshot(instance) -> dict[str, Any] | None:
    """Field values of a model instance, JSON-ready via DjangoJSONEncoder."""
    if instance is None:
        return None
    data = model_to_dict(instance)
    data['id'] = instance.pk
    return data


def record_audit(action: str, instance=None, before=None, after=None,
                 user=None, notes: str = '', entity_type: str | None = None,
                 entity_id=None) -> AuditEntry | None:
    """
    Append one AuditEntry.

    Runs inside a savepoint so a failing insert does not break the
    caller's transaction.

    Returns:
        The entry, or None if writing it failed
    """
    if instance is not None:
        entity_type = entity_type or instance._meta.model_name
        entity_id = entity_id if entity_id is not None else instance.pk

    try:
        with transaction.atomic():
            return AuditEntry.objects.create(
                action=action,
                entity_type=entity_type or '',
                entity_id='' if entity_id is None else str(entity_id),
                before=before,
                after=after,
                user=user if getattr(user, 'pk', None) else None,
                notes=notes,
            )
    except Exception:
        logger.exception(
            "audit.write_failed",
            extra={
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
            },
        )
        return None
