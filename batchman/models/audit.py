"""
AuditEntry model — best-effort, human-readable log of mutating actions.

The StockMovement ledger is the authoritative record. Audit entries
exist for people reading the history and may be missing if writing
them failed.
"""

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import AuditAction


class AuditEntry(models.Model):
    """One mutating action with before/after snapshots."""

    action = models.CharField(
        max_length=30,
        choices=AuditAction.choices,
        db_index=True,
        verbose_name=_('Ação'),
    )
    entity_type = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Entidade'))
    entity_id = models.CharField(max_length=50, blank=True, default='', verbose_name=_('ID da Entidade'))

    before = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder, verbose_name=_('Antes'))
    after = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder, verbose_name=_('Depois'))

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    class Meta:
        verbose_name = _('Registro de Auditoria')
        verbose_name_plural = _('Registros de Auditoria')
        ordering = ['-timestamp', '-pk']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_action_display()} {self.entity_type}:{self.entity_id}"
