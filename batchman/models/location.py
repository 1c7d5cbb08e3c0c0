"""
Location model — Where allocated stock lives.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from batchman.models.enums import LocationKind


class Location(models.Model):
    """
    A warehouse or vehicle that can hold stock.

    Locations are stable entities, created during system setup.
    The allocation core only reads them.

    Examples:
        Location.objects.create(code='deposito-central', name='Depósito Central')
        Location.objects.create(code='van-01', name='Van 01', kind=LocationKind.VEHICLE)
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Código'),
        help_text=_('Identificador único (ex: deposito-central, van-01)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Nome'),
    )
    kind = models.CharField(
        max_length=20,
        choices=LocationKind.choices,
        default=LocationKind.WAREHOUSE,
        verbose_name=_('Tipo'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Ativo'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Local')
        verbose_name_plural = _('Locais')
        ordering = ['code']

    def __str__(self) -> str:
        return self.name
