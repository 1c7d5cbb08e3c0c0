"""
Management command to mark batches past their expiry date as expired.

Usage:
    python manage.py expire_batches
    python manage.py expire_batches --dry-run
"""

from django.core.management.base import BaseCommand

from batchman import ledger
from batchman.models import Batch, BatchStatus


class Command(BaseCommand):
    """Expire batches command."""

    help = 'Marca como vencidos os lotes com validade ultrapassada'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra o que seria marcado sem executar'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            expired = Batch.objects.expired().filter(
                status__in=[BatchStatus.ACTIVE, BatchStatus.DEPLETED]
            )
            for batch in expired:
                self.stdout.write(f'  {batch.code} (val: {batch.expiry_date})')
            self.stdout.write(f'{expired.count()} lote(s) seria(m) marcado(s) como vencido(s)')
        else:
            marked = ledger.expire_batches()
            self.stdout.write(
                self.style.SUCCESS(f'{len(marked)} lote(s) marcado(s) como vencido(s)')
            )
