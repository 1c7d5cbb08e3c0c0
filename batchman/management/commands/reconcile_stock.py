"""
Management command to compare stock projections with the ledger.

Usage:
    python manage.py reconcile_stock
    python manage.py reconcile_stock --repair

Exits with status 1 when mismatches remain unrepaired.
"""

from django.core.management.base import BaseCommand, CommandError

from batchman import ledger


class Command(BaseCommand):
    """Reconcile stock command."""

    help = 'Confere saldos e totais de estoque contra o razão de movimentos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--repair',
            action='store_true',
            help='Reescreve saldos e totais divergentes a partir do razão'
        )

    def handle(self, *args, **options):
        report = ledger.reconcile(repair=options['repair'])

        self.stdout.write(
            f'{report.levels_checked} saldo(s), {report.totals_checked} total(is), '
            f'{report.batches_checked} lote(s) conferido(s)'
        )
        if report.ok:
            self.stdout.write(self.style.SUCCESS('Nenhuma divergência'))
            return

        for m in report.mismatches:
            status = 'corrigido' if m.repaired else 'pendente'
            self.stdout.write(
                f'  [{m.kind}] {m.key}: esperado {m.expected}, encontrado {m.actual} ({status})'
            )

        pending = [m for m in report.mismatches if not m.repaired]
        if pending:
            raise CommandError(f'{len(pending)} divergência(s) pendente(s)')
        self.stdout.write(self.style.SUCCESS(f'{len(report.mismatches)} divergência(s) corrigida(s)'))
