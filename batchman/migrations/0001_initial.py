"""
Initial migration for Batchman models.
"""

from decimal import Decimal
import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


QUALITY_CHOICES = [('pending', 'Pendente'), ('passed', 'Aprovado'), ('failed', 'Reprovado')]

BATCH_STATUS_CHOICES = [
    ('active', 'Ativo'),
    ('expired', 'Vencido'),
    ('depleted', 'Esgotado'),
    ('quarantine', 'Quarentena'),
]

REFERENCE_TYPE_CHOICES = [
    ('batch_allocation', 'Alocação de lote'),
    ('batch_deallocation', 'Estorno de alocação'),
    ('sale', 'Venda'),
    ('manual', 'Manual'),
    ('adjustment', 'Ajuste'),
]

AUDIT_ACTION_CHOICES = [
    ('batch_created', 'Lote criado'),
    ('batch_updated', 'Lote alterado'),
    ('batch_deleted', 'Lote excluído'),
    ('batch_allocated', 'Lote alocado'),
    ('batch_reversed', 'Alocação estornada'),
    ('batch_expired', 'Lote vencido'),
    ('stock_received', 'Entrada de estoque'),
    ('stock_issued', 'Saída de estoque'),
    ('stock_adjusted', 'Ajuste de estoque'),
    ('stock_reconciled', 'Estoque reconciliado'),
]


class Migration(migrations.Migration):
    """Create Batchman models: Location, Batch, StockLevel, StockMovement, ProductStock, AuditEntry."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Identificador único (ex: deposito-central, van-01)', unique=True, verbose_name='Código')),
                ('name', models.CharField(max_length=100, verbose_name='Nome')),
                ('kind', models.CharField(choices=[('warehouse', 'Depósito'), ('vehicle', 'Veículo')], default='warehouse', max_length=20, verbose_name='Tipo')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Local',
                'verbose_name_plural': 'Locais',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='Gerado automaticamente: BATCH-AAAAMMDD-NNNN', max_length=50, unique=True, verbose_name='Número do Lote')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID do Produto')),
                ('quantity_produced', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade Produzida')),
                ('allocated_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Alterada apenas por alocação/estorno.', max_digits=12, verbose_name='Quantidade Alocada')),
                ('manufacturing_date', models.DateField(blank=True, null=True, verbose_name='Data de Fabricação')),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Data de Validade')),
                ('rolls', models.PositiveIntegerField(blank=True, null=True, verbose_name='Rolos')),
                ('weight', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True, verbose_name='Peso (kg)')),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Preço de Custo')),
                ('quality_status', models.CharField(choices=QUALITY_CHOICES, default='pending', max_length=20, verbose_name='Qualidade')),
                ('status', models.CharField(choices=BATCH_STATUS_CHOICES, db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('wastage_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Perda')),
                ('wastage_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Custo da Perda')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('reversal_watermark', models.BigIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='contenttypes.contenttype', verbose_name='Tipo de Produto')),
                ('initial_location', models.ForeignKey(blank=True, help_text='Sugestão de destino; não aloca nada por si só.', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='batchman.location', verbose_name='Local Inicial')),
                ('produced_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Produzido por')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['content_type', 'object_id'], name='batch_product_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('allocated_quantity__gte', 0)), name='batch_allocated_non_negative'),
                    models.CheckConstraint(condition=models.Q(('allocated_quantity__lte', models.F('quantity_produced'))), name='batch_allocated_within_produced'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockLevel',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID do Produto')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Quantidade')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='contenttypes.contenttype', verbose_name='Tipo de Produto')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_levels', to='batchman.location', verbose_name='Local')),
            ],
            options={
                'verbose_name': 'Nível de Estoque',
                'verbose_name_plural': 'Níveis de Estoque',
                'indexes': [
                    models.Index(fields=['content_type', 'object_id'], name='stock_level_product_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('content_type', 'object_id', 'location'), name='unique_stock_level_per_location'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID do Produto')),
                ('direction', models.CharField(choices=[('in', 'Entrada'), ('out', 'Saída')], max_length=3, verbose_name='Direção')),
                ('quantity', models.DecimalField(decimal_places=3, help_text='Sempre positiva; a direção indica entrada ou saída', max_digits=12, verbose_name='Quantidade')),
                ('previous_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Saldo Anterior')),
                ('new_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Saldo Novo')),
                ('reference_type', models.CharField(choices=REFERENCE_TYPE_CHOICES, db_index=True, max_length=30, verbose_name='Tipo de Referência')),
                ('reference_id', models.PositiveIntegerField(blank=True, null=True, verbose_name='ID da Referência')),
                ('batch_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Número do Lote')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Observações')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='contenttypes.contenttype', verbose_name='Tipo de Produto')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='batchman.location', verbose_name='Local')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['timestamp', 'pk'],
                'indexes': [
                    models.Index(fields=['content_type', 'object_id', 'location'], name='stock_movement_product_loc_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='stock_movement_reference_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='stock_movement_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProductStock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID do Produto')),
                ('stock_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Estoque Total')),
                ('recomputed_at', models.DateTimeField(blank=True, null=True, verbose_name='Recalculado em')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='contenttypes.contenttype', verbose_name='Tipo de Produto')),
            ],
            options={
                'verbose_name': 'Estoque do Produto',
                'verbose_name_plural': 'Estoques dos Produtos',
                'constraints': [
                    models.UniqueConstraint(fields=('content_type', 'object_id'), name='unique_product_stock'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=AUDIT_ACTION_CHOICES, db_index=True, max_length=30, verbose_name='Ação')),
                ('entity_type', models.CharField(blank=True, default='', max_length=50, verbose_name='Entidade')),
                ('entity_id', models.CharField(blank=True, default='', max_length=50, verbose_name='ID da Entidade')),
                ('before', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True, verbose_name='Antes')),
                ('after', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True, verbose_name='Depois')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Registro de Auditoria',
                'verbose_name_plural': 'Registros de Auditoria',
                'ordering': ['-timestamp', '-pk'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
                ],
            },
        ),
    ]
