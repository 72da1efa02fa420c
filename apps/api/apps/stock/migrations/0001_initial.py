# Generated migration for stock app: inventory_item, inventory_consumption, inventory_restock

import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion

UNIT_CHOICES = [
    ('unit', 'Unit'),
    ('ml', 'Milliliter'),
    ('g', 'Gram'),
    ('vial', 'Vial'),
    ('syringe', 'Syringe'),
    ('box', 'Box'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clinical', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, verbose_name='Name')),
                ('category', models.CharField(blank=True, default='', max_length=100, verbose_name='Category')),
                ('unit', models.CharField(choices=UNIT_CHOICES, default='unit', max_length=20, verbose_name='Unit')),
                ('stock_quantity', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Stock Quantity')),
                ('min_stock', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Item is reported as low stock at or below this quantity', max_digits=12, verbose_name='Minimum Stock')),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Unit Cost')),
                ('last_restocked_at', models.DateTimeField(blank=True, null=True, verbose_name='Last Restocked At')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Inventory Item',
                'verbose_name_plural': 'Inventory Items',
                'db_table': 'inventory_item',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['category'], name='idx_inventory_category'),
                    models.Index(fields=['is_active'], name='idx_inventory_active'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('stock_quantity__gte', 0)), name='inventory_stock_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ConsumptionEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Quantity')),
                ('unit', models.CharField(choices=UNIT_CHOICES, max_length=20, verbose_name='Unit')),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Item unit cost captured at consumption time', max_digits=10, verbose_name='Unit Cost')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('clinical_event', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='consumption_entries', to='clinical.clinicalevent')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='consumption_entries', to=settings.AUTH_USER_MODEL)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='consumption_entries', to='stock.inventoryitem')),
            ],
            options={
                'verbose_name': 'Consumption Entry',
                'verbose_name_plural': 'Consumption Entries',
                'db_table': 'inventory_consumption',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['item', 'created_at'], name='idx_consumption_item_date'),
                    models.Index(fields=['clinical_event'], name='idx_consumption_event'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='consumption_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RestockEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Quantity')),
                ('note', models.TextField(blank=True, default='', verbose_name='Note')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='restock_entries', to=settings.AUTH_USER_MODEL)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='restock_entries', to='stock.inventoryitem')),
            ],
            options={
                'verbose_name': 'Restock Entry',
                'verbose_name_plural': 'Restock Entries',
                'db_table': 'inventory_restock',
                'ordering': ['-created_at'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='restock_quantity_positive'),
                ],
            },
        ),
    ]
