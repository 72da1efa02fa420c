# Generated migration for catalog app: catalog_service

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Service',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, unique=True, verbose_name='Name')),
                ('category', models.CharField(choices=[('facial', 'Facial'), ('body', 'Body'), ('injectables', 'Injectables'), ('laser', 'Laser'), ('other', 'Other')], default='other', max_length=20, verbose_name='Category')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('price', models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name='Price')),
                ('duration_minutes', models.PositiveIntegerField(default=60, verbose_name='Duration (minutes)')),
                ('validity_months', models.PositiveIntegerField(default=0, verbose_name='Validity (months)')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Service',
                'verbose_name_plural': 'Services',
                'db_table': 'catalog_service',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['category'], name='idx_service_category'),
                    models.Index(fields=['is_active'], name='idx_service_active'),
                ],
            },
        ),
    ]
