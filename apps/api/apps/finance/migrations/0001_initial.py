# Generated migration for finance app: financial_posting

import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clinical', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='FinancialPosting',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('description', models.CharField(max_length=255, verbose_name='Description')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Amount')),
                ('cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Direct cost of an income posting, used for margin', max_digits=12, verbose_name='Cost')),
                ('posted_on', models.DateField(verbose_name='Posted On')),
                ('direction', models.CharField(choices=[('income', 'Income'), ('expense', 'Expense')], max_length=10, verbose_name='Direction')),
                ('category', models.CharField(default='Other', max_length=100, verbose_name='Category')),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('pix', 'Pix'), ('credit_card', 'Credit Card'), ('debit_card', 'Debit Card'), ('bank_transfer', 'Bank Transfer')], default='cash', max_length=20, verbose_name='Payment Method')),
                ('status', models.CharField(choices=[('received', 'Received'), ('open', 'Open'), ('paid', 'Paid'), ('unpaid', 'Unpaid')], max_length=10, verbose_name='Status')),
                ('recurrence_group', models.UUIDField(blank=True, null=True, verbose_name='Recurrence Group')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='financial_postings', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='financial_postings', to='clinical.patient', verbose_name='Patient')),
            ],
            options={
                'verbose_name': 'Financial Posting',
                'verbose_name_plural': 'Financial Postings',
                'db_table': 'financial_posting',
                'ordering': ['-posted_on', '-created_at'],
                'indexes': [
                    models.Index(fields=['posted_on'], name='idx_posting_date'),
                    models.Index(fields=['direction', 'status'], name='idx_posting_dir_status'),
                    models.Index(fields=['patient'], name='idx_posting_patient'),
                    models.Index(fields=['recurrence_group'], name='idx_posting_recurrence'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gte', 0)), name='posting_amount_non_negative'),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('direction', 'income'), ('status__in', ['received', 'open'])),
                            models.Q(('direction', 'expense'), ('status__in', ['paid', 'unpaid'])),
                            _connector='OR'
                        ),
                        name='posting_status_matches_direction'
                    ),
                ],
            },
        ),
    ]
