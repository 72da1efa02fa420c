# Generated migration for documents app: consent_document

import uuid
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
            name='ConsentDocument',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[
                    ('botox', 'Botulinum Toxin'),
                    ('biostimulator', 'Collagen Biostimulator'),
                    ('pdo_threads', 'PDO Threads'),
                    ('hyaluronidase', 'Hyaluronidase'),
                    ('hydrolipo', 'Hydrolipoclasia'),
                    ('intradermotherapy', 'Intradermotherapy'),
                    ('lifting', 'Lifting'),
                    ('microneedling', 'Microneedling'),
                    ('peeling', 'Chemical Peeling'),
                    ('filler', 'Dermal Filler'),
                ], max_length=30)),
                ('title', models.CharField(max_length=255)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('signed', 'Signed')], default='pending', max_length=20)),
                ('issued_at', models.DateTimeField(auto_now_add=True)),
                ('signed_at', models.DateTimeField(blank=True, null=True)),
                ('signing_method', models.CharField(blank=True, choices=[('digital_pad', 'Digital signature pad'), ('print', 'Printed and signed on paper')], max_length=20, null=True)),
                ('signature_path', models.CharField(blank=True, max_length=512, null=True)),
                ('superseded_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('issued_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='issued_consent_documents', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='consent_documents', to='clinical.patient')),
                ('supersedes', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='superseded_by', to='documents.consentdocument')),
            ],
            options={
                'verbose_name': 'Consent Document',
                'verbose_name_plural': 'Consent Documents',
                'db_table': 'consent_document',
                'ordering': ['-issued_at'],
                'indexes': [
                    models.Index(fields=['patient', 'document_type'], name='idx_consent_patient_type'),
                    models.Index(fields=['status'], name='idx_consent_status'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status', 'pending'), ('superseded_at__isnull', True)),
                        fields=('patient', 'document_type'),
                        name='uniq_consent_pending_per_type'
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('status', 'pending'), ('signed_at__isnull', False), _connector='OR'),
                        name='consent_signed_has_timestamp'
                    ),
                ],
            },
        ),
    ]
