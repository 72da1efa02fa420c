# Generated migration for clinical app: patient, clinical_event, patient_photo,
# anamnesis_record, appointment, clinical_audit_log

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(blank=True, default='', max_length=100)),
                ('birth_date', models.DateField(blank=True, null=True)),
                ('sex', models.CharField(blank=True, choices=[('female', 'Female'), ('male', 'Male'), ('other', 'Other'), ('unknown', 'Unknown')], max_length=20, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('phone', models.CharField(blank=True, max_length=50, null=True)),
                ('address_line1', models.CharField(blank=True, max_length=255, null=True)),
                ('city', models.CharField(blank=True, max_length=100, null=True)),
                ('state', models.CharField(blank=True, max_length=100, null=True)),
                ('postal_code', models.CharField(blank=True, max_length=20, null=True)),
                ('status', models.CharField(choices=[('new', 'New'), ('recurring', 'Recurring'), ('vip', 'VIP')], default='new', max_length=20)),
                ('declared_allergies', models.TextField(blank=True, default='')),
                ('alert_tags', models.JSONField(blank=True, default=list)),
                ('avatar_path', models.CharField(blank=True, max_length=512, null=True)),
                ('is_deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_patients', to=settings.AUTH_USER_MODEL)),
                ('user', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='patient_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Patient',
                'verbose_name_plural': 'Patients',
                'db_table': 'patient',
                'indexes': [
                    models.Index(fields=['last_name', 'first_name'], name='idx_patient_name'),
                    models.Index(fields=['email'], name='idx_patient_email'),
                    models.Index(fields=['is_deleted'], name='idx_patient_deleted'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ClinicalEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('performed_on', models.DateField()),
                ('title', models.CharField(max_length=255)),
                ('event_type', models.CharField(choices=[('procedure', 'Procedure'), ('consultation', 'Consultation'), ('document', 'Document')], default='procedure', max_length=20)),
                ('clinical_notes', models.TextField(blank=True, default='')),
                ('patient_summary', models.TextField(blank=True, default='')),
                ('professional_name', models.CharField(blank=True, default='', max_length=255)),
                ('status', models.CharField(choices=[('completed', 'Completed'), ('scheduled', 'Scheduled'), ('cancelled', 'Cancelled')], default='completed', max_length=20)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('expiration_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_clinical_events', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='clinical_events', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Clinical Event',
                'verbose_name_plural': 'Clinical Events',
                'db_table': 'clinical_event',
                'ordering': ['-performed_on', '-created_at'],
                'indexes': [
                    models.Index(fields=['patient', 'performed_on'], name='idx_event_patient_date'),
                    models.Index(fields=['event_type'], name='idx_event_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PatientPhoto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('taken_on', models.DateField()),
                ('before_path', models.CharField(blank=True, max_length=512, null=True)),
                ('after_path', models.CharField(blank=True, max_length=512, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_patient_photos', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Patient Photo',
                'verbose_name_plural': 'Patient Photos',
                'db_table': 'patient_photo',
                'ordering': ['-taken_on', '-created_at'],
                'indexes': [
                    models.Index(fields=['patient', 'taken_on'], name='idx_photo_patient_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AnamnesisRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('facial', 'Facial'), ('body', 'Body')], max_length=20)),
                ('payload', models.JSONField(default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='anamnesis_records', to='clinical.patient')),
                ('updated_by_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='updated_anamnesis_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Anamnesis Record',
                'verbose_name_plural': 'Anamnesis Records',
                'db_table': 'anamnesis_record',
                'constraints': [
                    models.UniqueConstraint(fields=('patient', 'kind'), name='uniq_anamnesis_patient_kind'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('external_event_id', models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ('starts_at', models.DateTimeField()),
                ('ends_at', models.DateTimeField()),
                ('procedure', models.CharField(blank=True, default='', max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'db_table': 'appointment',
                'ordering': ['starts_at'],
                'indexes': [
                    models.Index(fields=['patient', 'starts_at'], name='idx_appointment_patient_start'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('ends_at__gt', models.F('starts_at'))), name='appointment_ends_after_start'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ClinicalAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('action', models.CharField(choices=[('create', 'Create'), ('update', 'Update'), ('delete', 'Delete')], max_length=10)),
                ('entity_type', models.CharField(choices=[('Patient', 'Patient'), ('ClinicalEvent', 'Clinical Event'), ('PatientPhoto', 'Patient Photo'), ('AnamnesisRecord', 'Anamnesis Record'), ('ConsentDocument', 'Consent Document')], max_length=50)),
                ('entity_id', models.UUIDField()),
                ('metadata', models.JSONField(default=dict)),
                ('actor_user', models.ForeignKey(blank=True, help_text='User who performed the action (null for system actions)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='clinical_audit_logs', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='clinical.patient')),
            ],
            options={
                'verbose_name': 'Clinical Audit Log',
                'verbose_name_plural': 'Clinical Audit Logs',
                'db_table': 'clinical_audit_log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['created_at'], name='idx_audit_created_at'),
                    models.Index(fields=['entity_type', 'entity_id'], name='idx_audit_entity'),
                    models.Index(fields=['patient'], name='idx_audit_patient'),
                ],
            },
        ),
    ]
