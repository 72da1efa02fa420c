# Data migration: the role table holds a fixed set of names

from django.db import migrations

ROLE_NAMES = ['admin', 'practitioner', 'reception', 'accounting', 'marketing', 'patient']


def create_roles(apps, schema_editor):
    Role = apps.get_model('authz', 'Role')
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_roles, migrations.RunPython.noop),
    ]
