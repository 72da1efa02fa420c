"""
Management command to seed the fixed role table and, optionally, a first admin.

Usage:
    python manage.py ensure_roles
    python manage.py ensure_roles --admin-email admin@example.com --admin-password secret

Idempotent and safe to run multiple times.
"""
from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils.crypto import get_random_string
from apps.authz.models import Role, UserRole, RoleChoices


class Command(BaseCommand):
    help = 'Ensure every fixed role exists and optionally bootstrap an admin user'

    def add_arguments(self, parser):
        parser.add_argument('--admin-email', default=None)
        parser.add_argument('--admin-password', default=None)

    def handle(self, *args, **options):
        self.stdout.write("Ensuring roles exist...")
        for role_choice in RoleChoices:
            role, created = Role.objects.get_or_create(name=role_choice)
            if created:
                self.stdout.write(self.style.SUCCESS(f'  Created role: {role.name}'))
            else:
                self.stdout.write(f'  - Role exists: {role.name}')

        email = options.get('admin_email')
        if not email:
            return

        User = get_user_model()
        user, user_created = User.objects.get_or_create(
            email=email,
            defaults={'is_active': True, 'is_staff': True}
        )
        if user_created:
            user.set_password(options.get('admin_password') or get_random_string(24))
            user.save()
            self.stdout.write(self.style.SUCCESS(f'  Created user: {email}'))

        UserRole.objects.get_or_create(user=user, role=Role.objects.get(name=RoleChoices.ADMIN))
        roles = sorted(user.user_roles.values_list('role__name', flat=True))
        self.stdout.write(f'  {email} roles: {roles}')
