# core/management/commands/seed_admin.py
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from core.models import User


class Command(BaseCommand):
    help = "Create the administrator from ADMIN_EMAIL/ADMIN_PASSWORD unless an admin already exists."

    def handle(self, *args, **opts):
        if User.objects.filter(role=User.ROLE_ADMIN).exists():
            self.stdout.write("Admin already exists, nothing to do.")
            return
        email = (settings.ADMIN_EMAIL or "").strip().lower()
        if not email or not settings.ADMIN_PASSWORD:
            raise CommandError("ADMIN_EMAIL and ADMIN_PASSWORD must be set.")
        user = User(
            username=email, email=email, name=settings.ADMIN_NAME,
            role=User.ROLE_ADMIN, is_verified=True, is_staff=True,
        )
        user.set_password(settings.ADMIN_PASSWORD)
        user.save()
        self.stdout.write(self.style.SUCCESS(f"Admin created: {email}"))
