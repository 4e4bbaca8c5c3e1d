# core/management/commands/ensure_demo_users.py
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from core.models import DoctorAvailability, User

DEMO_PASSWORD = "Demo@1234"

DEMO_SET = [
    ("patient@medcare.local", "Demo Patient", User.ROLE_PATIENT, {}),
    ("doctor@medcare.local", "Demo Doctor", User.ROLE_DOCTOR, {
        "specialization": "General Medicine",
        "experience": 5,
        "clinic_address": "1 Demo Street",
        "consultation_fee": Decimal("20.00"),
    }),
    ("admin@medcare.local", "Demo Admin", User.ROLE_ADMIN, {"is_staff": True}),
]

WEEKDAY_TEMPLATE = [
    {"day": day, "times": [{"start": "09:00", "end": "12:00"}, {"start": "14:00", "end": "17:00"}]}
    for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
]


class Command(BaseCommand):
    help = f"Ensure demo patient/doctor/admin exist, verified, password={DEMO_PASSWORD} (idempotent)."

    def handle(self, *args, **opts):
        for email, name, role, extra in DEMO_SET:
            fields = {"username": email, "name": name, "role": role, "is_verified": True,
                      "is_active": True, **extra}
            u, created = User.objects.get_or_create(
                email=email, defaults={**fields, "password": make_password(DEMO_PASSWORD)},
            )
            if not created:
                for key, value in fields.items():
                    setattr(u, key, value)
                u.password = make_password(DEMO_PASSWORD)
                u.save()
            if role == User.ROLE_DOCTOR:
                DoctorAvailability.objects.update_or_create(doctor=u, defaults={"slots": WEEKDAY_TEMPLATE})
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
