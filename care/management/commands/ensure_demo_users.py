from django.core.management.base import BaseCommand

from care.models import User
from care.services.provisioning import ensure_profile

DEMO_SET = [
    ("admin1", User.ROLE_ADMIN, "Admin", "User"),
    ("doctor1", User.ROLE_DOCTOR, "Demo", "Doctor"),
    ("nurse1", User.ROLE_NURSE, "Demo", "Nurse"),
    ("reception1", User.ROLE_RECEPTION, "Demo", "Reception"),
    ("accounts1", User.ROLE_ACCOUNTS, "Demo", "Accounts"),
    ("lab1", User.ROLE_LAB, "Demo", "Lab"),
]


class Command(BaseCommand):
    help = "Ensure one demo account per role exists with a staff profile (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="123456")
        parser.add_argument("--domain", default="clinic.local")

    def handle(self, *args, **opts):
        for username, role, first, last in DEMO_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role,
                    "first_name": first,
                    "last_name": last,
                    "email": f"{username}@{opts['domain']}",
                    "is_active": True,
                },
            )
            u.set_password(opts["password"])
            u.role = role
            u.is_active = True
            if role == User.ROLE_ADMIN:
                u.is_staff = True
                u.is_superuser = True
            u.save()
            result = ensure_profile(u, role)
            if result.warning:
                self.stdout.write(self.style.WARNING(f"{username} ({role}): {result.warning}"))
            else:
                state = "created" if created else "ok"
                self.stdout.write(self.style.SUCCESS(f"{state}: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
