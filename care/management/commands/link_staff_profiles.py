"""
Run the profile resolver over every staff account.

Profiles created before their login account are linked by email the
first time the account is resolved; this command does it in bulk and
reports what could not be linked.
"""
from django.core.management.base import BaseCommand

from care.models import User
from care.services.identity import ROLE_PROFILES, resolve


class Command(BaseCommand):
    help = "Link staff profiles to their login accounts by email and report the result."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report only, do not write links.")

    def handle(self, *args, **opts):
        heal = not opts["dry_run"]
        counts = {"linked": 0, "conflict": 0, "missing": 0}
        accounts = User.objects.filter(role__in=list(ROLE_PROFILES), is_active=True).order_by("id")
        for account in accounts:
            profile = resolve(account, heal=heal)
            if profile is None:
                counts["missing"] += 1
                self.stdout.write(self.style.WARNING(f"missing: {account.username} ({account.role})"))
            elif profile.user_id not in (None, account.id):
                counts["conflict"] += 1
                self.stdout.write(self.style.ERROR(
                    f"conflict: {account.username} matches profile {profile.id} linked to account {profile.user_id}"
                ))
            else:
                counts["linked"] += 1
        self.stdout.write(self.style.SUCCESS(
            "linked={linked} conflict={conflict} missing={missing}".format(**counts)
        ))
