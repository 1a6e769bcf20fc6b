# accounts/management/commands/seed_permissions.py

from django.core.management.base import BaseCommand

from accounts.models import NxPermission
from accounts.permission_defaults import ROLE_DEFAULTS, all_permission_codes
from accounts.permissions import grant_defaults_to_all_memberships
from projections.write_barrier import bootstrap_writes_allowed


class Command(BaseCommand):
    help = "Seed permission codes and grant role defaults to memberships without grants"

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-memberships",
            action="store_true",
            help="Only seed permission rows, do not touch memberships",
        )

    def handle(self, *args, **options):
        created = 0
        updated = 0

        with bootstrap_writes_allowed():
            for code in sorted(all_permission_codes()):
                roles = sorted(role for role, codes in ROLE_DEFAULTS.items() if code in codes)
                _, was_created = NxPermission.objects.update_or_create(
                    code=code,
                    defaults={
                        "name": code.replace(".", " ").replace("_", " ").title(),
                        "module": code.split(".")[0],
                        "default_for_roles": roles,
                    },
                )
                if was_created:
                    created += 1
                else:
                    updated += 1

            summary = {"memberships_updated": 0, "permissions_granted": 0}
            if not options["skip_memberships"]:
                summary = grant_defaults_to_all_memberships(only_if_empty=True)

        self.stdout.write(self.style.SUCCESS(
            f"Done! Created {created}, updated {updated}. "
            f"Memberships updated: {summary['memberships_updated']}, "
            f"permissions granted: {summary['permissions_granted']}."
        ))
