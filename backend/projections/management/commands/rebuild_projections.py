# projections/management/commands/rebuild_projections.py
"""
Rebuild projections from the event store.

Events are the source of truth; any read model can be dropped and
replayed.

Usage:
    # Every projection for every active company
    python manage.py rebuild_projections

    # One company (slug or public_id)
    python manage.py rebuild_projections --company acme-trading

    # One projection
    python manage.py rebuild_projections --projection sales_read_model

    # List projections
    python manage.py rebuild_projections --list
"""

import time

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import Company
from projections.base import projection_registry


class Command(BaseCommand):
    help = "Rebuild projections from the event store"

    def add_arguments(self, parser):
        parser.add_argument("--company", type=str, help="Company slug or public_id (default: all active)")
        parser.add_argument("--projection", type=str, help="Projection name (default: all)")
        parser.add_argument("--list", action="store_true", help="List registered projections")

    def handle(self, *args, **options):
        if options["list"]:
            for projection in projection_registry.all():
                self.stdout.write(f"{projection.name}: {', '.join(projection.consumes)}")
            return

        projections = projection_registry.all()
        if options["projection"]:
            projection = projection_registry.get(options["projection"])
            if projection is None:
                raise CommandError(
                    f"Unknown projection: {options['projection']}\n"
                    f"Available: {', '.join(projection_registry.names())}"
                )
            projections = [projection]

        companies = self._companies(options["company"])
        if not companies:
            raise CommandError("No companies to rebuild.")

        start = time.time()
        total = 0
        for company in companies:
            self.stdout.write(f"{company.name}:")
            for projection in projections:
                with transaction.atomic():
                    processed = projection.rebuild(company)
                total += processed
                self.stdout.write(f"  {projection.name}: {processed} events")

        self.stdout.write(self.style.SUCCESS(
            f"Rebuilt {len(projections)} projection(s) for {len(companies)} company(ies): "
            f"{total} events in {time.time() - start:.2f}s"
        ))

    def _companies(self, ref):
        if not ref:
            return list(Company.objects.filter(is_active=True).order_by("id"))
        company = Company.objects.filter(slug=ref).first()
        if company is None:
            try:
                company = Company.objects.filter(public_id=ref).first()
            except ValidationError:
                company = None
        if company is None:
            raise CommandError(f"Company not found: {ref}")
        return [company]
