"""
Fiscal period projection.

Periods are created by fiscal_period.configured events (emitted when a
company is created and when a year is reconfigured) and toggled by
fiscal_period.closed / fiscal_period.opened.
"""

import logging

from accounts.models import Company
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry
from projections.models import FiscalPeriod, FiscalPeriodConfig


logger = logging.getLogger(__name__)


class FiscalPeriodProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "fiscal_period_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.FISCAL_PERIODS_CONFIGURED,
            EventTypes.FISCAL_PERIOD_CLOSED,
            EventTypes.FISCAL_PERIOD_OPENED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data
        company = Company.objects.filter(public_id=data["company_public_id"]).first()
        if not company:
            logger.warning("Company not found for %s: %s", event.event_type, data["company_public_id"])
            return

        fiscal_year = int(data["fiscal_year"])

        if event.event_type == EventTypes.FISCAL_PERIODS_CONFIGURED:
            FiscalPeriod.objects.filter(
                company=company,
                fiscal_year=fiscal_year,
            ).delete()

            for p in data.get("periods", []):
                FiscalPeriod.objects.create(
                    company=company,
                    fiscal_year=fiscal_year,
                    period=p["period"],
                    start_date=p["start_date"],
                    end_date=p["end_date"],
                    status=FiscalPeriod.Status.OPEN,
                )

            FiscalPeriodConfig.objects.update_or_create(
                company=company,
                fiscal_year=fiscal_year,
                defaults={"period_count": int(data["period_count"])},
            )
            return

        status = (
            FiscalPeriod.Status.CLOSED
            if event.event_type == EventTypes.FISCAL_PERIOD_CLOSED
            else FiscalPeriod.Status.OPEN
        )
        FiscalPeriod.objects.filter(
            company=company,
            fiscal_year=fiscal_year,
            period=int(data["period"]),
        ).update(status=status)

    def _clear_projected_data(self, company) -> None:
        FiscalPeriod.objects.filter(company=company).delete()
        FiscalPeriodConfig.objects.filter(company=company).delete()


projection_registry.register(FiscalPeriodProjection())
