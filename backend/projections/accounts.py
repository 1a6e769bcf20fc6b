# projections/accounts.py
"""
Accounts/Auth projections (read models).

Companies and users are created directly by the bootstrap commands;
these projections keep them in step with later events and own the
membership table.
"""

import logging

from django.contrib.auth import get_user_model

from accounts.models import Company, CompanyMembership
from accounts.permissions import grant_role_defaults
from events.models import BusinessEvent
from events.types import EventTypes
from projections.base import BaseProjection, projection_registry


logger = logging.getLogger(__name__)
User = get_user_model()

COMPANY_UPDATABLE_FIELDS = {
    "name",
    "code",
    "company_type",
    "tax_id",
    "default_currency",
    "fiscal_year_start_month",
    "is_active",
}


class CompanyProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "company_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.COMPANY_CREATED,
            EventTypes.COMPANY_UPDATED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data

        if event.event_type == EventTypes.COMPANY_CREATED:
            # The row exists already (bootstrap write); a replay only refreshes it.
            Company.objects.filter(public_id=data["company_public_id"]).update(
                name=data["name"],
                default_currency=data.get("default_currency", "USD"),
                fiscal_year_start_month=data.get("fiscal_year_start_month", 1),
                is_active=data.get("is_active", True),
            )
            return

        if event.event_type == EventTypes.COMPANY_UPDATED:
            company = Company.objects.filter(public_id=data["company_public_id"]).first()
            if not company:
                logger.warning("Company not found for update: %s", data["company_public_id"])
                return

            changed = []
            for field, change in data.get("changes", {}).items():
                if field in COMPANY_UPDATABLE_FIELDS:
                    setattr(company, field, change.get("new"))
                    changed.append(field)
            if changed:
                company.save(update_fields=changed + ["updated_at"])
            return

        logger.warning("Unhandled event type for CompanyProjection: %s", event.event_type)


class UserProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "user_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.USER_REGISTERED,
            EventTypes.USER_COMPANY_SWITCHED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data
        user = User.objects.filter(public_id=data["user_public_id"]).first()
        if not user:
            logger.warning("User not found for %s: %s", event.event_type, data["user_public_id"])
            return

        if event.event_type == EventTypes.USER_REGISTERED:
            if data.get("name") and user.name != data["name"]:
                user.name = data["name"]
                user.save(update_fields=["name"])
            return

        if event.event_type == EventTypes.USER_COMPANY_SWITCHED:
            company = Company.objects.filter(public_id=data["to_company_public_id"]).first()
            if company and user.active_company_id != company.id:
                user.active_company = company
                user.save(update_fields=["active_company"])
            return

        logger.warning("Unhandled event type for UserProjection: %s", event.event_type)


class MembershipProjection(BaseProjection):
    @property
    def name(self) -> str:
        return "membership_read_model"

    @property
    def consumes(self):
        return [
            EventTypes.MEMBERSHIP_CREATED,
            EventTypes.MEMBERSHIP_ROLE_CHANGED,
            EventTypes.MEMBERSHIP_DEACTIVATED,
        ]

    def handle(self, event: BusinessEvent) -> None:
        data = event.data

        if event.event_type == EventTypes.MEMBERSHIP_CREATED:
            company = Company.objects.filter(public_id=data["company_public_id"]).first()
            user = User.objects.filter(public_id=data["user_public_id"]).first()
            if not company or not user:
                logger.warning("Missing company/user for membership create.")
                return
            # One row per (company, user): re-adding a former member reactivates it.
            membership, _ = CompanyMembership.objects.update_or_create(
                company=company,
                user=user,
                defaults={
                    "public_id": data["membership_public_id"],
                    "role": data["role"],
                    "is_active": data.get("is_active", True),
                },
            )
            grant_role_defaults(membership=membership, granted_by=event.caused_by_user, overwrite=True)
            return

        membership = CompanyMembership.objects.filter(
            public_id=data["membership_public_id"]
        ).select_related("user").first()
        if not membership:
            logger.warning("Membership not found for %s: %s", event.event_type, data["membership_public_id"])
            return

        if event.event_type == EventTypes.MEMBERSHIP_ROLE_CHANGED:
            membership.role = data.get("new_role", membership.role)
            membership.save(update_fields=["role"])
            grant_role_defaults(membership=membership, granted_by=event.caused_by_user, overwrite=True)
            return

        if event.event_type == EventTypes.MEMBERSHIP_DEACTIVATED:
            membership.is_active = False
            membership.save(update_fields=["is_active"])
            if membership.user.active_company_id == membership.company_id:
                membership.user.active_company = None
                membership.user.save(update_fields=["active_company"])
            return

        logger.warning("Unhandled event type for MembershipProjection: %s", event.event_type)


projection_registry.register(CompanyProjection())
projection_registry.register(UserProjection())
projection_registry.register(MembershipProjection())
