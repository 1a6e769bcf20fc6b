# tests/test_accounts.py
"""
Tests for the accounts module.

Tests cover:
- Registration and login
- Tenants and company creation
- Company switching
- Membership management and the last-owner rule
"""

import pytest

from django.core.exceptions import PermissionDenied
from rest_framework.test import APIClient

from accounting.models import Account
from accounts.authz import actor_for_company
from accounts.commands import (
    add_member,
    change_member_role,
    create_company,
    create_tenant,
    deactivate_member,
    register_user,
    switch_active_company,
    update_company,
)
from accounts.models import Company, CompanyMembership
from events.models import BusinessEvent
from events.types import EventTypes
from projections.models import FiscalPeriod


# =============================================================================
# Registration
# =============================================================================

@pytest.mark.django_db
class TestRegistration:

    def test_register_normalises_email(self):
        result = register_user("  Mixed@Example.COM ", "long-enough-pw", "Mixed Case")
        assert result.success
        assert result.data.email == "mixed@example.com"
        assert result.data.check_password("long-enough-pw")

    def test_duplicate_email(self, owner):
        result = register_user("owner@example.com", "another-password")
        assert not result.success
        assert "already exists" in result.error

    def test_short_password(self):
        assert not register_user("short@example.com", "1234567").success

    def test_register_and_login_api(self):
        client = APIClient()
        response = client.post("/api/auth/register/", {
            "email": "api@example.com", "password": "api-password-1", "name": "Api User",
        }, format="json")
        assert response.status_code == 201, response.data
        assert response.data["access"]

        response = client.post("/api/auth/token/", {
            "email": "api@example.com", "password": "api-password-1",
        }, format="json")
        assert response.status_code == 200, response.data
        assert {"access", "refresh"} <= set(response.data)

    def test_login_wrong_password(self, owner):
        response = APIClient().post("/api/auth/token/", {
            "email": "owner@example.com", "password": "wrong-password",
        }, format="json")
        assert response.status_code == 401


# =============================================================================
# Companies
# =============================================================================

@pytest.mark.django_db
class TestCompanyCreation:

    def test_owner_membership_chart_and_periods(self, owner, company):
        membership = CompanyMembership.objects.get(user=owner, company=company)
        assert membership.role == CompanyMembership.Role.OWNER
        assert Account.objects.filter(company=company).exists()
        assert FiscalPeriod.objects.filter(company=company).count() == 12
        assert company.tenant is not None

    def test_creation_events(self, owner, company):
        types = list(
            BusinessEvent.objects.filter(company=company)
            .order_by("company_sequence")
            .values_list("event_type", flat=True)
        )
        assert types[:2] == [EventTypes.COMPANY_CREATED, EventTypes.MEMBERSHIP_CREATED]
        assert EventTypes.USER_REGISTERED in types

    def test_first_registration_event_only_once(self, owner, company, second_company):
        assert not BusinessEvent.objects.filter(
            company=second_company, event_type=EventTypes.USER_REGISTERED,
        ).exists()

    def test_only_tenant_owner_adds_companies(self, tenant, clerk):
        result = create_company(clerk, "Rogue Co", tenant_public_id=tenant.public_id)
        assert not result.success
        assert "tenant owner" in result.error

    def test_invalid_inputs(self, owner):
        assert not create_company(owner, "  ").success
        assert not create_company(owner, "Bad Month", fiscal_year_start_month=13).success
        assert not create_company(owner, "Bad Currency", default_currency="EURO").success

    def test_pending_when_projections_are_deferred(self, settings, owner):
        settings.PROJECTIONS_SYNC = False
        result = create_company(owner, "Deferred Co")
        assert result.success
        assert result.data["status"] == "pending"
        assert Company.objects.filter(public_id=result.data["company_public_id"]).exists()
        assert not CompanyMembership.objects.filter(public_id=result.data["membership_public_id"]).exists()

    def test_update_company(self, actor):
        result = update_company(actor, name="Acme Trading Ltd")
        assert result.success, result.error
        assert result.data.name == "Acme Trading Ltd"
        assert not update_company(actor, slug="nope").success

    def test_tenant_name_required(self, owner):
        assert not create_tenant(owner, "").success


# =============================================================================
# Switching
# =============================================================================

@pytest.mark.django_db
class TestSwitchCompany:

    def test_switch_between_own_companies(self, owner, company, second_company):
        result = switch_active_company(owner, second_company.public_id)
        assert result.success
        owner.refresh_from_db()
        assert owner.active_company_id == second_company.id

    def test_cannot_switch_to_foreign_company(self, owner, outside_company):
        result = switch_active_company(owner, outside_company.public_id)
        assert not result.success
        assert "not an active member" in result.error

    def test_switch_api(self, api_client, second_company):
        response = api_client.post("/api/auth/switch-company/", {
            "company_public_id": str(second_company.public_id),
        }, format="json")
        assert response.status_code == 200
        assert response.data["public_id"] == str(second_company.public_id)

    def test_actor_for_foreign_company(self, owner, outside_company):
        with pytest.raises(PermissionDenied):
            actor_for_company(owner, outside_company)


# =============================================================================
# Members
# =============================================================================

@pytest.mark.django_db
class TestMembers:

    def _membership(self, user, company):
        return CompanyMembership.objects.get(user=user, company=company)

    def test_add_unknown_user(self, actor):
        result = add_member(actor, "nobody@example.com")
        assert not result.success

    def test_add_twice(self, actor, clerk):
        result = add_member(actor, "clerk@example.com")
        assert not result.success
        assert "already a member" in result.error

    def test_clerk_cannot_manage_users(self, clerk_actor, viewer):
        with pytest.raises(PermissionDenied):
            add_member(clerk_actor, "viewer@example.com")

    def test_promote_and_demote(self, actor, clerk, company):
        membership = self._membership(clerk, company)
        result = change_member_role(actor, membership.public_id, CompanyMembership.Role.ADMIN)
        assert result.success, result.error
        assert actor_for_company(clerk, company).has("journal.post")

        change_member_role(actor, membership.public_id, CompanyMembership.Role.VIEWER)
        assert not actor_for_company(clerk, company).has("journal.create")

    def test_last_owner_cannot_be_demoted(self, actor, owner, company):
        membership = self._membership(owner, company)
        result = change_member_role(actor, membership.public_id, CompanyMembership.Role.ADMIN)
        assert not result.success
        assert "last owner" in result.error

    def test_deactivated_member_loses_access(self, actor, clerk, company):
        membership = self._membership(clerk, company)
        result = deactivate_member(actor, membership.public_id)
        assert result.success, result.error
        with pytest.raises(PermissionDenied):
            actor_for_company(clerk, company)

    def test_reactivation_keeps_membership_id(self, actor, clerk, company):
        membership = self._membership(clerk, company)
        deactivate_member(actor, membership.public_id)
        result = add_member(actor, "clerk@example.com", CompanyMembership.Role.VIEWER)
        assert result.success, result.error
        assert result.data.public_id == membership.public_id
        assert result.data.role == CompanyMembership.Role.VIEWER

    def test_members_api(self, api_client, clerk):
        response = api_client.get("/api/auth/members/")
        assert response.status_code == 200
        assert [row["email"] for row in response.data] == ["clerk@example.com", "owner@example.com"]
