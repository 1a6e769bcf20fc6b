#accounts/tests/test_permissions_defaults.py

from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from accounts.authz import actor_for_company
from accounts.commands import add_member, change_member_role, create_company, register_user
from accounts.models import CompanyMembership, CompanyMembershipPermission, NxPermission
from accounts.permission_defaults import ROLE_DEFAULTS, all_permission_codes
from accounts.permissions import grant_role_defaults
from events.models import BusinessEvent
from events.types import EventTypes
from projections.write_barrier import command_writes_allowed


class TestPermissionDefaults(TestCase):
    def setUp(self):
        self.owner = register_user("o@test.com", "pass12345").data
        self.company = create_company(self.owner, "C1").data["company"]
        owner_actor = actor_for_company(self.owner, self.company)

        self.user = register_user("u@test.com", "pass12345").data
        self.admin = register_user("a@test.com", "pass12345").data
        self.user_m = add_member(owner_actor, "u@test.com", CompanyMembership.Role.USER).data
        self.admin_m = add_member(owner_actor, "a@test.com", CompanyMembership.Role.ADMIN).data
        self.owner_actor = owner_actor

    def test_user_cannot_manage_users(self):
        actor = actor_for_company(self.user, self.company)
        self.assertFalse(actor.has("company.manage_users"))
        self.assertFalse(actor.has("journal.post"))
        self.assertFalse(actor.has("intercompany.manage"))
        self.assertTrue(actor.has("invoices.issue"))

    def test_owner_is_implicitly_allowed(self):
        actor = actor_for_company(self.owner, self.company)
        self.assertTrue(actor.has("anything.at_all"))

    def test_admin_permissions_are_real(self):
        """ADMIN is permission-based: it holds exactly the granted codes."""
        codes = set(self.admin_m.permissions.values_list("code", flat=True))
        self.assertEqual(codes, ROLE_DEFAULTS["ADMIN"])

    def test_admin_revocation_actually_blocks(self):
        perm = NxPermission.objects.get(code="company.manage_users")
        with command_writes_allowed():
            CompanyMembershipPermission.objects.filter(membership=self.admin_m, permission=perm).delete()

        actor = actor_for_company(self.admin, self.company)
        self.assertFalse(actor.has("company.manage_users"))

    def test_grant_is_idempotent(self):
        with command_writes_allowed():
            granted = grant_role_defaults(self.user_m, granted_by=self.owner)
        self.assertEqual(granted, 0)

    def test_seed_permissions_command(self):
        out = StringIO()
        call_command("seed_permissions", stdout=out)
        self.assertIn("Done!", out.getvalue())

        seeded = set(NxPermission.objects.values_list("code", flat=True))
        self.assertTrue(all_permission_codes() <= seeded)
        perm = NxPermission.objects.get(code="journal.post")
        self.assertEqual(perm.default_for_roles, ["ADMIN", "OWNER"])


class TestRoleChangeResetsDefaults(TestCase):
    def setUp(self):
        self.owner = register_user("o@test.com", "pass12345").data
        self.company = create_company(self.owner, "C1").data["company"]
        self.owner_actor = actor_for_company(self.owner, self.company)

        self.member = register_user("m@test.com", "pass12345").data
        self.membership = add_member(self.owner_actor, "m@test.com", CompanyMembership.Role.VIEWER).data

    def test_add_member_grants_defaults_and_emits_event(self):
        codes = set(self.membership.permissions.values_list("code", flat=True))
        self.assertEqual(codes, ROLE_DEFAULTS["VIEWER"])
        self.assertTrue(
            BusinessEvent.objects.filter(
                company=self.company,
                event_type=EventTypes.MEMBERSHIP_CREATED,
                aggregate_id=str(self.membership.public_id),
            ).exists()
        )

    def test_role_change_replaces_permissions(self):
        result = change_member_role(self.owner_actor, self.membership.public_id, CompanyMembership.Role.USER)
        self.assertTrue(result.success, result.error)

        codes = set(result.data.permissions.values_list("code", flat=True))
        self.assertEqual(codes, ROLE_DEFAULTS["USER"])
        self.assertTrue(
            BusinessEvent.objects.filter(
                company=self.company,
                event_type=EventTypes.MEMBERSHIP_ROLE_CHANGED,
            ).exists()
        )

    def test_only_owner_assigns_owner(self):
        admin = register_user("admin@test.com", "pass12345").data
        add_member(self.owner_actor, "admin@test.com", CompanyMembership.Role.ADMIN)
        admin_actor = actor_for_company(admin, self.company)

        result = change_member_role(admin_actor, self.membership.public_id, CompanyMembership.Role.OWNER)
        self.assertFalse(result.success)

    def test_last_owner_cannot_be_demoted(self):
        owner_m = CompanyMembership.objects.get(user=self.owner, company=self.company)
        result = change_member_role(self.owner_actor, owner_m.public_id, CompanyMembership.Role.ADMIN)
        self.assertFalse(result.success)
        self.assertIn("last owner", result.error)
