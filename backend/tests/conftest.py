# tests/conftest.py
"""
Pytest fixtures for ledgerbridge tests.

Everything is built through commands so the event store, projections and
read models line up exactly as they do in production:

- owner: registered user owning the tenant and both companies
- company / second_company: two companies of one tenant, each with the
  default chart of accounts and open periods for the current fiscal year
- actor / second_actor: the owner's ActorContext in each company
"""

from datetime import date

import pytest

from accounts.authz import actor_for_company
from accounts.commands import (
    add_member,
    create_company,
    create_tenant,
    register_user,
    switch_active_company,
)
from accounts.models import CompanyMembership
from purchases import commands as purchase_commands
from sales import commands as sales_commands
from tests.factories import client_for


PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def _testing_settings(settings):
    """Synchronous projections and validated payloads in every test."""
    settings.TESTING = True
    settings.PROJECTIONS_SYNC = True
    settings.DISABLE_EVENT_VALIDATION = False


# =============================================================================
# Users, tenant, companies
# =============================================================================

@pytest.fixture
def owner(db):
    result = register_user("owner@example.com", PASSWORD, "Olivia Owner")
    assert result.success, result.error
    return result.data


@pytest.fixture
def tenant(owner):
    result = create_tenant(owner, "Acme Group")
    assert result.success, result.error
    return result.data


def _make_company(user, tenant, name, code):
    result = create_company(user, name, tenant_public_id=tenant.public_id, code=code)
    assert result.success, result.error
    return result.data["company"]


@pytest.fixture
def company(owner, tenant):
    return _make_company(owner, tenant, "Acme Trading", "TRD")


@pytest.fixture
def second_company(owner, tenant, company):
    second = _make_company(owner, tenant, "Acme Manufacturing", "MFG")
    # create_company activates the newest company; tests start in the first one
    switch_active_company(owner, company.public_id)
    owner.refresh_from_db()
    return second


@pytest.fixture
def outside_company(db):
    """A company of another tenant, owned by another user."""
    user = register_user("stranger@example.com", PASSWORD, "Sam Stranger").data
    other_tenant = create_tenant(user, "Other Group").data
    return _make_company(user, other_tenant, "Other Corp", "OTH")


@pytest.fixture
def actor(owner, company):
    return actor_for_company(owner, company)


@pytest.fixture
def second_actor(owner, second_company):
    return actor_for_company(owner, second_company)


def _member(actor, email, name, role):
    user = register_user(email, PASSWORD, name).data
    result = add_member(actor, email, role)
    assert result.success, result.error
    return user


@pytest.fixture
def clerk(actor):
    """A USER-role member of the first company."""
    return _member(actor, "clerk@example.com", "Carl Clerk", CompanyMembership.Role.USER)


@pytest.fixture
def viewer(actor):
    """A VIEWER-role member of the first company."""
    return _member(actor, "viewer@example.com", "Vera Viewer", CompanyMembership.Role.VIEWER)


@pytest.fixture
def clerk_actor(clerk, company):
    return actor_for_company(clerk, company)


@pytest.fixture
def viewer_actor(viewer, company):
    return actor_for_company(viewer, company)


@pytest.fixture
def today():
    return date.today()


# =============================================================================
# API clients
# =============================================================================

@pytest.fixture
def api_client(owner, company):
    return client_for(owner, company)


@pytest.fixture
def viewer_client(viewer, company):
    return client_for(viewer, company)


# =============================================================================
# Parties
# =============================================================================

@pytest.fixture
def customer(actor):
    result = sales_commands.create_customer(actor, code="C001", name="Globex Retail", email="ap@globex.test")
    assert result.success, result.error
    return result.data


@pytest.fixture
def vendor(actor):
    result = purchase_commands.create_vendor(actor, code="V001", name="Initech Supplies")
    assert result.success, result.error
    return result.data
