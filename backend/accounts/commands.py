# accounts/commands.py
"""
Command layer for accounts/authorization operations.

ALL security-critical mutations MUST go through these commands:
- User registration
- Tenant and company creation
- Company switching
- Membership management

This ensures:
1. Consistent validation
2. Audit trail via events
3. Single point of enforcement

Users and tenants live outside any company's event stream, so they are
bootstrap-written here. Everything that happens inside a company
(company.created, membership.*, user.company_switched) is an event.
"""

import logging
import uuid

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.text import slugify

from accounts.authz import ActorContext, actor_for_company, require
from accounts.models import Company, CompanyMembership, Tenant
from accounting.commands import (
    CommandResult,
    _idempotency_hash,
    _process_projections,
    current_fiscal_year,
    emit_periods_configured,
    seed_chart_of_accounts,
)
from events.emitter import emit_event, emit_event_no_actor
from events.models import BusinessEvent
from events.types import (
    EventTypes,
    CompanyCreatedData,
    CompanyUpdatedData,
    MembershipCreatedData,
    MembershipDeactivatedData,
    MembershipRoleChangedData,
    UserCompanySwitchedData,
    UserRegisteredData,
)
from projections.write_barrier import bootstrap_writes_allowed


logger = logging.getLogger(__name__)
User = get_user_model()


def _unique_slug(model, name: str, fallback: str) -> str | None:
    base_slug = slugify(name.strip()) or fallback
    slug = base_slug
    max_attempts = 10
    for attempt in range(max_attempts):
        if not model.objects.filter(slug=slug).exists():
            return slug
        slug = f"{base_slug}-{attempt + 1}"
    return None


def _owns_tenant(user, tenant: Tenant) -> bool:
    if tenant.owner_id == user.id:
        return True
    return CompanyMembership.objects.filter(
        user=user,
        company__tenant=tenant,
        role=CompanyMembership.Role.OWNER,
        is_active=True,
    ).exists()


def _active_owner_count(company) -> int:
    return CompanyMembership.objects.filter(
        company=company,
        role=CompanyMembership.Role.OWNER,
        is_active=True,
    ).count()


# =============================================================================
# Registration
# =============================================================================

@transaction.atomic
def register_user(email: str, password: str, name: str = "") -> CommandResult:
    """
    Register a new user.

    The user has no company yet; the registration is recorded as
    user.registered in the first company the user creates.

    Returns:
        CommandResult with the User
    """
    email = (email or "").lower().strip()
    if not email:
        return CommandResult.fail("Email is required.")
    if User.objects.filter(email=email).exists():
        return CommandResult.fail(f"User with email '{email}' already exists.")
    if not password or len(password) < 8:
        return CommandResult.fail("Password must be at least 8 characters.")

    with bootstrap_writes_allowed():
        user = User.objects.create_user(
            email=email,
            password=password,
            name=(name or "").strip(),
        )

    logger.info("Registered user %s", user.email)
    return CommandResult.ok(user)


@transaction.atomic
def create_tenant(user, name: str) -> CommandResult:
    """Create a tenant owned by ``user``. Companies are added with create_company."""
    if not name or not name.strip():
        return CommandResult.fail("Tenant name is required.")

    slug = _unique_slug(Tenant, name, "tenant")
    if slug is None:
        return CommandResult.fail("Could not generate unique tenant slug. Please try a different name.")

    with bootstrap_writes_allowed():
        tenant = Tenant.objects.create(name=name.strip(), slug=slug, owner=user)

    logger.info("Created tenant %s for %s", tenant.slug, user.email)
    return CommandResult.ok(tenant)


# =============================================================================
# Company Creation
# =============================================================================

@transaction.atomic
def create_company(
    user,
    name: str,
    tenant_public_id=None,
    code: str = "",
    company_type: str = Company.CompanyType.OTHER,
    tax_id: str = "",
    default_currency: str = "USD",
    fiscal_year_start_month: int = 1,
    seed_chart: bool = True,
) -> CommandResult:
    """
    Create a company with the user as its OWNER.

    Emits company.created and membership.created (plus user.registered for
    the user's first company), configures the fiscal periods of the
    current fiscal year, seeds the default chart of accounts and switches
    the user's active company to the new one.

    Returns:
        CommandResult with {"company": ..., "membership": ...}
    """
    if not name or not name.strip():
        return CommandResult.fail("Company name is required.")
    if not 1 <= int(fiscal_year_start_month) <= 12:
        return CommandResult.fail("Fiscal year start month must be between 1 and 12.")
    if company_type not in Company.CompanyType.values:
        return CommandResult.fail(f"Unknown company type '{company_type}'.")
    if len(default_currency or "") != 3:
        return CommandResult.fail("Currency must be a 3-letter code.")

    tenant = None
    if tenant_public_id:
        tenant = Tenant.objects.filter(public_id=tenant_public_id, is_active=True).first()
        if not tenant:
            return CommandResult.fail("Tenant not found.")
        if not _owns_tenant(user, tenant):
            return CommandResult.fail("Only a tenant owner can add companies to it.")

    slug = _unique_slug(Company, name, "company")
    if slug is None:
        return CommandResult.fail("Could not generate unique company slug.")

    first_company = not CompanyMembership.objects.filter(user=user).exists()
    company_public_id = uuid.uuid4()
    membership_public_id = uuid.uuid4()

    with bootstrap_writes_allowed():
        company = Company.objects.create(
            public_id=company_public_id,
            tenant=tenant,
            name=name.strip(),
            slug=slug,
            code=code,
            company_type=company_type,
            tax_id=tax_id,
            default_currency=default_currency.upper(),
            fiscal_year_start_month=int(fiscal_year_start_month),
        )

    events = [
        emit_event_no_actor(
            company=company,
            user=user,
            event_type=EventTypes.COMPANY_CREATED,
            aggregate_type="Company",
            aggregate_id=str(company_public_id),
            idempotency_key=f"company.created:{company_public_id}",
            data=CompanyCreatedData(
                company_public_id=str(company_public_id),
                name=company.name,
                slug=slug,
                default_currency=company.default_currency,
                fiscal_year_start_month=company.fiscal_year_start_month,
                tenant_public_id=str(tenant.public_id) if tenant else None,
            ).to_dict(),
        ),
        emit_event_no_actor(
            company=company,
            user=user,
            event_type=EventTypes.MEMBERSHIP_CREATED,
            aggregate_type="CompanyMembership",
            aggregate_id=str(membership_public_id),
            idempotency_key=f"membership.created:{membership_public_id}",
            data=MembershipCreatedData(
                membership_public_id=str(membership_public_id),
                company_public_id=str(company_public_id),
                user_public_id=str(user.public_id),
                role=CompanyMembership.Role.OWNER,
                is_active=True,
            ).to_dict(),
        ),
    ]

    if first_company:
        events.append(emit_event_no_actor(
            company=company,
            user=user,
            event_type=EventTypes.USER_REGISTERED,
            aggregate_type="User",
            aggregate_id=str(user.public_id),
            idempotency_key=f"user.registered:{user.public_id}",
            data=UserRegisteredData(
                user_public_id=str(user.public_id),
                email=user.email,
                name=user.name,
                company_public_id=str(company_public_id),
                company_name=company.name,
                membership_public_id=str(membership_public_id),
            ).to_dict(),
        ))

    events.append(emit_periods_configured(company, user, current_fiscal_year(company)))

    if not settings.PROJECTIONS_SYNC:
        # Memberships are projected asynchronously; chart seeding and the
        # company switch need the OWNER membership, so they wait for it.
        return CommandResult.ok({
            "status": "pending",
            "company_public_id": str(company_public_id),
            "membership_public_id": str(membership_public_id),
        }, event=events[0], events=events)

    _process_projections(company)
    membership = CompanyMembership.objects.get(public_id=membership_public_id)

    if seed_chart:
        actor = actor_for_company(user, company)
        seeded = seed_chart_of_accounts(actor)
        events.extend(seeded.events)

    switched = switch_active_company(user, company_public_id)
    if not switched.success:
        return switched
    events.extend(switched.events)

    company.refresh_from_db()
    logger.info("Created company %s (%s) for %s", company.name, company.slug, user.email)
    return CommandResult.ok(
        {"company": company, "membership": membership},
        event=events[0],
        events=events,
    )


@transaction.atomic
def update_company(actor: ActorContext, **updates) -> CommandResult:
    """
    Update the actor's company.

    Allowed fields: name, code, company_type, tax_id,
    default_currency, fiscal_year_start_month, is_active
    """
    from projections.accounts import COMPANY_UPDATABLE_FIELDS

    require(actor, "company.manage_settings")

    company = Company.objects.get(pk=actor.company.pk)

    unknown = set(updates) - COMPANY_UPDATABLE_FIELDS
    if unknown:
        return CommandResult.fail(f"Cannot update fields: {', '.join(sorted(unknown))}.")
    if "company_type" in updates and updates["company_type"] not in Company.CompanyType.values:
        return CommandResult.fail(f"Unknown company type '{updates['company_type']}'.")
    if "fiscal_year_start_month" in updates and not 1 <= int(updates["fiscal_year_start_month"]) <= 12:
        return CommandResult.fail("Fiscal year start month must be between 1 and 12.")
    if "default_currency" in updates and len(updates["default_currency"] or "") != 3:
        return CommandResult.fail("Currency must be a 3-letter code.")

    changes = {}
    for field, new_value in updates.items():
        old_value = getattr(company, field)
        if old_value != new_value:
            changes[field] = {"old": old_value, "new": new_value}

    if not changes:
        return CommandResult.ok(company)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.COMPANY_UPDATED,
        aggregate_type="Company",
        aggregate_id=str(company.public_id),
        idempotency_key=_idempotency_hash("company.updated", {
            "company_public_id": str(company.public_id),
            "changes": changes,
        }),
        data=CompanyUpdatedData(
            company_public_id=str(company.public_id),
            changes=changes,
        ).to_dict(),
    )

    _process_projections(company)
    company.refresh_from_db()
    return CommandResult.ok(company, event=event)


# =============================================================================
# Company Switching
# =============================================================================

@transaction.atomic
def switch_active_company(user, company_public_id) -> CommandResult:
    """
    Switch user's active company.

    This is a SECURITY-CRITICAL operation that changes what the user can
    access. The user must hold an active membership in the target company.
    """
    company = Company.objects.filter(public_id=company_public_id, is_active=True).first()
    if not company:
        return CommandResult.fail("Company not found.")

    if not CompanyMembership.objects.filter(user=user, company=company, is_active=True).exists():
        return CommandResult.fail("You are not an active member of this company.")

    if user.active_company_id == company.id:
        return CommandResult.ok(company)

    from_company = user.active_company
    event = emit_event_no_actor(
        company=company,
        user=user,
        event_type=EventTypes.USER_COMPANY_SWITCHED,
        aggregate_type="User",
        aggregate_id=str(user.public_id),
        idempotency_key=_idempotency_hash("user.company_switched", {
            "user_public_id": str(user.public_id),
            "from_company_public_id": str(from_company.public_id) if from_company else None,
            "to_company_public_id": str(company.public_id),
            "switch_id": str(uuid.uuid4()),
        }),
        data=UserCompanySwitchedData(
            user_public_id=str(user.public_id),
            email=user.email,
            from_company_public_id=str(from_company.public_id) if from_company else None,
            to_company_public_id=str(company.public_id),
            to_company_name=company.name,
        ).to_dict(),
        origin=BusinessEvent.EventOrigin.HUMAN,
    )

    _process_projections(company)
    user.refresh_from_db(fields=["active_company"])
    return CommandResult.ok(company, event=event)


# =============================================================================
# Membership Management
# =============================================================================

@transaction.atomic
def add_member(actor: ActorContext, email: str, role: str = CompanyMembership.Role.USER) -> CommandResult:
    """
    Add a registered user to the actor's company.

    A former member is re-added under the same membership id.
    """
    require(actor, "company.manage_users")

    if role not in CompanyMembership.Role.values:
        return CommandResult.fail(f"Invalid role. Must be one of: {CompanyMembership.Role.values}")
    if role == CompanyMembership.Role.OWNER and not actor.is_owner:
        return CommandResult.fail("Only an owner can add another owner.")

    user = User.objects.filter(email=(email or "").lower().strip()).first()
    if not user:
        return CommandResult.fail("User not found. They must register first.")

    existing = CompanyMembership.objects.filter(user=user, company=actor.company).first()
    if existing and existing.is_active:
        return CommandResult.fail("User is already a member of this company.")
    membership_public_id = existing.public_id if existing else uuid.uuid4()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.MEMBERSHIP_CREATED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership_public_id),
        idempotency_key=_idempotency_hash("membership.created", {
            "company_public_id": str(actor.company.public_id),
            "user_public_id": str(user.public_id),
            "membership_public_id": str(membership_public_id),
            "role": role,
            "reactivated": bool(existing),
        }),
        data=MembershipCreatedData(
            membership_public_id=str(membership_public_id),
            company_public_id=str(actor.company.public_id),
            user_public_id=str(user.public_id),
            role=role,
            is_active=True,
        ).to_dict(),
    )

    _process_projections(actor.company)
    membership = CompanyMembership.objects.get(public_id=membership_public_id)
    logger.info("Added %s to %s as %s", user.email, actor.company.name, role)
    return CommandResult.ok(membership, event=event)


def _get_membership(actor, membership_public_id):
    return CompanyMembership.objects.select_related("user", "company").filter(
        public_id=membership_public_id,
        company=actor.company,
    ).first()


@transaction.atomic
def change_member_role(actor: ActorContext, membership_public_id, role: str) -> CommandResult:
    """
    Change a membership's role. Permissions reset to the new role's defaults.
    """
    require(actor, "company.manage_users")

    membership = _get_membership(actor, membership_public_id)
    if not membership or not membership.is_active:
        return CommandResult.fail("Membership not found.")

    if role not in CompanyMembership.Role.values:
        return CommandResult.fail(f"Invalid role. Must be one of: {CompanyMembership.Role.values}")
    if membership.role == role:
        return CommandResult.ok(membership)

    if membership.role == CompanyMembership.Role.OWNER and not actor.is_owner:
        return CommandResult.fail("Cannot modify the owner's role.")
    if role == CompanyMembership.Role.OWNER and not actor.is_owner:
        return CommandResult.fail("Only the owner can assign OWNER role.")
    if membership.role == CompanyMembership.Role.OWNER and _active_owner_count(actor.company) <= 1:
        return CommandResult.fail("Cannot demote the last owner. Assign another owner first.")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.MEMBERSHIP_ROLE_CHANGED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership.public_id),
        idempotency_key=_idempotency_hash("membership.role_changed", {
            "membership_public_id": str(membership.public_id),
            "old_role": membership.role,
            "new_role": role,
            "change_id": str(uuid.uuid4()),
        }),
        data=MembershipRoleChangedData(
            membership_public_id=str(membership.public_id),
            user_public_id=str(membership.user.public_id),
            old_role=membership.role,
            new_role=role,
        ).to_dict(),
    )

    _process_projections(actor.company)
    membership = CompanyMembership.objects.get(public_id=membership.public_id)
    return CommandResult.ok(membership, event=event)


@transaction.atomic
def deactivate_member(actor: ActorContext, membership_public_id) -> CommandResult:
    """Deactivate a membership (soft delete). The last owner stays."""
    require(actor, "company.manage_users")

    membership = _get_membership(actor, membership_public_id)
    if not membership or not membership.is_active:
        return CommandResult.fail("Membership not found.")

    if membership.role == CompanyMembership.Role.OWNER:
        if not actor.is_owner:
            return CommandResult.fail("Only an owner can deactivate another owner.")
        if _active_owner_count(actor.company) <= 1:
            return CommandResult.fail("Cannot deactivate the last owner of the company.")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.MEMBERSHIP_DEACTIVATED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership.public_id),
        idempotency_key=_idempotency_hash("membership.deactivated", {
            "membership_public_id": str(membership.public_id),
            "deactivation_id": str(uuid.uuid4()),
        }),
        data=MembershipDeactivatedData(
            membership_public_id=str(membership.public_id),
            user_public_id=str(membership.user.public_id),
            company_public_id=str(actor.company.public_id),
            user_email=membership.user.email,
        ).to_dict(),
    )

    _process_projections(actor.company)
    return CommandResult.ok({"deactivated": True}, event=event)
