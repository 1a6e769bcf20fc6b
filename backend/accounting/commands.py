# accounting/commands.py
"""
Command layer for accounting operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and emit events.

Pattern:
1. Validate permissions (require)
2. Apply business policies (can_*)
3. Emit event(s) (emit_event)
4. Run projections (PROJECTIONS_SYNC) and read back the read model
5. Return CommandResult

ALL state changes MUST go through commands to ensure events are emitted.

CommandResult and the sequence/idempotency helpers defined here are
shared by the sales, purchases and intercompany command modules.
"""

from datetime import date as date_type, timedelta
from decimal import Decimal, InvalidOperation
import calendar
import hashlib
import json
import logging
import uuid

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting.aggregates import (
    fiscal_period_aggregate_id,
    load_account_aggregate,
    load_fiscal_period_aggregate,
    load_journal_entry_aggregate,
)
from accounting.models import Account, JournalEntry, CompanySequence
from accounting.policies import (
    PolicyViolation,
    can_change_account_code,
    can_change_account_type,
    can_deactivate_account,
    can_delete_entry,
    can_edit_entry,
    can_modify_account,
    can_post_entry,
    can_post_to_account,
    can_reverse_entry,
    check_lines_balanced,
)
from accounting.posting import DEFAULT_CHART, POSTING_ROLES
from events.emitter import emit_event, emit_event_no_actor
from events.types import (
    EventTypes,
    AccountCreatedData,
    AccountUpdatedData,
    JournalEntryCreatedData,
    JournalEntryUpdatedData,
    JournalEntryPostedData,
    JournalEntrySavedCompleteData,
    JournalEntryDeletedData,
    FiscalPeriodClosedData,
    FiscalPeriodOpenedData,
    FiscalPeriodsConfiguredData,
    JournalLineData,
)
from projections.write_barrier import command_writes_allowed


logger = logging.getLogger(__name__)


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_account(actor, code="1000", ...)
        if result.success:
            account = result.data
            event = result.event
        else:
            error_message = result.error

    Commands that emit several events (document postings, intercompany
    commands) also fill ``events``.
    """

    def __init__(self, success: bool, data=None, error: str = None, event=None, events=None):
        self.success = success
        self.data = data
        self.error = error
        self.event = event  # The main emitted event, if any
        self.events = list(events or ([event] if event is not None else []))

    @classmethod
    def ok(cls, data=None, event=None, events=None):
        return cls(success=True, data=data, event=event, events=events)

    @classmethod
    def fail(cls, error: str):
        return cls(success=False, error=error)

    def __repr__(self):
        if self.success:
            return f"<CommandResult ok events={len(self.events)}>"
        return f"<CommandResult fail {self.error!r}>"


def _changes_hash(changes: dict) -> str:
    payload = json.dumps(changes, sort_keys=True, separators=(",", ":"), default=str).encode()
    return hashlib.sha256(payload).hexdigest()[:12]


def _idempotency_hash(prefix: str, payload: dict) -> str:
    normalized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode()
    digest = hashlib.sha256(normalized).hexdigest()[:16]
    return f"{prefix}:{digest}"


def _next_company_sequence(company, name: str) -> int:
    """
    Allocate the next sequence value for a company/name pair.
    Uses select_for_update to avoid concurrent duplicates.
    """
    with command_writes_allowed():
        try:
            seq = CompanySequence.objects.select_for_update().get(
                company=company,
                name=name,
            )
        except CompanySequence.DoesNotExist:
            try:
                with transaction.atomic():
                    seq = CompanySequence.objects.create(
                        company=company,
                        name=name,
                        next_value=1,
                    )
            except IntegrityError:
                seq = CompanySequence.objects.select_for_update().get(
                    company=company,
                    name=name,
                )

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value", "updated_at"])
        return value


def _next_document_number(company, prefix: str) -> str:
    """INV-{company_id}-000001 style numbers, one sequence per prefix."""
    value = _next_company_sequence(company, f"{prefix.lower()}_number")
    return f"{prefix}-{company.id}-{value:06d}"


def _process_projections(company, exclude: set[str] | None = None, force: bool = False) -> None:
    """
    Run projections inline for a company.

    ``force`` runs them even when PROJECTIONS_SYNC is off; multi-step
    document commands read back rows produced by their own earlier steps.
    """
    if not settings.PROJECTIONS_SYNC and not force:
        return

    from projections.base import projection_registry

    excluded = exclude or set()
    for projection in projection_registry.all():
        if projection.name in excluded:
            continue
        projection.process_pending(company, limit=1000)


def _projection_failure(company, projection_name: str, fallback: str) -> CommandResult:
    """Turn a missing read-model row into a failure carrying the projection error."""
    from projections.base import projection_registry

    projection = projection_registry.get(projection_name)
    if projection:
        bookmark = projection.get_bookmark(company)
        if bookmark and bookmark.last_error:
            return CommandResult.fail(f"Projection error: {bookmark.last_error}")
    return CommandResult.fail(fallback)


def _iso(value) -> str | None:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _to_decimal(value) -> Decimal:
    try:
        return Decimal(str(value if value not in (None, "") else "0")).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise PolicyViolation(f"Invalid amount: {value!r}")


# =============================================================================
# Account Commands
# =============================================================================

@transaction.atomic
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    parent_id: int = None,
    is_header: bool = False,
    description: str = "",
    role: str = "",
) -> CommandResult:
    """
    Create a new account in the chart of accounts.

    Args:
        actor: The actor context (user + company)
        code: Account code (unique per company)
        name: Account name
        account_type: One of Account.AccountType choices
        parent_id: Optional parent account ID (must be a header)
        is_header: True if this is a grouping account
        role: Optional posting role (see accounting.posting.DEFAULT_CHART)

    Returns:
        CommandResult with the created Account or error
    """
    require(actor, "accounts.manage")

    if account_type not in Account.AccountType.values:
        return CommandResult.fail(f"Unknown account type '{account_type}'.")

    if Account.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Account code '{code}' already exists.")

    if role:
        if role not in POSTING_ROLES:
            return CommandResult.fail(f"Unknown posting role '{role}'.")
        if Account.objects.filter(company=actor.company, role=role).exists():
            return CommandResult.fail(f"Another account already has posting role '{role}'.")
        if is_header:
            return CommandResult.fail("Header accounts cannot carry a posting role.")

    parent = None
    if parent_id:
        try:
            parent = Account.objects.get(pk=parent_id, company=actor.company)
        except Account.DoesNotExist:
            return CommandResult.fail("Parent account not found.")
        if not parent.is_header:
            return CommandResult.fail("Parent account must be a header account.")

    account_public_id = uuid.uuid4()
    normal_balance = Account.NORMAL_BALANCE_MAP.get(account_type, Account.NormalBalance.DEBIT)

    idempotency_key = _idempotency_hash("account.created", {
        "company_public_id": str(actor.company.public_id),
        "code": code,
        "name": name,
        "account_type": account_type,
        "is_header": is_header,
        "parent_public_id": str(parent.public_id) if parent else None,
        "role": role,
    })

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=str(account_public_id),
        idempotency_key=idempotency_key,
        data=AccountCreatedData(
            account_public_id=str(account_public_id),
            code=code,
            name=name,
            account_type=account_type,
            normal_balance=normal_balance,
            is_header=is_header,
            parent_public_id=str(parent.public_id) if parent else None,
            description=description,
            posting_role=role,
        ).to_dict(),
    )

    _process_projections(actor.company)
    account = Account.objects.filter(
        company=actor.company,
        public_id=event.data["account_public_id"],
    ).first()
    if not account:
        return _projection_failure(actor.company, "account_read_model", "Account could not be created.")
    return CommandResult.ok(account, event=event)


def seed_chart_of_accounts(actor: ActorContext) -> CommandResult:
    """
    Create the default chart (accounts with posting roles) for a company.

    Accounts whose code already exists are skipped, so seeding twice is
    harmless.
    """
    require(actor, "accounts.manage")

    existing_codes = set(
        Account.objects.filter(company=actor.company).values_list("code", flat=True)
    )
    events = []
    for code, name, account_type, role in DEFAULT_CHART:
        if code in existing_codes:
            continue
        account_public_id = uuid.uuid4()
        events.append(emit_event(
            actor=actor,
            event_type=EventTypes.ACCOUNT_CREATED,
            aggregate_type="Account",
            aggregate_id=str(account_public_id),
            idempotency_key=f"account.seeded:{actor.company.public_id}:{code}",
            data=AccountCreatedData(
                account_public_id=str(account_public_id),
                code=code,
                name=name,
                account_type=account_type,
                normal_balance=Account.NORMAL_BALANCE_MAP[account_type],
                is_header=False,
                posting_role=role,
            ).to_dict(),
        ))

    _process_projections(actor.company)
    logger.info("Seeded %s accounts for %s", len(events), actor.company.name)
    return CommandResult.ok({"created": len(events)}, events=events)


ACCOUNT_UPDATABLE_FIELDS = {"name", "description", "status", "code", "account_type"}


@transaction.atomic
def update_account(
    actor: ActorContext,
    account_id: int,
    **updates,
) -> CommandResult:
    """
    Update an existing account.

    Args:
        actor: The actor context
        account_id: ID of account to update
        **updates: Field updates (name, description, status, code, account_type)

    Returns:
        CommandResult with updated Account or error
    """
    require(actor, "accounts.manage")

    try:
        account = Account.objects.select_for_update().get(pk=account_id, company=actor.company)
    except Account.DoesNotExist:
        return CommandResult.fail("Account not found.")

    allowed, reason = can_modify_account(actor, account)
    if not allowed:
        return CommandResult.fail(reason)

    unknown = set(updates) - ACCOUNT_UPDATABLE_FIELDS
    if unknown:
        return CommandResult.fail(f"Cannot update fields: {', '.join(sorted(unknown))}.")

    if "code" in updates and updates["code"] != account.code:
        allowed, reason = can_change_account_code(actor, account)
        if not allowed:
            return CommandResult.fail(reason)
        if Account.objects.filter(
            company=actor.company,
            code=updates["code"],
        ).exclude(pk=account.id).exists():
            return CommandResult.fail(f"Account code '{updates['code']}' already exists.")

    if "account_type" in updates and updates["account_type"] != account.account_type:
        if updates["account_type"] not in Account.AccountType.values:
            return CommandResult.fail(f"Unknown account type '{updates['account_type']}'.")
        allowed, reason = can_change_account_type(actor, account)
        if not allowed:
            return CommandResult.fail(reason)

    if updates.get("status") == Account.Status.INACTIVE and account.status == Account.Status.ACTIVE:
        allowed, reason = can_deactivate_account(actor, account)
        if not allowed:
            return CommandResult.fail(reason)

    aggregate = load_account_aggregate(actor.company, str(account.public_id))

    changes = {}
    for field, value in updates.items():
        old_value = getattr(aggregate, field) if aggregate else getattr(account, field)
        if old_value != value:
            changes[field] = {"old": old_value, "new": value}

    if not changes:
        return CommandResult.ok(account)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_UPDATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.updated:{account.public_id}:{_changes_hash(changes)}",
        data=AccountUpdatedData(
            account_public_id=str(account.public_id),
            changes=changes,
        ).to_dict(),
    )

    _process_projections(actor.company)
    account = Account.objects.get(company=actor.company, public_id=account.public_id)
    return CommandResult.ok(account, event=event)


def deactivate_account(actor: ActorContext, account_id: int) -> CommandResult:
    """Mark an account INACTIVE. History keeps pointing at it."""
    return update_account(actor, account_id, status=Account.Status.INACTIVE)


# =============================================================================
# Journal Entry Commands
# =============================================================================

def _resolve_entry_lines(company, lines) -> list[dict]:
    """
    Turn request lines into JournalLineData dicts.

    Accepts ``account_id`` (pk), ``account`` (pk) or ``account_public_id``.
    Placeholder lines with neither debit nor credit are skipped.

    Raises:
        PolicyViolation: unknown account, negative amounts, both sides set
    """
    by_pk = {}
    by_public_id = {}
    pks = [line.get("account_id") or line.get("account") for line in lines]
    public_ids = [line.get("account_public_id") for line in lines if line.get("account_public_id")]
    for account in Account.objects.filter(company=company, pk__in=[pk for pk in pks if pk]):
        by_pk[account.pk] = account
    for account in Account.objects.filter(company=company, public_id__in=public_ids):
        by_public_id[str(account.public_id)] = account

    line_data = []
    line_no = 1
    for line in lines:
        debit = _to_decimal(line.get("debit"))
        credit = _to_decimal(line.get("credit"))
        if debit == 0 and credit == 0:
            continue
        if debit < 0 or credit < 0:
            raise PolicyViolation(f"Line {line_no}: amounts cannot be negative.")
        if debit > 0 and credit > 0:
            raise PolicyViolation(f"Line {line_no}: cannot have both debit and credit.")

        account_ref = line.get("account_id") or line.get("account")
        if account_ref:
            account = by_pk.get(int(account_ref))
        else:
            account = by_public_id.get(str(line.get("account_public_id")))
        if account is None:
            raise PolicyViolation(f"Account {account_ref or line.get('account_public_id')} not found.")

        line_data.append(JournalLineData(
            line_no=line_no,
            account_public_id=str(account.public_id),
            account_code=account.code,
            description=line.get("description", "") or "",
            debit=str(debit),
            credit=str(credit),
        ).to_dict())
        line_no += 1
    return line_data


def _load_entry(actor, entry_id):
    try:
        entry = JournalEntry.objects.select_for_update().get(pk=entry_id, company=actor.company)
    except JournalEntry.DoesNotExist:
        return None, None
    aggregate = load_journal_entry_aggregate(actor.company, str(entry.public_id))
    if not aggregate or aggregate.deleted:
        return None, None
    return entry, aggregate


@transaction.atomic
def create_journal_entry(
    actor: ActorContext,
    date,
    memo: str = "",
    lines: list = None,
    kind: str = JournalEntry.Kind.NORMAL,
    currency: str = None,
    period: int = None,
) -> CommandResult:
    """
    Create a new journal entry (INCOMPLETE).

    Args:
        actor: The actor context
        date: Entry date
        memo: Memo/description
        lines: List of line dicts with account_id, description, debit, credit
        kind: Entry kind (NORMAL, OPENING, CLOSING, ADJUSTMENT)

    Returns:
        CommandResult with created JournalEntry or error
    """
    require(actor, "journal.create")

    if kind == JournalEntry.Kind.REVERSAL:
        return CommandResult.fail("Reversal entries are created by reversing a posted entry.")

    try:
        line_data = _resolve_entry_lines(actor.company, lines or [])
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    entry_public_id = uuid.uuid4()
    entry_currency = currency or actor.company.default_currency

    idempotency_key = _idempotency_hash("journal_entry.created", {
        "company_public_id": str(actor.company.public_id),
        "entry_public_id": str(entry_public_id),
    })

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_CREATED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry_public_id),
        idempotency_key=idempotency_key,
        data=JournalEntryCreatedData(
            entry_public_id=str(entry_public_id),
            date=_iso(date),
            memo=memo,
            kind=kind,
            period=period,
            currency=entry_currency,
            created_by_id=actor.user.id,
            lines=line_data,
        ).to_dict(),
    )

    _process_projections(actor.company)
    entry = JournalEntry.objects.filter(company=actor.company, public_id=entry_public_id).first()
    if not entry:
        return _projection_failure(
            actor.company,
            "journal_entry_read_model",
            "Journal entry could not be created. Projection may have failed.",
        )
    return CommandResult.ok(entry, event=event)


@transaction.atomic
def update_journal_entry(
    actor: ActorContext,
    entry_id: int,
    date=None,
    memo: str = None,
    currency: str = None,
    lines: list = None,
    period: int = None,
) -> CommandResult:
    """
    Update a journal entry (autosave mode - status becomes INCOMPLETE).

    Lines, when given, replace all existing lines.
    """
    require(actor, "journal.edit_draft")

    entry, aggregate = _load_entry(actor, entry_id)
    if not entry:
        return CommandResult.fail("Journal entry not found.")

    allowed, reason = can_edit_entry(actor, aggregate)
    if not allowed:
        return CommandResult.fail(reason)

    changes = {}
    if date is not None and aggregate.date != _iso(date):
        changes["date"] = {"old": aggregate.date, "new": _iso(date)}
    if memo is not None and aggregate.memo != memo:
        changes["memo"] = {"old": aggregate.memo, "new": memo}
    if currency is not None and aggregate.currency != currency:
        changes["currency"] = {"old": aggregate.currency, "new": currency}
    if period is not None and entry.period != period:
        changes["period"] = {"old": entry.period, "new": period}

    line_data = None
    if lines is not None:
        try:
            line_data = _resolve_entry_lines(actor.company, lines)
        except PolicyViolation as exc:
            return CommandResult.fail(str(exc))
        if line_data != aggregate.lines:
            changes["lines"] = {"old": len(aggregate.lines), "new": len(line_data)}
        else:
            line_data = None

    if not changes:
        return CommandResult.ok(entry)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_UPDATED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.updated:{entry.public_id}:{_changes_hash([changes, line_data])}",
        data=JournalEntryUpdatedData(
            entry_public_id=str(entry.public_id),
            changes=changes,
            lines=line_data,
        ).to_dict(),
    )

    _process_projections(actor.company)
    entry = JournalEntry.objects.get(company=actor.company, public_id=entry.public_id)
    return CommandResult.ok(entry, event=event)


@transaction.atomic
def save_journal_entry_complete(
    actor: ActorContext,
    entry_id: int,
    date=None,
    memo: str = None,
    currency: str = None,
    lines: list = None,
    period: int = None,
) -> CommandResult:
    """
    Save a journal entry as complete (DRAFT status).

    Validates that the entry is balanced and has at least 2 lines.
    """
    require(actor, "journal.edit_draft")

    entry, aggregate = _load_entry(actor, entry_id)
    if not entry:
        return CommandResult.fail("Journal entry not found.")

    allowed, reason = can_edit_entry(actor, aggregate)
    if not allowed:
        return CommandResult.fail(reason)

    if lines is not None:
        try:
            line_data = _resolve_entry_lines(actor.company, lines)
        except PolicyViolation as exc:
            return CommandResult.fail(str(exc))
    else:
        line_data = aggregate.lines

    allowed, reason = check_lines_balanced(line_data)
    if not allowed:
        return CommandResult.fail(reason)

    entry_date = _iso(date) if date is not None else aggregate.date
    if not entry_date:
        return CommandResult.fail("Entry date is required to save as complete.")

    total_debit = sum((Decimal(line["debit"]) for line in line_data), Decimal("0.00"))
    total_credit = sum((Decimal(line["credit"]) for line in line_data), Decimal("0.00"))
    payload = {
        "date": entry_date,
        "memo": memo if memo is not None else (aggregate.memo or ""),
        "currency": currency if currency is not None else aggregate.currency,
        "lines": line_data,
    }

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_SAVED_COMPLETE,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.saved_complete:{entry.public_id}:{_changes_hash(payload)}",
        data=JournalEntrySavedCompleteData(
            entry_public_id=str(entry.public_id),
            date=payload["date"],
            memo=payload["memo"],
            line_count=len(line_data),
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            period=period if period is not None else entry.period,
            currency=payload["currency"],
            lines=line_data,
        ).to_dict(),
    )

    _process_projections(actor.company)
    entry = JournalEntry.objects.get(company=actor.company, public_id=entry.public_id)
    return CommandResult.ok(entry, event=event)


@transaction.atomic
def post_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """
    Post a DRAFT journal entry, making it affect account balances.

    Allocates the entry number JE-{company_id}-{n:06d}.
    """
    require(actor, "journal.post")

    entry, aggregate = _load_entry(actor, entry_id)
    if not entry:
        return CommandResult.fail("Journal entry not found.")

    allowed, reason = can_post_entry(actor, aggregate)
    if not allowed:
        return CommandResult.fail(reason)

    allowed, reason = check_lines_balanced(aggregate.lines)
    if not allowed:
        return CommandResult.fail(reason)

    accounts = {
        str(acc.public_id): acc
        for acc in Account.objects.filter(
            company=actor.company,
            public_id__in=[line.get("account_public_id") for line in aggregate.lines],
        )
    }
    for line in aggregate.lines:
        account = accounts.get(str(line.get("account_public_id")))
        if not account:
            return CommandResult.fail(f"Account {line.get('account_code')} not found.")
        allowed, reason = can_post_to_account(account)
        if not allowed:
            return CommandResult.fail(reason)

    posted_at = timezone.now()
    sequence_value = _next_company_sequence(actor.company, "journal_entry_number")
    entry_number = f"JE-{actor.company.id}-{sequence_value:06d}"

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.posted:{entry.public_id}",
        data=JournalEntryPostedData(
            entry_public_id=str(entry.public_id),
            entry_number=entry_number,
            date=aggregate.date or entry.date.isoformat(),
            memo=aggregate.memo,
            kind=aggregate.kind,
            period=entry.period,
            currency=aggregate.currency or entry.currency or actor.company.default_currency,
            posted_at=posted_at.isoformat(),
            posted_by_id=actor.user.id,
            posted_by_email=actor.user.email,
            total_debit=str(aggregate.total_debit),
            total_credit=str(aggregate.total_credit),
            lines=aggregate.lines,
            source_module="accounting",
            source_document=entry_number,
        ).to_dict(),
    )

    _process_projections(actor.company)
    posted_entry = JournalEntry.objects.get(company=actor.company, public_id=entry.public_id)
    logger.info("Posted journal entry %s in %s", posted_entry.entry_number, actor.company.name)
    return CommandResult.ok(posted_entry, event=event)


@transaction.atomic
def reverse_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """
    Reverse a posted journal entry.

    Posts a REVERSAL entry with swapped debit/credit amounts (dated today)
    and marks the original REVERSED. Emits journal_entry.posted for the
    mirror and journal_entry.reversed for the original.

    Returns:
        CommandResult with {"original": entry, "reversal": reversal_entry}
    """
    from accounting.posting import PostingError, reverse_document_entry

    require(actor, "journal.reverse")

    entry, aggregate = _load_entry(actor, entry_id)
    if not entry:
        return CommandResult.fail("Journal entry not found.")

    allowed, reason = can_reverse_entry(actor, entry)
    if not allowed:
        return CommandResult.fail(reason)
    if aggregate.reversed:
        return CommandResult.fail("This entry was already reversed.")

    try:
        with transaction.atomic():
            reversal = reverse_document_entry(
                actor,
                entry_public_id=entry.public_id,
                memo=f"Reversal of {entry.entry_number}: {entry.memo}",
                source_module=entry.source_module or "accounting",
                source_document=entry.source_document or entry.entry_number,
            )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    _process_projections(actor.company)
    original = JournalEntry.objects.get(company=actor.company, public_id=entry.public_id)
    reversal_entry = JournalEntry.objects.get(company=actor.company, public_id=reversal.public_id)
    return CommandResult.ok(
        {"original": original, "reversal": reversal_entry},
        event=reversal.event,
    )


@transaction.atomic
def delete_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """Delete a journal entry (only INCOMPLETE or DRAFT entries can be deleted)."""
    require(actor, "journal.edit_draft")

    entry, aggregate = _load_entry(actor, entry_id)
    if not entry:
        return CommandResult.fail("Journal entry not found.")

    allowed, reason = can_delete_entry(actor, aggregate)
    if not allowed:
        return CommandResult.fail(reason)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_DELETED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.deleted:{entry.public_id}",
        data=JournalEntryDeletedData(
            entry_public_id=str(entry.public_id),
            date=aggregate.date or entry.date.isoformat(),
            memo=aggregate.memo,
            status=aggregate.status,
        ).to_dict(),
    )

    _process_projections(actor.company)
    return CommandResult.ok({"deleted": True}, event=event)


# =============================================================================
# Fiscal Period Commands
# =============================================================================

def current_fiscal_year(company, today: date_type | None = None) -> int:
    """The fiscal year (named by its starting calendar year) containing today."""
    today = today or timezone.now().date()
    start_month = company.fiscal_year_start_month or 1
    return today.year if today.month >= start_month else today.year - 1


def _calculate_period_boundaries(fiscal_year: int, start_month: int, period_count: int):
    """
    Period start/end dates for a fiscal year divided into N periods.

    When N divides 12 each period spans whole calendar months (12 ->
    monthly, 4 -> quarterly). Otherwise the year's days are split evenly,
    remainder days going to the first periods.

    Returns:
        List of dicts with period, start_date, end_date (ISO strings)
    """
    fy_start = date_type(fiscal_year, start_month, 1)
    fy_end = date_type(fiscal_year + 1, start_month, 1) - timedelta(days=1)

    periods = []
    if 12 % period_count == 0:
        months_per_period = 12 // period_count
        year, month = fiscal_year, start_month
        for i in range(period_count):
            start = date_type(year, month, 1)
            for _ in range(months_per_period - 1):
                year, month = (year + 1, 1) if month == 12 else (year, month + 1)
            end = date_type(year, month, calendar.monthrange(year, month)[1])
            periods.append({
                "period": i + 1,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
            })
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        return periods

    total_days = (fy_end - fy_start).days + 1
    base_days = total_days // period_count
    remainder = total_days % period_count
    current_start = fy_start
    for i in range(period_count):
        days_in_period = base_days + (1 if i < remainder else 0)
        period_end = current_start + timedelta(days=days_in_period - 1)
        periods.append({
            "period": i + 1,
            "start_date": current_start.isoformat(),
            "end_date": period_end.isoformat(),
        })
        current_start = period_end + timedelta(days=1)
    return periods


def emit_periods_configured(company, user, fiscal_year: int, period_count: int = 12, actor=None):
    """
    Emit fiscal_period.configured for one fiscal year.

    Used by configure_periods and by company bootstrap (no actor yet).
    """
    periods = _calculate_period_boundaries(
        fiscal_year,
        company.fiscal_year_start_month or 1,
        period_count,
    )
    data = FiscalPeriodsConfiguredData(
        company_public_id=str(company.public_id),
        fiscal_year=fiscal_year,
        period_count=period_count,
        periods=periods,
        configured_by_id=user.id if user else None,
    ).to_dict()
    idempotency_key = _idempotency_hash("fiscal_period.configured", {
        "company_public_id": str(company.public_id),
        "fiscal_year": fiscal_year,
        "period_count": period_count,
        "at": timezone.now().isoformat(),
    })
    kwargs = dict(
        event_type=EventTypes.FISCAL_PERIODS_CONFIGURED,
        aggregate_type="FiscalYear",
        aggregate_id=f"{company.public_id}:{fiscal_year}",
        idempotency_key=idempotency_key,
        data=data,
    )
    if actor is not None:
        return emit_event(actor=actor, **kwargs)
    return emit_event_no_actor(company, user=user, **kwargs)


@transaction.atomic
def configure_periods(
    actor: ActorContext,
    fiscal_year: int,
    period_count: int = 12,
) -> CommandResult:
    """
    (Re)generate the periods of a fiscal year.

    Refused once any period of that year has been closed.
    """
    require(actor, "periods.configure")

    from projections.models import FiscalPeriod

    if period_count < 1 or period_count > 366:
        return CommandResult.fail("Period count must be between 1 and 366.")

    if FiscalPeriod.objects.filter(
        company=actor.company,
        fiscal_year=fiscal_year,
        status=FiscalPeriod.Status.CLOSED,
    ).exists():
        return CommandResult.fail(
            f"Fiscal year {fiscal_year} has closed periods and cannot be reconfigured."
        )

    event = emit_periods_configured(actor.company, actor.user, fiscal_year, period_count, actor=actor)

    _process_projections(actor.company)
    periods = list(FiscalPeriod.objects.filter(company=actor.company, fiscal_year=fiscal_year))
    return CommandResult.ok({"fiscal_year": fiscal_year, "periods": periods}, event=event)


def _get_period(actor, fiscal_year: int, period: int):
    from projections.models import FiscalPeriod

    return FiscalPeriod.objects.filter(
        company=actor.company,
        fiscal_year=fiscal_year,
        period=period,
    ).first()


@transaction.atomic
def close_period(actor: ActorContext, fiscal_year: int, period: int) -> CommandResult:
    """Close a fiscal period. Postings dated inside it are refused afterwards."""
    require(actor, "periods.close")

    fiscal_period = _get_period(actor, fiscal_year, period)
    if not fiscal_period:
        return CommandResult.fail("Fiscal period not found.")

    aggregate = load_fiscal_period_aggregate(actor.company, fiscal_year, period)
    if aggregate.closed or fiscal_period.status == fiscal_period.Status.CLOSED:
        return CommandResult.fail("Fiscal period is already closed.")

    closed_at = timezone.now()
    aggregate_id = fiscal_period_aggregate_id(actor.company, fiscal_year, period)
    event = emit_event(
        actor=actor,
        event_type=EventTypes.FISCAL_PERIOD_CLOSED,
        aggregate_type="FiscalPeriod",
        aggregate_id=aggregate_id,
        idempotency_key=f"fiscal_period.closed:{aggregate_id}:{closed_at.isoformat()}",
        data=FiscalPeriodClosedData(
            company_public_id=str(actor.company.public_id),
            fiscal_year=fiscal_year,
            period=period,
            closed_at=closed_at.isoformat(),
            closed_by_id=actor.user.id,
            closed_by_email=actor.user.email,
        ).to_dict(),
    )

    _process_projections(actor.company)
    return CommandResult.ok(_get_period(actor, fiscal_year, period), event=event)


@transaction.atomic
def open_period(actor: ActorContext, fiscal_year: int, period: int) -> CommandResult:
    """Reopen a closed fiscal period."""
    require(actor, "periods.reopen")

    fiscal_period = _get_period(actor, fiscal_year, period)
    if not fiscal_period:
        return CommandResult.fail("Fiscal period not found.")

    aggregate = load_fiscal_period_aggregate(actor.company, fiscal_year, period)
    if not aggregate.closed and fiscal_period.status == fiscal_period.Status.OPEN:
        return CommandResult.fail("Fiscal period is already open.")

    opened_at = timezone.now()
    aggregate_id = fiscal_period_aggregate_id(actor.company, fiscal_year, period)
    event = emit_event(
        actor=actor,
        event_type=EventTypes.FISCAL_PERIOD_OPENED,
        aggregate_type="FiscalPeriod",
        aggregate_id=aggregate_id,
        idempotency_key=f"fiscal_period.opened:{aggregate_id}:{opened_at.isoformat()}",
        data=FiscalPeriodOpenedData(
            company_public_id=str(actor.company.public_id),
            fiscal_year=fiscal_year,
            period=period,
            opened_at=opened_at.isoformat(),
            opened_by_id=actor.user.id,
            opened_by_email=actor.user.email,
        ).to_dict(),
    )

    _process_projections(actor.company)
    return CommandResult.ok(_get_period(actor, fiscal_year, period), event=event)


# Long-form names.
close_fiscal_period = close_period
open_fiscal_period = open_period
