# accounting/policies.py
"""
Business policy functions for accounting operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action. That's the command's job.

IMPORTANT: Workflow Rules vs Model Invariants
=============================================
Workflow rules (status transitions, header immutability after posting)
are enforced HERE in policies, NOT in model.save() methods.

Model.save() only enforces TRUE INVARIANTS (always true regardless of
workflow stage). Example invariant: "if reverses_entry is set, kind must
be REVERSAL".

Usage:
    from accounting.policies import can_post_entry

    allowed, reason = can_post_entry(actor, entry)
    if not allowed:
        return CommandResult.fail(reason)

Document policies (invoices, bills, notes) live next to their commands in
sales/policies.py and purchases/policies.py and reuse the helpers here.
"""

from datetime import datetime, date as date_type


class PolicyViolation(Exception):
    """Raised when a business policy is violated."""
    pass


# =============================================================================
# Tenant Boundary Policies
# =============================================================================

def check_tenant_boundary(actor, entity) -> bool:
    """
    Verify entity belongs to actor's company.
    This is the fundamental multi-company security check.
    """
    entity_company_id = getattr(entity, "company_id", None)
    if entity_company_id is None:
        company = getattr(entity, "company", None)
        entity_company_id = getattr(company, "id", None) if company else None
    return entity_company_id == actor.company.id


def can_trade_intercompany(source_company, target_company) -> tuple[bool, str]:
    """
    Two companies may trade intercompany only inside one tenant.

    Rules:
    - Companies must differ
    - Both must be active
    - Both must belong to the same tenant
    """
    if source_company.id == target_company.id:
        return False, "Source and target company must be different."

    if not source_company.is_active or not target_company.is_active:
        return False, "Both companies must be active."

    if not source_company.shares_tenant_with(target_company):
        return False, "Intercompany transactions require both companies to belong to the same tenant."

    return True, ""


def can_change_trade_document(document, via_intercompany: bool = False) -> tuple[bool, str]:
    """
    Invoices and bills of an intercompany transaction are only paid,
    credited or voided by the intercompany commands, on both sides at once.
    """
    if document.intercompany_transaction_public_id and not via_intercompany:
        return False, (
            f"{document.number} belongs to an intercompany transaction. "
            "Use the intercompany commands to change it."
        )
    return True, ""


# =============================================================================
# Account Policies
# =============================================================================

def can_deactivate_account(actor, account) -> tuple[bool, str]:
    """
    Check if an account can be deactivated.

    Rules:
    - Must belong to actor's company
    - Must be ACTIVE
    - Seeded posting accounts (with a role) stay active
    - Cannot have active child accounts
    """
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."

    if account.status != account.Status.ACTIVE:
        return False, "Account is already inactive."

    if account.role:
        return False, f"Account {account.code} is used for {account.role} postings and cannot be deactivated."

    if account.children.filter(status=account.Status.ACTIVE).exists():
        return False, "Cannot deactivate an account that has active child accounts."

    return True, ""


def can_modify_account(actor, account) -> tuple[bool, str]:
    """Check if account can be modified at all."""
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."
    return True, ""


def can_change_account_code(actor, account) -> tuple[bool, str]:
    """
    Check if account code can be changed.

    Rules:
    - Cannot change code if account has journal lines
    """
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."

    if account.journal_lines.exists():
        return False, "Cannot change code of an account with transactions."

    return True, ""


def can_change_account_type(actor, account) -> tuple[bool, str]:
    """
    Check if account type can be changed.

    Rules:
    - Cannot change type if account has journal lines
    - Cannot change type of a posting-role account
    """
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."

    if account.journal_lines.exists():
        return False, "Cannot change type of an account with transactions."

    if account.role:
        return False, f"Cannot change type of the {account.role} posting account."

    return True, ""


def can_post_to_account(account) -> tuple[bool, str]:
    """
    Check if journal lines can be posted to this account.

    Rules:
    - Cannot post to header accounts
    - Cannot post to inactive accounts
    """
    if account.is_header:
        return False, f"Cannot post to header account: {account.code}"

    if account.status != account.Status.ACTIVE:
        return False, f"Cannot post to inactive account: {account.code}"

    return True, ""


# =============================================================================
# Journal Entry Policies
# =============================================================================

def can_edit_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be edited.

    Rules:
    - Must belong to actor's company
    - Must be in INCOMPLETE or DRAFT status
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    from accounting.models import JournalEntry

    if entry.status not in [JournalEntry.Status.INCOMPLETE, JournalEntry.Status.DRAFT]:
        return False, f"Cannot edit entry in {entry.status} status."

    return True, ""


def can_delete_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be deleted.

    Rules:
    - Must belong to actor's company
    - Must be in INCOMPLETE or DRAFT status
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    from accounting.models import JournalEntry

    if entry.status not in [JournalEntry.Status.INCOMPLETE, JournalEntry.Status.DRAFT]:
        return False, f"Cannot delete entry in {entry.status} status. Posted entries must be reversed."

    return True, ""


def can_post_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be posted.

    Rules:
    - Must belong to actor's company
    - Must be in DRAFT status
    - Must be a postable kind (NORMAL, OPENING, CLOSING, ADJUSTMENT)
    - Date must fall in an open fiscal period
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    from accounting.models import JournalEntry

    if entry.status != JournalEntry.Status.DRAFT:
        return False, "Only DRAFT entries can be posted."

    postable_kinds = [
        JournalEntry.Kind.NORMAL,
        JournalEntry.Kind.OPENING,
        JournalEntry.Kind.CLOSING,
        JournalEntry.Kind.ADJUSTMENT,
    ]
    if entry.kind not in postable_kinds:
        return False, f"Cannot post {entry.kind} entries."

    return can_post_to_period(actor.company, getattr(entry, "date", None))


def can_reverse_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be reversed.

    Rules:
    - Must belong to actor's company
    - Must be in POSTED status
    - Cannot reverse a reversal
    - Must not already be reversed
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    from accounting.models import JournalEntry

    if entry.status != JournalEntry.Status.POSTED:
        return False, "Only POSTED entries can be reversed."

    if entry.kind == JournalEntry.Kind.REVERSAL:
        return False, "Cannot reverse a reversal entry."

    if getattr(entry, "reversed", False):
        return False, "This entry was already reversed."

    entry_pk = getattr(entry, "pk", None)
    if entry_pk is not None and JournalEntry.objects.filter(reverses_entry_id=entry_pk).exists():
        return False, "This entry was already reversed."

    return True, ""


def can_reverse_document_entry(entry) -> tuple[bool, str]:
    """
    Reversal check for entries booked by document commands.

    Document voids reverse the entry on the document's own date rules,
    so only the status matters here.
    """
    from accounting.models import JournalEntry

    if entry.status != JournalEntry.Status.POSTED:
        return False, f"Journal entry {entry.entry_number or entry.public_id} is not posted."

    if JournalEntry.objects.filter(reverses_entry=entry).exists():
        return False, f"Journal entry {entry.entry_number} was already reversed."

    return True, ""


def can_save_entry_complete(actor, entry) -> tuple[bool, str]:
    """
    Check if entry can be marked as complete (DRAFT).

    Rules:
    - Must belong to actor's company
    - Cannot be POSTED or REVERSED
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    from accounting.models import JournalEntry

    if entry.status in [JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED]:
        return False, "Cannot modify a posted or reversed entry."

    return True, ""


def validate_status_transition(old_status, new_status) -> tuple[bool, str]:
    """
    Validate a journal entry status transition.

    Allowed transitions:
    - INCOMPLETE <-> DRAFT (editing)
    - DRAFT -> POSTED (posting)
    - POSTED -> REVERSED (reversal marks original)
    """
    from accounting.models import JournalEntry

    if old_status == new_status:
        return True, ""

    allowed_transitions = {
        (JournalEntry.Status.INCOMPLETE, JournalEntry.Status.DRAFT),
        (JournalEntry.Status.DRAFT, JournalEntry.Status.INCOMPLETE),
        (JournalEntry.Status.DRAFT, JournalEntry.Status.POSTED),
        (JournalEntry.Status.POSTED, JournalEntry.Status.REVERSED),
    }

    if (old_status, new_status) in allowed_transitions:
        return True, ""

    return False, f"Invalid status transition: {old_status} -> {new_status}"


# =============================================================================
# Balance Policies
# =============================================================================

def check_lines_balanced(lines) -> tuple[bool, str]:
    """
    The double-entry check every posting goes through.

    Rules:
    - At least two lines
    - Each line is debit-only or credit-only with a positive amount
    - Total debits equal total credits
    """
    from decimal import Decimal

    if len(lines) < 2:
        return False, "Journal entry must have at least 2 lines."

    total_debit = Decimal("0.00")
    total_credit = Decimal("0.00")
    for idx, line in enumerate(lines, start=1):
        debit = Decimal(str(line.get("debit") or "0"))
        credit = Decimal(str(line.get("credit") or "0"))
        if debit < 0 or credit < 0:
            return False, f"Line {idx}: amounts cannot be negative."
        if debit > 0 and credit > 0:
            return False, f"Line {idx}: cannot have both debit and credit."
        if debit == 0 and credit == 0:
            return False, f"Line {idx}: must have either debit or credit."
        total_debit += debit
        total_credit += credit

    if total_debit != total_credit:
        return False, f"Entry is not balanced. Debits: {total_debit}, Credits: {total_credit}"

    return True, ""


# =============================================================================
# Period Policies
# =============================================================================

def can_post_to_period(company, target_date) -> tuple[bool, str]:
    """
    Check if posting is allowed for the given date.

    Rules:
    - A fiscal period must cover the date
    - That period must be open (read model AND event stream agree)
    """
    if not target_date:
        return True, ""

    from projections.models import FiscalPeriod
    from accounting.aggregates import load_fiscal_period_aggregate

    if isinstance(target_date, str):
        target_date = datetime.fromisoformat(target_date).date()
    elif isinstance(target_date, datetime):
        target_date = target_date.date()
    elif not isinstance(target_date, date_type):
        return False, "Invalid entry date."

    fiscal_period = FiscalPeriod.objects.filter(
        company=company,
        start_date__lte=target_date,
        end_date__gte=target_date,
    ).first()
    if not fiscal_period:
        return False, f"No fiscal period defined for {target_date.isoformat()}."

    if fiscal_period.status != FiscalPeriod.Status.OPEN:
        return False, f"Fiscal period {fiscal_period.fiscal_year}-{fiscal_period.period:02d} is closed."

    aggregate = load_fiscal_period_aggregate(company, fiscal_period.fiscal_year, fiscal_period.period)
    if aggregate.closed:
        return False, f"Fiscal period {fiscal_period.fiscal_year}-{fiscal_period.period:02d} is closed."

    return True, ""
