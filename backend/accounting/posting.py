# accounting/posting.py
"""
Document posting service.

Every sub-ledger document (invoice, bill, receipt, payment, credit note,
debit note, and their intercompany twins) books its journal entry
through post_document_entry(). That keeps the ledger invariants in one
place:

- at least two lines, each debit-only or credit-only, debits == credits
- every account is postable (active, not a header)
- the posting date falls in an OPEN fiscal period
- entry numbers come from the company's journal_entry_number sequence

Lines name either an Account or a posting role from DEFAULT_CHART:

    post_document_entry(
        actor,
        date=invoice_date,
        memo=f"Invoice {number}",
        lines=[
            ("receivable", total, 0, f"Invoice {number}"),
            (revenue_account, 0, subtotal, "Sales"),
            ("tax_payable", 0, tax, "Sales tax"),
        ],
        source_module="sales",
        source_document=number,
        idempotency_key=f"invoice.posting:{invoice.public_id}",
    )

Lines with a zero amount are dropped and lines on the same account and
side are kept separate (the balance projection folds them).
"""

from dataclasses import dataclass
from decimal import Decimal
import logging
import uuid

from django.utils import timezone

from accounting.models import Account, JournalEntry
from accounting.policies import (
    PolicyViolation,
    can_post_to_account,
    can_post_to_period,
    can_reverse_document_entry,
    check_lines_balanced,
)
from accounting.trade import money
from events.emitter import emit_event, emit_event_no_actor
from events.types import (
    EventTypes,
    JournalEntryPostedData,
    JournalEntryReversedData,
    JournalLineData,
)


logger = logging.getLogger(__name__)


class PostingError(PolicyViolation):
    """A document entry could not be posted."""


# (code, name, account_type, role)
DEFAULT_CHART = [
    ("1000", "Cash and Bank", Account.AccountType.ASSET, "cash"),
    ("1100", "Accounts Receivable", Account.AccountType.RECEIVABLE, "receivable"),
    ("1150", "Intercompany Receivable", Account.AccountType.RECEIVABLE, "ic_receivable"),
    ("1200", "Inventory", Account.AccountType.ASSET, "inventory"),
    ("1300", "Input Tax Recoverable", Account.AccountType.ASSET, "tax_recoverable"),
    ("2000", "Accounts Payable", Account.AccountType.PAYABLE, "payable"),
    ("2050", "Intercompany Payable", Account.AccountType.PAYABLE, "ic_payable"),
    ("2100", "Sales Tax Payable", Account.AccountType.LIABILITY, "tax_payable"),
    ("3000", "Owner's Equity", Account.AccountType.EQUITY, "equity"),
    ("4000", "Sales Revenue", Account.AccountType.REVENUE, "revenue"),
    ("4100", "Sales Returns and Allowances", Account.AccountType.CONTRA_REVENUE, "sales_returns"),
    ("5000", "Cost of Goods Sold", Account.AccountType.EXPENSE, "expense"),
    ("5100", "Purchase Returns and Allowances", Account.AccountType.CONTRA_EXPENSE, "purchase_returns"),
]

POSTING_ROLES = {role for _, _, _, role in DEFAULT_CHART}


@dataclass
class PostedEntry:
    public_id: str
    entry_number: str
    event: object


def resolve_posting_account(company, role: str) -> Account:
    """Find the company's account carrying a posting role."""
    try:
        return Account.objects.get(company=company, role=role)
    except Account.DoesNotExist:
        raise PostingError(f"No account with posting role '{role}' in {company.name}.")
    except Account.MultipleObjectsReturned:
        raise PostingError(f"More than one account has posting role '{role}' in {company.name}.")


def _split_actor(actor_or_company, user):
    """Accept an ActorContext or a bare Company (counterpart books)."""
    if hasattr(actor_or_company, "company") and hasattr(actor_or_company, "user"):
        return actor_or_company, actor_or_company.company, actor_or_company.user
    return None, actor_or_company, user


def _emit(actor, company, user, **kwargs):
    if actor is not None:
        return emit_event(actor=actor, **kwargs)
    return emit_event_no_actor(company, user=user, **kwargs)


def _build_lines(company, lines) -> list[dict]:
    built = []
    line_no = 1
    for target, debit, credit, description in lines:
        debit = money(debit or 0)
        credit = money(credit or 0)
        if debit == 0 and credit == 0:
            continue

        account = target if isinstance(target, Account) else resolve_posting_account(company, target)
        if account.company_id != company.id:
            raise PostingError(f"Account {account.code} belongs to another company.")

        allowed, reason = can_post_to_account(account)
        if not allowed:
            raise PostingError(reason)

        built.append(JournalLineData(
            line_no=line_no,
            account_public_id=str(account.public_id),
            account_code=account.code,
            description=description or "",
            debit=str(debit),
            credit=str(credit),
        ).to_dict())
        line_no += 1
    return built


def post_document_entry(
    actor_or_company,
    *,
    date,
    memo: str,
    lines,
    source_module: str,
    source_document: str,
    idempotency_key: str,
    user=None,
    kind: str = JournalEntry.Kind.NORMAL,
    entry_public_id=None,
) -> PostedEntry:
    """
    Book a balanced, posted journal entry for a source document.

    Raises:
        PostingError: if any ledger invariant would be broken. Nothing
        is emitted in that case.
    """
    from accounting.commands import _next_company_sequence

    actor, company, user = _split_actor(actor_or_company, user)

    line_data = _build_lines(company, lines)
    allowed, reason = check_lines_balanced(line_data)
    if not allowed:
        raise PostingError(reason)

    allowed, reason = can_post_to_period(company, date)
    if not allowed:
        raise PostingError(reason)

    public_id = str(entry_public_id or uuid.uuid4())
    sequence_value = _next_company_sequence(company, "journal_entry_number")
    entry_number = f"JE-{company.id}-{sequence_value:06d}"
    posted_at = timezone.now()
    total = sum((Decimal(line["debit"]) for line in line_data), Decimal("0.00"))

    event = _emit(
        actor,
        company,
        user,
        event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        aggregate_type="JournalEntry",
        aggregate_id=public_id,
        idempotency_key=idempotency_key,
        data=JournalEntryPostedData(
            entry_public_id=public_id,
            entry_number=entry_number,
            date=date.isoformat() if hasattr(date, "isoformat") else str(date),
            memo=memo[:255],
            kind=kind,
            posted_at=posted_at.isoformat(),
            posted_by_id=user.id if user else None,
            posted_by_email=user.email if user else "",
            total_debit=str(total),
            total_credit=str(total),
            lines=line_data,
            currency=company.default_currency,
            source_module=source_module,
            source_document=source_document,
        ).to_dict(),
    )

    logger.info(
        "Posted %s for %s %s in %s",
        event.data["entry_number"], source_module, source_document, company.name,
    )
    return PostedEntry(
        public_id=event.data["entry_public_id"],
        entry_number=event.data["entry_number"],
        event=event,
    )


def reverse_document_entry(
    actor_or_company,
    *,
    entry_public_id,
    memo: str,
    source_module: str,
    source_document: str,
    user=None,
) -> PostedEntry:
    """
    Post the mirror of a document entry (today's date) and mark the
    original REVERSED.

    Reads the original from the journal entry read model, which is kept
    current inside the command transaction.
    """
    actor, company, user = _split_actor(actor_or_company, user)

    original = JournalEntry.objects.filter(
        company=company,
        public_id=entry_public_id,
    ).prefetch_related("lines__account").first()
    if not original:
        raise PostingError(f"Journal entry {entry_public_id} not found.")

    allowed, reason = can_reverse_document_entry(original)
    if not allowed:
        raise PostingError(reason)

    mirror_lines = [
        (line.account, line.credit, line.debit, f"Reversal: {line.description}".strip())
        for line in original.lines.all()
    ]
    reversal = post_document_entry(
        actor_or_company,
        user=user,
        date=timezone.now().date(),
        memo=memo,
        lines=mirror_lines,
        source_module=source_module,
        source_document=source_document,
        idempotency_key=f"journal_entry.reversal.posted:{original.public_id}",
        kind=JournalEntry.Kind.REVERSAL,
    )

    reversed_at = timezone.now()
    _emit(
        actor,
        company,
        user,
        event_type=EventTypes.JOURNAL_ENTRY_REVERSED,
        aggregate_type="JournalEntry",
        aggregate_id=str(original.public_id),
        idempotency_key=f"journal_entry.reversed:{original.public_id}",
        data=JournalEntryReversedData(
            original_entry_public_id=str(original.public_id),
            reversal_entry_public_id=reversal.public_id,
            reversed_at=reversed_at.isoformat(),
            reversed_by_id=user.id if user else None,
            reversed_by_email=user.email if user else "",
        ).to_dict(),
    )
    return reversal
