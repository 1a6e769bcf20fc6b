# events/types.py
"""
Event type definitions.

This module defines THE CANONICAL SCHEMA for all event payloads.
These dataclasses are the CONTRACT, not a "helper". All event emission
MUST use these types, and validation is enforced at emission time.

Naming Convention: {aggregate}.{past_tense_verb}
Examples:
- account.created
- journal_entry.posted
- invoice.issued
- credit_note.applied
- intercompany_adjustment.recorded

Sales and purchases share payload shapes (a customer and a vendor are
both a "party", an invoice and a bill are both a "trade document"), so
one dataclass may back several event types.

IMPORTANT: Events are a STABLE API
============================================
- Adding optional fields with defaults is safe
- Removing, renaming or retyping fields breaks projections
"""

from dataclasses import dataclass, asdict, field, fields as dataclass_fields, MISSING
from typing import Optional, List, Dict, Any, get_type_hints, get_origin, get_args, Union
from decimal import Decimal, InvalidOperation
from datetime import date, datetime


# =============================================================================
# Event Validation
# =============================================================================

class InvalidEventPayload(Exception):
    """
    Raised when an event payload fails validation.

    This exception is raised at event emission time when the provided
    data does not match the expected schema for the event type.
    """
    def __init__(self, event_type: str, errors: List[str]):
        self.event_type = event_type
        self.errors = errors
        error_list = "\n  - ".join(errors)
        super().__init__(
            f"Invalid payload for event '{event_type}':\n  - {error_list}"
        )


def _is_optional_type(type_hint) -> bool:
    if get_origin(type_hint) is Union:
        return type(None) in get_args(type_hint)
    return False


def _get_inner_type(type_hint):
    if get_origin(type_hint) is Union:
        non_none_args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none_args) == 1:
            return non_none_args[0]
    return type_hint


ENUM_FIELDS = {
    "account_type": {
        "ASSET", "RECEIVABLE", "CONTRA_ASSET",
        "LIABILITY", "PAYABLE", "CONTRA_LIABILITY",
        "EQUITY", "CONTRA_EQUITY", "REVENUE", "CONTRA_REVENUE",
        "EXPENSE", "CONTRA_EXPENSE", "MEMO",
    },
    "normal_balance": {"DEBIT", "CREDIT", "NONE"},
    "kind": {"NORMAL", "REVERSAL", "OPENING", "CLOSING", "ADJUSTMENT"},
    "role": {"OWNER", "ADMIN", "USER", "VIEWER"},
    "payment_method": {"CASH", "BANK_TRANSFER", "CHECK", "CARD", "OTHER"},
}

DECIMAL_FIELDS = {
    "debit",
    "credit",
    "total_debit",
    "total_credit",
    "amount",
    "subtotal",
    "tax_amount",
    "total",
    "balance_due",
    "unit_price",
    "cost_price",
    "quantity",
    "tax_rate",
    "line_total",
    "amount_paid",
    "amount_credited",
    "amount_applied",
    "document_amount_paid",
    "document_amount_credited",
    "document_balance_due",
    "note_amount_applied",
    "transaction_amount_adjusted",
}

# Amounts that must never be negative in any payload.
NON_NEGATIVE_FIELDS = {"debit", "credit", "amount", "quantity", "unit_price", "tax_rate"}

CURRENCY_FIELDS = {"currency", "default_currency"}

DATE_FIELDS = {
    "date",
    "start_date",
    "end_date",
    "order_date",
    "expected_date",
    "document_date",
    "due_date",
    "settlement_date",
    "note_date",
    "transaction_date",
    "adjustment_date",
}

DATETIME_FIELDS = {
    "posted_at",
    "closed_at",
    "opened_at",
    "reversed_at",
    "voided_at",
    "issued_at",
    "applied_at",
    "cancelled_at",
}


def validate_event_payload(event_type: str, data: Dict[str, Any]) -> None:
    """
    Validate that a data dict matches the expected schema for an event type.

    It validates:
    1. Required fields are present (fields without defaults)
    2. No unexpected fields are provided (strict schema)
    3. Field types are correct (basic type checking)
    4. Common field semantics (enums, decimals, currencies, ISO dates)

    Raises:
        InvalidEventPayload: If validation fails
        ValueError: If event_type has no registered schema
    """
    data_class = EVENT_DATA_CLASSES.get(event_type)
    if data_class is None:
        raise ValueError(
            f"No schema registered for event type '{event_type}'. "
            f"Add a dataclass to EVENT_DATA_CLASSES."
        )

    errors = []
    dc_fields = {f.name: f for f in dataclass_fields(data_class)}
    type_hints = get_type_hints(data_class)

    for field_name, field_info in dc_fields.items():
        required = field_info.default is MISSING and field_info.default_factory is MISSING
        if required and field_name not in data:
            errors.append(f"Missing required field: '{field_name}'")

    unexpected = set(data.keys()) - set(dc_fields.keys())
    if unexpected:
        errors.append(
            f"Unexpected fields: {sorted(unexpected)}. "
            f"Expected: {sorted(dc_fields.keys())}"
        )

    for field_name, value in data.items():
        type_hint = type_hints.get(field_name)
        if field_name not in dc_fields or type_hint is None:
            continue

        if value is None:
            if not _is_optional_type(type_hint):
                errors.append(f"Field '{field_name}' cannot be None (type: {type_hint})")
            continue

        check_type = _get_inner_type(type_hint)
        origin = get_origin(check_type)

        if origin is list or check_type is list:
            if not isinstance(value, list):
                errors.append(f"Field '{field_name}' must be a list, got {type(value).__name__}")
            else:
                inner = get_args(check_type)
                inner_type = inner[0] if inner else None
                for idx, item in enumerate(value):
                    if inner_type is dict and not isinstance(item, dict):
                        errors.append(
                            f"Field '{field_name}[{idx}]' must be a dict, got {type(item).__name__}"
                        )
                    elif inner_type is str and not isinstance(item, str):
                        errors.append(
                            f"Field '{field_name}[{idx}]' must be a string, got {type(item).__name__}"
                        )
        elif origin is dict or check_type is dict:
            if not isinstance(value, dict):
                errors.append(f"Field '{field_name}' must be a dict, got {type(value).__name__}")
            else:
                key_type, value_type = (get_args(check_type) + (None, None))[:2]
                for key, item in value.items():
                    if key_type is str and not isinstance(key, str):
                        errors.append(f"Field '{field_name}' has non-string key: {key!r}")
                    if value_type is str and not isinstance(item, str):
                        errors.append(
                            f"Field '{field_name}[{key}]' must be a string, got {type(item).__name__}"
                        )
        elif check_type is str:
            if not isinstance(value, str):
                errors.append(f"Field '{field_name}' must be a string, got {type(value).__name__}")
        elif check_type is int:
            if not isinstance(value, int) or isinstance(value, bool):
                errors.append(f"Field '{field_name}' must be an int, got {type(value).__name__}")
        elif check_type is bool:
            if not isinstance(value, bool):
                errors.append(f"Field '{field_name}' must be a bool, got {type(value).__name__}")

    def _validate_scalar(name: str, value: Any) -> None:
        if value is None or isinstance(value, (dict, list)):
            return
        if name in ENUM_FIELDS and value not in ENUM_FIELDS[name]:
            errors.append(f"Field '{name}' must be one of {sorted(ENUM_FIELDS[name])}, got {value!r}")
        if name in DECIMAL_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, Decimal, str)):
                errors.append(f"Field '{name}' must be a decimal string, got {type(value).__name__}")
            else:
                try:
                    parsed = Decimal(str(value))
                    if name in NON_NEGATIVE_FIELDS and parsed < 0:
                        errors.append(f"Field '{name}' must be >= 0, got {value!r}")
                except (InvalidOperation, ValueError):
                    errors.append(f"Field '{name}' must be a decimal string, got {value!r}")
        if name in CURRENCY_FIELDS:
            if (
                not isinstance(value, str)
                or len(value) != 3
                or not value.isalpha()
                or value != value.upper()
            ):
                errors.append(f"Field '{name}' must be a 3-letter uppercase currency code, got {value!r}")
        if name in DATE_FIELDS:
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO date string, got {value!r}")
        if name in DATETIME_FIELDS:
            try:
                datetime.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO datetime string, got {value!r}")

    def _walk(name: str, value: Any) -> None:
        _validate_scalar(name, value)
        if isinstance(value, dict):
            for k, v in value.items():
                _walk(k, v)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, (dict, list)):
                    _walk(name, item)

    for field_name, value in data.items():
        # {"field": {"old": x, "new": y}} change sets are checked by the command.
        if field_name == "changes":
            continue
        _walk(field_name, value)

    if errors:
        raise InvalidEventPayload(event_type, errors)


# =============================================================================
# Base Event Classes
# =============================================================================

def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    return value


@dataclass
class BaseEventData:
    """Base class for all event data."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage."""
        return {key: _json_safe(value) for key, value in asdict(self).items()}


# =============================================================================
# Account Events
# =============================================================================

@dataclass
class AccountCreatedData(BaseEventData):
    """Data for account.created event."""
    account_public_id: str
    code: str
    name: str
    account_type: str
    normal_balance: str
    is_header: bool
    parent_public_id: Optional[str] = None
    description: str = ""
    posting_role: str = ""


@dataclass
class AccountUpdatedData(BaseEventData):
    """Data for account.updated event."""
    account_public_id: str
    changes: Dict[str, Dict[str, Any]]  # {"field": {"old": x, "new": y}}


# =============================================================================
# Journal Entry Events
# =============================================================================

@dataclass
class JournalLineData:
    """Journal line data for embedding in events."""
    line_no: int
    account_public_id: str
    account_code: str
    description: str
    debit: str  # String for JSON safety
    credit: str

    def to_dict(self) -> dict:
        return {
            "line_no": self.line_no,
            "account_public_id": self.account_public_id,
            "account_code": self.account_code,
            "description": self.description,
            "debit": self.debit,
            "credit": self.credit,
        }


@dataclass
class JournalEntryCreatedData(BaseEventData):
    """Data for journal_entry.created event."""
    entry_public_id: str
    date: str
    memo: str
    kind: str = "NORMAL"
    period: Optional[int] = None
    currency: Optional[str] = None
    created_by_id: Optional[int] = None
    lines: List[dict] = field(default_factory=list)


@dataclass
class JournalEntryUpdatedData(BaseEventData):
    """Data for journal_entry.updated event."""
    entry_public_id: str
    changes: Dict[str, Dict[str, Any]]
    lines: Optional[List[dict]] = None


@dataclass
class JournalEntrySavedCompleteData(BaseEventData):
    """Data for journal_entry.saved_complete event (INCOMPLETE -> DRAFT)."""
    entry_public_id: str
    date: str
    memo: str
    line_count: int
    total_debit: str
    total_credit: str
    period: Optional[int] = None
    currency: Optional[str] = None
    lines: List[dict] = field(default_factory=list)


@dataclass
class JournalEntryPostedData(BaseEventData):
    """
    Data for journal_entry.posted event.

    Emitted both when a manual draft is posted and when a document
    command (invoice, bill, receipt, note, ...) books its entry. For the
    latter, source_module/source_document name the originating document.
    """
    entry_public_id: str
    entry_number: str
    date: str
    memo: str
    kind: str
    posted_at: str
    posted_by_id: Optional[int]
    posted_by_email: str
    total_debit: str
    total_credit: str
    lines: List[dict]  # List of JournalLineData dicts
    period: Optional[int] = None
    currency: Optional[str] = None
    source_module: str = ""
    source_document: str = ""


@dataclass
class JournalEntryReversedData(BaseEventData):
    """Data for journal_entry.reversed event."""
    original_entry_public_id: str
    reversal_entry_public_id: str
    reversed_at: str
    reversed_by_id: Optional[int]
    reversed_by_email: str


@dataclass
class JournalEntryDeletedData(BaseEventData):
    """Data for journal_entry.deleted event."""
    entry_public_id: str
    date: str
    memo: str
    status: str


# =============================================================================
# Period Events
# =============================================================================

@dataclass
class FiscalPeriodClosedData(BaseEventData):
    """Data for fiscal_period.closed event."""
    company_public_id: str
    fiscal_year: int
    period: int
    closed_at: str
    closed_by_id: int
    closed_by_email: str


@dataclass
class FiscalPeriodOpenedData(BaseEventData):
    """Data for fiscal_period.opened event."""
    company_public_id: str
    fiscal_year: int
    period: int
    opened_at: str
    opened_by_id: int
    opened_by_email: str


@dataclass
class FiscalPeriodsConfiguredData(BaseEventData):
    """Data for fiscal_period.configured event (generate a fiscal year)."""
    company_public_id: str
    fiscal_year: int
    period_count: int
    periods: List[Dict[str, Any]]  # [{"period": 1, "start_date": ..., "end_date": ...}]
    configured_by_id: Optional[int] = None


# =============================================================================
# Identity Events
# =============================================================================

@dataclass
class UserRegisteredData(BaseEventData):
    """Data for user.registered event."""
    user_public_id: str
    email: str
    name: str
    company_public_id: str
    company_name: str
    membership_public_id: str


@dataclass
class UserCompanySwitchedData(BaseEventData):
    """Data for user.company_switched event."""
    user_public_id: str
    email: str
    from_company_public_id: Optional[str]
    to_company_public_id: str
    to_company_name: str


@dataclass
class CompanyCreatedData(BaseEventData):
    """Data for company.created event."""
    company_public_id: str
    name: str
    slug: str = ""
    default_currency: str = "USD"
    fiscal_year_start_month: int = 1
    is_active: bool = True
    tenant_public_id: Optional[str] = None


@dataclass
class CompanyUpdatedData(BaseEventData):
    """
    Data for company.updated event.

    Example:
        CompanyUpdatedData(
            company_public_id="abc-123",
            changes={"name": {"old": "Acme Inc", "new": "Acme Corporation"}},
        )
    """
    company_public_id: str
    changes: Dict[str, Dict[str, Any]]


@dataclass
class MembershipCreatedData(BaseEventData):
    """Data for membership.created event."""
    membership_public_id: str
    company_public_id: str
    user_public_id: str
    role: str
    is_active: bool = True


@dataclass
class MembershipRoleChangedData(BaseEventData):
    """Data for membership.role_changed event."""
    membership_public_id: str
    user_public_id: str
    old_role: str
    new_role: str


@dataclass
class MembershipDeactivatedData(BaseEventData):
    """Data for membership.deactivated event."""
    membership_public_id: str
    user_public_id: str
    company_public_id: str
    user_email: str = ""


# =============================================================================
# Catalogue Events (payment terms, products)
# =============================================================================

@dataclass
class PaymentTermCreatedData(BaseEventData):
    """Data for payment_term.created event."""
    term_public_id: str
    code: str
    name: str
    days_due: int


@dataclass
class ProductCreatedData(BaseEventData):
    """Data for product.created event."""
    product_public_id: str
    code: str
    name: str
    unit_price: str
    cost_price: str
    description: str = ""
    revenue_account_public_id: Optional[str] = None
    expense_account_public_id: Optional[str] = None


@dataclass
class ProductUpdatedData(BaseEventData):
    """Data for product.updated event."""
    product_public_id: str
    changes: Dict[str, Dict[str, Any]]


# =============================================================================
# Party Events (customer.*, vendor.*)
# =============================================================================

@dataclass
class PartyCreatedData(BaseEventData):
    """
    Data for customer.created and vendor.created events.

    related_company_public_id is set when the party is another company
    of the same tenant (an intercompany counterparty).
    """
    party_public_id: str
    code: str
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    tax_id: str = ""
    payment_term_public_id: Optional[str] = None
    related_company_public_id: Optional[str] = None


@dataclass
class PartyUpdatedData(BaseEventData):
    """Data for customer.updated and vendor.updated events."""
    party_public_id: str
    changes: Dict[str, Dict[str, Any]]


# =============================================================================
# Order Events (sales_order.*, purchase_order.*)
# =============================================================================

@dataclass
class OrderLineData:
    """Order line data for embedding in events."""
    line_no: int
    description: str
    quantity: str
    unit_price: str
    tax_rate: str
    line_total: str
    tax_amount: str
    product_public_id: Optional[str] = None

    def to_dict(self) -> dict:
        return _json_safe(asdict(self))


@dataclass
class OrderCreatedData(BaseEventData):
    """Data for sales_order.created and purchase_order.created events."""
    order_public_id: str
    order_number: str
    party_public_id: str
    order_date: str
    status: str
    currency: str
    subtotal: str
    tax_amount: str
    total: str
    lines: List[dict]
    expected_date: Optional[str] = None
    reference: str = ""
    notes: str = ""
    is_intercompany: bool = False
    intercompany_transaction_public_id: Optional[str] = None


@dataclass
class OrderStatusChangedData(BaseEventData):
    """
    Data for sales_order.status_changed and purchase_order.status_changed.

    line_quantities carries the invoiced quantity per line number after
    the change, as decimal strings.
    """
    order_public_id: str
    order_number: str
    old_status: str
    new_status: str
    line_quantities: Dict[str, str] = field(default_factory=dict)


# =============================================================================
# Trade Document Events (invoice.*, bill.*)
# =============================================================================

@dataclass
class DocumentLineData:
    """Invoice / bill / note line data for embedding in events."""
    line_no: int
    description: str
    quantity: str
    unit_price: str
    tax_rate: str
    line_total: str
    tax_amount: str
    account_public_id: str
    product_public_id: Optional[str] = None
    order_line_no: Optional[int] = None

    def to_dict(self) -> dict:
        return _json_safe(asdict(self))


@dataclass
class TradeDocumentCreatedData(BaseEventData):
    """Data for invoice.created and bill.created events."""
    document_public_id: str
    document_number: str
    party_public_id: str
    document_date: str
    due_date: str
    currency: str
    subtotal: str
    tax_amount: str
    total: str
    lines: List[dict]
    order_public_id: Optional[str] = None
    reference: str = ""
    notes: str = ""
    vendor_invoice_number: str = ""
    is_intercompany: bool = False
    intercompany_transaction_public_id: Optional[str] = None


@dataclass
class TradeDocumentPostedData(BaseEventData):
    """Data for invoice.issued and bill.posted events."""
    document_public_id: str
    document_number: str
    journal_entry_public_id: str
    posted_at: str
    balance_due: str


@dataclass
class TradeDocumentVoidedData(BaseEventData):
    """Data for invoice.voided and bill.voided events."""
    document_public_id: str
    document_number: str
    voided_at: str
    reason: str = ""
    reversal_entry_public_id: Optional[str] = None


# =============================================================================
# Settlement Events (receipt.*, payment.*)
# =============================================================================

@dataclass
class SettlementRecordedData(BaseEventData):
    """
    Data for receipt.recorded and payment.recorded events.

    The document_* fields carry the settled document's running totals
    after this settlement, so the projection never has to recompute them.
    """
    settlement_public_id: str
    settlement_number: str
    party_public_id: str
    document_public_id: str
    settlement_date: str
    amount: str
    payment_method: str
    cash_account_public_id: str
    journal_entry_public_id: str
    document_amount_paid: str
    document_balance_due: str
    document_status: str
    reference: str = ""
    is_partial: bool = False
    is_intercompany: bool = False


@dataclass
class SettlementVoidedData(BaseEventData):
    """Data for receipt.voided and payment.voided events."""
    settlement_public_id: str
    settlement_number: str
    document_public_id: str
    voided_at: str
    reversal_entry_public_id: str
    document_amount_paid: str
    document_balance_due: str
    document_status: str


# =============================================================================
# Adjustment Note Events (credit_note.*, debit_note.*)
# =============================================================================

@dataclass
class NoteCreatedData(BaseEventData):
    """Data for credit_note.created and debit_note.created events."""
    note_public_id: str
    note_number: str
    party_public_id: str
    note_date: str
    reason: str
    currency: str
    subtotal: str
    tax_amount: str
    total: str
    lines: List[dict]
    document_public_id: Optional[str] = None
    reference: str = ""
    is_intercompany: bool = False


@dataclass
class NoteIssuedData(BaseEventData):
    """Data for credit_note.issued and debit_note.issued events."""
    note_public_id: str
    note_number: str
    journal_entry_public_id: str
    issued_at: str


@dataclass
class NoteAppliedData(BaseEventData):
    """
    Data for credit_note.applied and debit_note.applied events.

    Carries the note's and the document's totals after the application.
    """
    note_public_id: str
    document_public_id: str
    amount: str
    applied_at: str
    note_amount_applied: str
    note_status: str
    document_amount_credited: str
    document_balance_due: str
    document_status: str


@dataclass
class NoteCancelledData(BaseEventData):
    """Data for credit_note.cancelled and debit_note.cancelled events."""
    note_public_id: str
    note_number: str
    cancelled_at: str
    reversal_entry_public_id: Optional[str] = None


# =============================================================================
# Intercompany Events
# =============================================================================

@dataclass
class IntercompanyTransactionCreatedData(BaseEventData):
    """
    Data for intercompany_transaction.created event.

    Emitted in the source company's stream. The target side's purchase
    order is emitted separately in the target company's stream.
    """
    transaction_public_id: str
    reference: str
    source_company_public_id: str
    target_company_public_id: str
    transaction_date: str
    amount: str
    sales_order_public_id: str
    purchase_order_public_id: str
    description: str = ""


@dataclass
class IntercompanyTransactionInvoicedData(BaseEventData):
    """Data for intercompany_transaction.invoiced event."""
    transaction_public_id: str
    invoice_public_id: str
    bill_public_id: str
    amount: str


@dataclass
class IntercompanyTransactionSettledData(BaseEventData):
    """Data for intercompany_transaction.settled event."""
    transaction_public_id: str
    receipt_public_id: str
    payment_public_id: str
    amount: str
    amount_settled: str
    payment_status: str
    status: str


@dataclass
class IntercompanyTransactionCancelledData(BaseEventData):
    """Data for intercompany_transaction.cancelled event."""
    transaction_public_id: str
    cancelled_at: str
    reason: str = ""


@dataclass
class IntercompanyAdjustmentRecordedData(BaseEventData):
    """
    Data for intercompany_adjustment.recorded event.

    A credit note in the source company and the mirroring debit note in
    the target company, for the same amount.
    """
    adjustment_public_id: str
    reference: str
    source_company_public_id: str
    target_company_public_id: str
    credit_note_public_id: str
    debit_note_public_id: str
    amount: str
    reason: str
    adjustment_date: str
    transaction_public_id: Optional[str] = None
    transaction_amount_adjusted: Optional[str] = None


# =============================================================================
# Event Type Registry
# =============================================================================

class EventTypes:
    """
    Registry of all event types.

    Naming convention: {aggregate}.{past_tense_verb}
    - account.created (not account.create)
    - journal_entry.posted (not journal_entry.post)
    """

    # Account events
    ACCOUNT_CREATED = "account.created"
    ACCOUNT_UPDATED = "account.updated"

    # Journal entry events
    JOURNAL_ENTRY_CREATED = "journal_entry.created"
    JOURNAL_ENTRY_UPDATED = "journal_entry.updated"
    JOURNAL_ENTRY_SAVED_COMPLETE = "journal_entry.saved_complete"
    JOURNAL_ENTRY_POSTED = "journal_entry.posted"
    JOURNAL_ENTRY_REVERSED = "journal_entry.reversed"
    JOURNAL_ENTRY_DELETED = "journal_entry.deleted"

    # Fiscal period events
    FISCAL_PERIOD_CLOSED = "fiscal_period.closed"
    FISCAL_PERIOD_OPENED = "fiscal_period.opened"
    FISCAL_PERIODS_CONFIGURED = "fiscal_period.configured"

    # Identity events
    USER_REGISTERED = "user.registered"
    USER_COMPANY_SWITCHED = "user.company_switched"
    COMPANY_CREATED = "company.created"
    COMPANY_UPDATED = "company.updated"
    MEMBERSHIP_CREATED = "membership.created"
    MEMBERSHIP_ROLE_CHANGED = "membership.role_changed"
    MEMBERSHIP_DEACTIVATED = "membership.deactivated"

    # Catalogue events
    PAYMENT_TERM_CREATED = "payment_term.created"
    PRODUCT_CREATED = "product.created"
    PRODUCT_UPDATED = "product.updated"

    # Sales events
    CUSTOMER_CREATED = "customer.created"
    CUSTOMER_UPDATED = "customer.updated"
    SALES_ORDER_CREATED = "sales_order.created"
    SALES_ORDER_STATUS_CHANGED = "sales_order.status_changed"
    INVOICE_CREATED = "invoice.created"
    INVOICE_ISSUED = "invoice.issued"
    INVOICE_VOIDED = "invoice.voided"
    RECEIPT_RECORDED = "receipt.recorded"
    RECEIPT_VOIDED = "receipt.voided"
    CREDIT_NOTE_CREATED = "credit_note.created"
    CREDIT_NOTE_ISSUED = "credit_note.issued"
    CREDIT_NOTE_APPLIED = "credit_note.applied"
    CREDIT_NOTE_CANCELLED = "credit_note.cancelled"

    # Purchases events
    VENDOR_CREATED = "vendor.created"
    VENDOR_UPDATED = "vendor.updated"
    PURCHASE_ORDER_CREATED = "purchase_order.created"
    PURCHASE_ORDER_STATUS_CHANGED = "purchase_order.status_changed"
    BILL_CREATED = "bill.created"
    BILL_POSTED = "bill.posted"
    BILL_VOIDED = "bill.voided"
    PAYMENT_RECORDED = "payment.recorded"
    PAYMENT_VOIDED = "payment.voided"
    DEBIT_NOTE_CREATED = "debit_note.created"
    DEBIT_NOTE_ISSUED = "debit_note.issued"
    DEBIT_NOTE_APPLIED = "debit_note.applied"
    DEBIT_NOTE_CANCELLED = "debit_note.cancelled"

    # Intercompany events
    INTERCOMPANY_TRANSACTION_CREATED = "intercompany_transaction.created"
    INTERCOMPANY_TRANSACTION_INVOICED = "intercompany_transaction.invoiced"
    INTERCOMPANY_TRANSACTION_SETTLED = "intercompany_transaction.settled"
    INTERCOMPANY_TRANSACTION_CANCELLED = "intercompany_transaction.cancelled"
    INTERCOMPANY_ADJUSTMENT_RECORDED = "intercompany_adjustment.recorded"


# =============================================================================
# Event Type to Data Class Mapping (for validation/documentation)
# =============================================================================

EVENT_DATA_CLASSES = {
    EventTypes.ACCOUNT_CREATED: AccountCreatedData,
    EventTypes.ACCOUNT_UPDATED: AccountUpdatedData,

    EventTypes.JOURNAL_ENTRY_CREATED: JournalEntryCreatedData,
    EventTypes.JOURNAL_ENTRY_UPDATED: JournalEntryUpdatedData,
    EventTypes.JOURNAL_ENTRY_SAVED_COMPLETE: JournalEntrySavedCompleteData,
    EventTypes.JOURNAL_ENTRY_POSTED: JournalEntryPostedData,
    EventTypes.JOURNAL_ENTRY_REVERSED: JournalEntryReversedData,
    EventTypes.JOURNAL_ENTRY_DELETED: JournalEntryDeletedData,

    EventTypes.FISCAL_PERIOD_CLOSED: FiscalPeriodClosedData,
    EventTypes.FISCAL_PERIOD_OPENED: FiscalPeriodOpenedData,
    EventTypes.FISCAL_PERIODS_CONFIGURED: FiscalPeriodsConfiguredData,

    EventTypes.USER_REGISTERED: UserRegisteredData,
    EventTypes.USER_COMPANY_SWITCHED: UserCompanySwitchedData,
    EventTypes.COMPANY_CREATED: CompanyCreatedData,
    EventTypes.COMPANY_UPDATED: CompanyUpdatedData,
    EventTypes.MEMBERSHIP_CREATED: MembershipCreatedData,
    EventTypes.MEMBERSHIP_ROLE_CHANGED: MembershipRoleChangedData,
    EventTypes.MEMBERSHIP_DEACTIVATED: MembershipDeactivatedData,

    EventTypes.PAYMENT_TERM_CREATED: PaymentTermCreatedData,
    EventTypes.PRODUCT_CREATED: ProductCreatedData,
    EventTypes.PRODUCT_UPDATED: ProductUpdatedData,

    EventTypes.CUSTOMER_CREATED: PartyCreatedData,
    EventTypes.CUSTOMER_UPDATED: PartyUpdatedData,
    EventTypes.SALES_ORDER_CREATED: OrderCreatedData,
    EventTypes.SALES_ORDER_STATUS_CHANGED: OrderStatusChangedData,
    EventTypes.INVOICE_CREATED: TradeDocumentCreatedData,
    EventTypes.INVOICE_ISSUED: TradeDocumentPostedData,
    EventTypes.INVOICE_VOIDED: TradeDocumentVoidedData,
    EventTypes.RECEIPT_RECORDED: SettlementRecordedData,
    EventTypes.RECEIPT_VOIDED: SettlementVoidedData,
    EventTypes.CREDIT_NOTE_CREATED: NoteCreatedData,
    EventTypes.CREDIT_NOTE_ISSUED: NoteIssuedData,
    EventTypes.CREDIT_NOTE_APPLIED: NoteAppliedData,
    EventTypes.CREDIT_NOTE_CANCELLED: NoteCancelledData,

    EventTypes.VENDOR_CREATED: PartyCreatedData,
    EventTypes.VENDOR_UPDATED: PartyUpdatedData,
    EventTypes.PURCHASE_ORDER_CREATED: OrderCreatedData,
    EventTypes.PURCHASE_ORDER_STATUS_CHANGED: OrderStatusChangedData,
    EventTypes.BILL_CREATED: TradeDocumentCreatedData,
    EventTypes.BILL_POSTED: TradeDocumentPostedData,
    EventTypes.BILL_VOIDED: TradeDocumentVoidedData,
    EventTypes.PAYMENT_RECORDED: SettlementRecordedData,
    EventTypes.PAYMENT_VOIDED: SettlementVoidedData,
    EventTypes.DEBIT_NOTE_CREATED: NoteCreatedData,
    EventTypes.DEBIT_NOTE_ISSUED: NoteIssuedData,
    EventTypes.DEBIT_NOTE_APPLIED: NoteAppliedData,
    EventTypes.DEBIT_NOTE_CANCELLED: NoteCancelledData,

    EventTypes.INTERCOMPANY_TRANSACTION_CREATED: IntercompanyTransactionCreatedData,
    EventTypes.INTERCOMPANY_TRANSACTION_INVOICED: IntercompanyTransactionInvoicedData,
    EventTypes.INTERCOMPANY_TRANSACTION_SETTLED: IntercompanyTransactionSettledData,
    EventTypes.INTERCOMPANY_TRANSACTION_CANCELLED: IntercompanyTransactionCancelledData,
    EventTypes.INTERCOMPANY_ADJUSTMENT_RECORDED: IntercompanyAdjustmentRecordedData,
}
