# purchases/commands.py
"""
Command layer for the purchases sub-ledger.

Mirror of sales/commands.py. Ledger postings:

    bill posted         Dr Expense/Inventory (per line) + Dr Tax Recoverable / Cr Payable
    payment recorded    Dr Payable / Cr Cash
    debit note issued   Dr Payable / Cr Purchase Returns (per line) + Cr Tax Recoverable

Intercompany documents use the intercompany payable account, and
intercompany bill lines default to Inventory.
"""

from datetime import timedelta
import logging
import uuid

from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounts.models import Company
from accounting.commands import (
    CommandResult,
    _changes_hash,
    _next_document_number,
    _process_projections,
    _to_decimal,
)
from accounting.models import Account
from accounting.policies import PolicyViolation, can_change_trade_document, can_trade_intercompany
from accounting.posting import PostingError, post_document_entry, resolve_posting_account, reverse_document_entry
from accounting.trade import (
    PaymentMethod,
    ZERO,
    as_date,
    build_document_lines,
    build_order_lines,
    compute_totals,
    document_status,
    lines_from_order,
    note_status,
)
from events.emitter import emit_event
from events.types import (
    EventTypes,
    NoteAppliedData,
    NoteCancelledData,
    NoteCreatedData,
    NoteIssuedData,
    OrderCreatedData,
    OrderStatusChangedData,
    PartyCreatedData,
    PartyUpdatedData,
    SettlementRecordedData,
    SettlementVoidedData,
    TradeDocumentCreatedData,
    TradeDocumentPostedData,
    TradeDocumentVoidedData,
)
from sales.models import PaymentTerm
from .models import Bill, DebitNote, Payment, PurchaseOrder, Vendor
from .policies import (
    can_apply_debit_note,
    can_bill_order,
    can_cancel_debit_note,
    can_cancel_order,
    can_close_order,
    can_confirm_order,
    can_issue_debit_note,
    can_post_bill,
    can_record_payment,
    can_void_bill,
    can_void_payment,
    is_duplicate_vendor_invoice,
    order_status_for_quantities,
)


logger = logging.getLogger(__name__)


def _payable_role(document) -> str:
    return "ic_payable" if document.is_intercompany else "payable"


def _locked(model, company, public_id):
    if not public_id:
        return None
    return model.objects.select_for_update().filter(company=company, public_id=public_id).first()


# =============================================================================
# Vendors
# =============================================================================

@transaction.atomic
def create_vendor(
    actor: ActorContext,
    code: str,
    name: str,
    email: str = "",
    phone: str = "",
    address: str = "",
    tax_id: str = "",
    payment_term_public_id=None,
    related_company_public_id=None,
) -> CommandResult:
    require(actor, "purchases.manage")

    if Vendor.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Vendor code '{code}' already exists.")

    term = None
    if payment_term_public_id:
        term = PaymentTerm.objects.filter(company=actor.company, public_id=payment_term_public_id).first()
        if term is None:
            return CommandResult.fail("Payment term not found.")

    related = None
    if related_company_public_id:
        related = Company.objects.filter(public_id=related_company_public_id).first()
        if related is None:
            return CommandResult.fail("Related company not found.")
        allowed, reason = can_trade_intercompany(related, actor.company)
        if not allowed:
            return CommandResult.fail(reason)

    vendor_public_id = uuid.uuid4()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.VENDOR_CREATED,
        aggregate_type="Vendor",
        aggregate_id=str(vendor_public_id),
        idempotency_key=f"vendor.created:{actor.company.public_id}:{code}",
        data=PartyCreatedData(
            party_public_id=str(vendor_public_id),
            code=code,
            name=name,
            email=email,
            phone=phone,
            address=address,
            tax_id=tax_id,
            payment_term_public_id=str(term.public_id) if term else None,
            related_company_public_id=str(related.public_id) if related else None,
        ).to_dict(),
    )

    _process_projections(actor.company, force=related is not None)
    vendor = Vendor.objects.filter(company=actor.company, public_id=event.data["party_public_id"]).first()
    logger.info("Vendor %s created in %s", code, actor.company.name)
    return CommandResult.ok(vendor, event=event)


VENDOR_UPDATABLE_FIELDS = {"name", "email", "phone", "address", "tax_id", "is_active", "payment_term_public_id"}


@transaction.atomic
def update_vendor(actor: ActorContext, vendor_public_id, **updates) -> CommandResult:
    require(actor, "purchases.manage")

    vendor = _locked(Vendor, actor.company, vendor_public_id)
    if vendor is None:
        return CommandResult.fail("Vendor not found.")

    invalid = set(updates) - VENDOR_UPDATABLE_FIELDS
    if invalid:
        return CommandResult.fail(f"Cannot update fields: {sorted(invalid)}")

    changes = {}
    for field_name, value in updates.items():
        if field_name == "payment_term_public_id":
            old_id = str(vendor.payment_term.public_id) if vendor.payment_term_id else None
            new_id = str(value) if value else None
            if new_id and not PaymentTerm.objects.filter(company=actor.company, public_id=new_id).exists():
                return CommandResult.fail("Payment term not found.")
            if old_id != new_id:
                changes[field_name] = {"old": old_id, "new": new_id}
            continue
        old = getattr(vendor, field_name)
        if old != value:
            changes[field_name] = {"old": old, "new": value}

    if not changes:
        return CommandResult.ok(vendor)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.VENDOR_UPDATED,
        aggregate_type="Vendor",
        aggregate_id=str(vendor.public_id),
        idempotency_key=f"vendor.updated:{vendor.public_id}:{_changes_hash(changes)}",
        data=PartyUpdatedData(
            party_public_id=str(vendor.public_id),
            changes=changes,
        ).to_dict(),
    )

    _process_projections(actor.company)
    vendor.refresh_from_db()
    return CommandResult.ok(vendor, event=event)


# =============================================================================
# Purchase Orders
# =============================================================================

@transaction.atomic
def create_purchase_order(
    actor: ActorContext,
    vendor_public_id,
    order_date=None,
    lines=None,
    expected_date=None,
    reference: str = "",
    notes: str = "",
    confirm: bool = False,
    intercompany_transaction_public_id=None,
) -> CommandResult:
    """Create a purchase order. Line prices default to the product cost price."""
    require(actor, "purchases.manage")

    vendor = Vendor.objects.filter(company=actor.company, public_id=vendor_public_id).first()
    if vendor is None:
        return CommandResult.fail("Vendor not found.")
    if not vendor.is_active:
        return CommandResult.fail(f"Vendor {vendor.code} is inactive.")

    try:
        order_date = as_date(order_date)
        expected = as_date(expected_date) if expected_date else None
        line_data = build_order_lines(actor.company, lines, price_field="cost_price")
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if not line_data:
        return CommandResult.fail("A purchase order needs at least one line.")

    subtotal, tax_amount, total = compute_totals(line_data)
    order_public_id = uuid.uuid4()
    number = _next_document_number(actor.company, "PO")
    status = PurchaseOrder.Status.OPEN if confirm else PurchaseOrder.Status.DRAFT

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PURCHASE_ORDER_CREATED,
        aggregate_type="PurchaseOrder",
        aggregate_id=str(order_public_id),
        idempotency_key=f"purchase_order.created:{order_public_id}",
        data=OrderCreatedData(
            order_public_id=str(order_public_id),
            order_number=number,
            party_public_id=str(vendor.public_id),
            order_date=order_date.isoformat(),
            status=status,
            currency=actor.company.default_currency,
            subtotal=str(subtotal),
            tax_amount=str(tax_amount),
            total=str(total),
            lines=line_data,
            expected_date=expected.isoformat() if expected else None,
            reference=reference,
            notes=notes,
            is_intercompany=vendor.is_intercompany,
            intercompany_transaction_public_id=(
                str(intercompany_transaction_public_id) if intercompany_transaction_public_id else None
            ),
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    order = PurchaseOrder.objects.filter(company=actor.company, public_id=order_public_id).first()
    logger.info("Purchase order %s created in %s (%s)", number, actor.company.name, total)
    return CommandResult.ok(order, event=event)


def _emit_order_status(actor, order, new_status, quantities=None, key_suffix=""):
    if quantities is None:
        quantities = {line.line_no: line.billed_quantity for line in order.lines.all()}
    return emit_event(
        actor=actor,
        event_type=EventTypes.PURCHASE_ORDER_STATUS_CHANGED,
        aggregate_type="PurchaseOrder",
        aggregate_id=str(order.public_id),
        idempotency_key=f"purchase_order.status_changed:{order.public_id}:{order.status}:{new_status}:{key_suffix}",
        data=OrderStatusChangedData(
            order_public_id=str(order.public_id),
            order_number=order.number,
            old_status=order.status,
            new_status=new_status,
            line_quantities={str(k): str(v) for k, v in quantities.items()},
        ).to_dict(),
    )


def _change_order_status(actor, order_public_id, policy, new_status) -> CommandResult:
    order = _locked(PurchaseOrder, actor.company, order_public_id)
    if order is None:
        return CommandResult.fail("Purchase order not found.")

    allowed, reason = policy(order)
    if not allowed:
        return CommandResult.fail(reason)

    event = _emit_order_status(actor, order, new_status)
    _process_projections(actor.company, force=True)
    order.refresh_from_db()
    return CommandResult.ok(order, event=event)


@transaction.atomic
def confirm_purchase_order(actor: ActorContext, order_public_id) -> CommandResult:
    require(actor, "purchases.manage")
    return _change_order_status(actor, order_public_id, can_confirm_order, PurchaseOrder.Status.OPEN)


@transaction.atomic
def cancel_purchase_order(actor: ActorContext, order_public_id) -> CommandResult:
    require(actor, "purchases.manage")
    return _change_order_status(actor, order_public_id, can_cancel_order, PurchaseOrder.Status.CANCELLED)


@transaction.atomic
def close_purchase_order(actor: ActorContext, order_public_id) -> CommandResult:
    require(actor, "purchases.manage")
    return _change_order_status(actor, order_public_id, can_close_order, PurchaseOrder.Status.CLOSED)


# =============================================================================
# Bills
# =============================================================================

@transaction.atomic
def create_bill(
    actor: ActorContext,
    vendor_public_id=None,
    bill_date=None,
    lines=None,
    purchase_order_public_id=None,
    quantities=None,
    due_date=None,
    vendor_invoice_number: str = "",
    reference: str = "",
    notes: str = "",
    intercompany_transaction_public_id=None,
) -> CommandResult:
    """
    Create a DRAFT bill, from explicit lines or from a purchase order.

    Lines without an account post to the product's expense account, else
    to Cost of Goods Sold (Inventory for intercompany vendors).
    """
    require(actor, "purchases.manage")

    order = None
    if purchase_order_public_id:
        order = _locked(PurchaseOrder, actor.company, purchase_order_public_id)
        if order is None:
            return CommandResult.fail("Purchase order not found.")
        allowed, reason = can_bill_order(order)
        if not allowed:
            return CommandResult.fail(reason)
        vendor = order.vendor
        if vendor_public_id and str(vendor.public_id) != str(vendor_public_id):
            return CommandResult.fail("Bill vendor must match the purchase order vendor.")
    else:
        vendor = Vendor.objects.filter(company=actor.company, public_id=vendor_public_id).first()
        if vendor is None:
            return CommandResult.fail("Vendor not found.")

    if is_duplicate_vendor_invoice(actor.company, vendor, vendor_invoice_number):
        return CommandResult.fail(
            f"Vendor invoice {vendor_invoice_number} from {vendor.code} is already booked."
        )

    try:
        bill_date = as_date(bill_date)
        due = as_date(due_date) if due_date else bill_date + timedelta(days=vendor.days_due)
        line_input = lines_from_order(order, quantities) if order and not lines else lines
        line_data = build_document_lines(
            actor.company,
            line_input,
            default_role="inventory" if vendor.is_intercompany else "expense",
            account_field="expense_account",
            price_field="cost_price",
        )
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if not line_data:
        return CommandResult.fail("A bill needs at least one line.")
    if due < bill_date:
        return CommandResult.fail("Due date cannot be before the bill date.")

    subtotal, tax_amount, total = compute_totals(line_data)
    bill_public_id = uuid.uuid4()
    number = _next_document_number(actor.company, "BILL")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.BILL_CREATED,
        aggregate_type="Bill",
        aggregate_id=str(bill_public_id),
        idempotency_key=f"bill.created:{bill_public_id}",
        data=TradeDocumentCreatedData(
            document_public_id=str(bill_public_id),
            document_number=number,
            party_public_id=str(vendor.public_id),
            document_date=bill_date.isoformat(),
            due_date=due.isoformat(),
            currency=actor.company.default_currency,
            subtotal=str(subtotal),
            tax_amount=str(tax_amount),
            total=str(total),
            lines=line_data,
            order_public_id=str(order.public_id) if order else None,
            reference=reference,
            notes=notes,
            vendor_invoice_number=vendor_invoice_number,
            is_intercompany=vendor.is_intercompany,
            intercompany_transaction_public_id=(
                str(intercompany_transaction_public_id) if intercompany_transaction_public_id else None
            ),
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    bill = Bill.objects.filter(company=actor.company, public_id=bill_public_id).first()
    return CommandResult.ok(bill, event=event)


@transaction.atomic
def post_bill(actor: ActorContext, bill_public_id) -> CommandResult:
    """
    Post a DRAFT bill: Dr line accounts + Dr Tax Recoverable / Cr Payable,
    and move its purchase order's billed quantities forward.
    """
    require(actor, "bills.post")

    bill = _locked(Bill, actor.company, bill_public_id)
    if bill is None:
        return CommandResult.fail("Bill not found.")

    allowed, reason = can_post_bill(bill)
    if not allowed:
        return CommandResult.fail(reason)

    bill_lines = list(bill.lines.select_related("account"))

    order = None
    new_quantities = None
    if bill.purchase_order_id:
        order = _locked(PurchaseOrder, actor.company, bill.purchase_order.public_id)
        allowed, reason = can_bill_order(order)
        if not allowed:
            return CommandResult.fail(reason)
        order_lines = {line.line_no: line for line in order.lines.all()}
        new_quantities = {no: line.billed_quantity for no, line in order_lines.items()}
        for line in bill_lines:
            if line.order_line_no is None:
                continue
            order_line = order_lines.get(line.order_line_no)
            if order_line is None:
                return CommandResult.fail(f"Order {order.number} has no line {line.order_line_no}.")
            new_quantities[line.order_line_no] += line.quantity
            if new_quantities[line.order_line_no] > order_line.quantity:
                return CommandResult.fail(
                    f"Line {line.line_no}: billing {line.quantity} exceeds the remaining "
                    f"quantity {order_line.remaining_quantity} of order line {order_line.line_no}."
                )

    memo = f"Bill {bill.number} - {bill.vendor.name}"
    try:
        posted = post_document_entry(
            actor,
            date=bill.document_date,
            memo=memo,
            lines=[
                *[(line.account, line.line_total, 0, line.description) for line in bill_lines],
                ("tax_recoverable", bill.tax_amount, 0, f"Input tax {bill.number}"),
                (_payable_role(bill), 0, bill.total, memo),
            ],
            source_module="purchases",
            source_document=bill.number,
            idempotency_key=f"bill.posting:{bill.public_id}",
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    event = emit_event(
        actor=actor,
        event_type=EventTypes.BILL_POSTED,
        aggregate_type="Bill",
        aggregate_id=str(bill.public_id),
        idempotency_key=f"bill.posted:{bill.public_id}",
        data=TradeDocumentPostedData(
            document_public_id=str(bill.public_id),
            document_number=bill.number,
            journal_entry_public_id=posted.public_id,
            posted_at=timezone.now().isoformat(),
            balance_due=str(bill.total),
        ).to_dict(),
    )
    events = [posted.event, event]

    if order is not None:
        new_status = order_status_for_quantities(order.lines.all(), new_quantities)
        events.append(_emit_order_status(actor, order, new_status, new_quantities, key_suffix=f"bill:{bill.public_id}"))

    _process_projections(actor.company, force=True)
    bill.refresh_from_db()
    logger.info("Bill %s posted in %s (%s)", bill.number, actor.company.name, bill.total)
    return CommandResult.ok(bill, event=event, events=events)


@transaction.atomic
def void_bill(actor: ActorContext, bill_public_id, reason: str = "") -> CommandResult:
    """Void a DRAFT bill, or an OPEN bill without payments or debits (reversal entry)."""
    require(actor, "bills.void")

    bill = _locked(Bill, actor.company, bill_public_id)
    if bill is None:
        return CommandResult.fail("Bill not found.")

    allowed, why = can_void_bill(bill)
    if not allowed:
        return CommandResult.fail(why)

    was_posted = bill.status != Bill.Status.DRAFT
    events = []
    reversal_id = None
    if was_posted and bill.journal_entry_public_id:
        try:
            reversal = reverse_document_entry(
                actor,
                entry_public_id=bill.journal_entry_public_id,
                memo=f"Void bill {bill.number}",
                source_module="purchases",
                source_document=bill.number,
            )
        except PostingError as exc:
            return CommandResult.fail(str(exc))
        reversal_id = reversal.public_id
        events.append(reversal.event)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.BILL_VOIDED,
        aggregate_type="Bill",
        aggregate_id=str(bill.public_id),
        idempotency_key=f"bill.voided:{bill.public_id}",
        data=TradeDocumentVoidedData(
            document_public_id=str(bill.public_id),
            document_number=bill.number,
            voided_at=timezone.now().isoformat(),
            reason=reason,
            reversal_entry_public_id=reversal_id,
        ).to_dict(),
    )
    events.append(event)

    if was_posted and bill.purchase_order_id:
        order = _locked(PurchaseOrder, actor.company, bill.purchase_order.public_id)
        quantities = {line.line_no: line.billed_quantity for line in order.lines.all()}
        for line in bill.lines.all():
            if line.order_line_no in quantities:
                quantities[line.order_line_no] = max(quantities[line.order_line_no] - line.quantity, ZERO)
        new_status = order.status
        if order.status in (PurchaseOrder.Status.PARTIAL, PurchaseOrder.Status.BILLED):
            new_status = order_status_for_quantities(order.lines.all(), quantities)
        events.append(_emit_order_status(actor, order, new_status, quantities, key_suffix=f"void:{bill.public_id}"))

    _process_projections(actor.company, force=True)
    bill.refresh_from_db()
    logger.info("Bill %s voided in %s", bill.number, actor.company.name)
    return CommandResult.ok(bill, event=event, events=events)


# =============================================================================
# Payments
# =============================================================================

@transaction.atomic
def record_payment(
    actor: ActorContext,
    bill_public_id,
    amount,
    payment_date=None,
    payment_method: str = PaymentMethod.BANK_TRANSFER,
    reference: str = "",
    cash_account_public_id=None,
    via_intercompany: bool = False,
) -> CommandResult:
    """
    Pay an OPEN/PARTIAL bill: Dr Payable / Cr Cash.

    Bills of an intercompany transaction are paid by settling the
    transaction, which passes ``via_intercompany``.
    """
    require(actor, "payments.record")

    bill = _locked(Bill, actor.company, bill_public_id)
    if bill is None:
        return CommandResult.fail("Bill not found.")

    try:
        amount = _to_decimal(amount)
        payment_date = as_date(payment_date)
        if cash_account_public_id:
            cash_account = Account.objects.filter(company=actor.company, public_id=cash_account_public_id).first()
            if cash_account is None:
                raise PolicyViolation(f"Account {cash_account_public_id} not found.")
        else:
            cash_account = resolve_posting_account(actor.company, "cash")
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    allowed, reason = can_record_payment(bill, amount, via_intercompany)
    if not allowed:
        return CommandResult.fail(reason)
    if payment_method not in PaymentMethod.values:
        return CommandResult.fail(f"Unknown payment method '{payment_method}'.")

    number = _next_document_number(actor.company, "PAY")
    memo = f"Payment {number} for {bill.number}"
    try:
        posted = post_document_entry(
            actor,
            date=payment_date,
            memo=memo,
            lines=[
                (_payable_role(bill), amount, 0, memo),
                (cash_account, 0, amount, memo),
            ],
            source_module="purchases",
            source_document=number,
            idempotency_key=f"payment.posting:{actor.company.public_id}:{number}",
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    amount_paid = bill.amount_paid + amount
    balance_due = bill.balance_due - amount
    payment_public_id = uuid.uuid4()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.PAYMENT_RECORDED,
        aggregate_type="Payment",
        aggregate_id=str(payment_public_id),
        idempotency_key=f"payment.recorded:{payment_public_id}",
        data=SettlementRecordedData(
            settlement_public_id=str(payment_public_id),
            settlement_number=number,
            party_public_id=str(bill.vendor.public_id),
            document_public_id=str(bill.public_id),
            settlement_date=payment_date.isoformat(),
            amount=str(amount),
            payment_method=payment_method,
            cash_account_public_id=str(cash_account.public_id),
            journal_entry_public_id=posted.public_id,
            document_amount_paid=str(amount_paid),
            document_balance_due=str(balance_due),
            document_status=document_status(balance_due, amount_paid, bill.amount_credited),
            reference=reference,
            is_partial=balance_due > 0,
            is_intercompany=bill.is_intercompany,
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    payment = Payment.objects.filter(company=actor.company, public_id=payment_public_id).first()
    logger.info("Payment %s of %s recorded against %s", number, amount, bill.number)
    return CommandResult.ok(payment, event=event, events=[posted.event, event])


@transaction.atomic
def void_payment(actor: ActorContext, payment_public_id) -> CommandResult:
    require(actor, "payments.record")

    payment = _locked(Payment, actor.company, payment_public_id)
    if payment is None:
        return CommandResult.fail("Payment not found.")

    allowed, reason = can_void_payment(payment)
    if not allowed:
        return CommandResult.fail(reason)

    bill = _locked(Bill, actor.company, payment.bill.public_id)
    try:
        reversal = reverse_document_entry(
            actor,
            entry_public_id=payment.journal_entry_public_id,
            memo=f"Void payment {payment.number}",
            source_module="purchases",
            source_document=payment.number,
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    amount_paid = bill.amount_paid - payment.amount
    balance_due = bill.balance_due + payment.amount
    event = emit_event(
        actor=actor,
        event_type=EventTypes.PAYMENT_VOIDED,
        aggregate_type="Payment",
        aggregate_id=str(payment.public_id),
        idempotency_key=f"payment.voided:{payment.public_id}",
        data=SettlementVoidedData(
            settlement_public_id=str(payment.public_id),
            settlement_number=payment.number,
            document_public_id=str(bill.public_id),
            voided_at=timezone.now().isoformat(),
            reversal_entry_public_id=reversal.public_id,
            document_amount_paid=str(amount_paid),
            document_balance_due=str(balance_due),
            document_status=document_status(balance_due, amount_paid, bill.amount_credited),
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    payment.refresh_from_db()
    return CommandResult.ok(payment, event=event, events=[reversal.event, event])


# =============================================================================
# Debit Notes
# =============================================================================

@transaction.atomic
def create_debit_note(
    actor: ActorContext,
    vendor_public_id,
    reason: str,
    lines=None,
    note_date=None,
    bill_public_id=None,
    reference: str = "",
) -> CommandResult:
    """Create a DRAFT debit note. Lines default to Purchase Returns."""
    require(actor, "debit_notes.manage")

    vendor = Vendor.objects.filter(company=actor.company, public_id=vendor_public_id).first()
    if vendor is None:
        return CommandResult.fail("Vendor not found.")
    if not reason:
        return CommandResult.fail("A debit note needs a reason.")

    bill = None
    if bill_public_id:
        bill = Bill.objects.filter(company=actor.company, public_id=bill_public_id).first()
        if bill is None:
            return CommandResult.fail("Bill not found.")
        if bill.vendor_id != vendor.id:
            return CommandResult.fail("Debit note and bill belong to different vendors.")
        if bill.status in (Bill.Status.DRAFT, Bill.Status.VOID):
            return CommandResult.fail(f"Cannot debit a {bill.status.lower()} bill.")
        allowed, why = can_change_trade_document(bill)
        if not allowed:
            return CommandResult.fail(why)

    try:
        note_date = as_date(note_date)
        line_data = build_document_lines(
            actor.company,
            lines,
            default_role="purchase_returns",
            price_field="cost_price",
        )
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if not line_data:
        return CommandResult.fail("A debit note needs at least one line.")

    subtotal, tax_amount, total = compute_totals(line_data)
    note_public_id = uuid.uuid4()
    number = _next_document_number(actor.company, "DN")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.DEBIT_NOTE_CREATED,
        aggregate_type="DebitNote",
        aggregate_id=str(note_public_id),
        idempotency_key=f"debit_note.created:{note_public_id}",
        data=NoteCreatedData(
            note_public_id=str(note_public_id),
            note_number=number,
            party_public_id=str(vendor.public_id),
            note_date=note_date.isoformat(),
            reason=reason,
            currency=actor.company.default_currency,
            subtotal=str(subtotal),
            tax_amount=str(tax_amount),
            total=str(total),
            lines=line_data,
            document_public_id=str(bill.public_id) if bill else None,
            reference=reference,
            is_intercompany=vendor.is_intercompany,
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    note = DebitNote.objects.filter(company=actor.company, public_id=note_public_id).first()
    return CommandResult.ok(note, event=event)


def _emit_debit_application(actor, note, bill, amount, note_applied_before, note_total):
    note_applied = note_applied_before + amount
    amount_credited = bill.amount_credited + amount
    balance_due = bill.balance_due - amount
    return emit_event(
        actor=actor,
        event_type=EventTypes.DEBIT_NOTE_APPLIED,
        aggregate_type="DebitNote",
        aggregate_id=str(note.public_id),
        idempotency_key=f"debit_note.applied:{note.public_id}:{bill.public_id}:{note_applied}",
        data=NoteAppliedData(
            note_public_id=str(note.public_id),
            document_public_id=str(bill.public_id),
            amount=str(amount),
            applied_at=timezone.now().isoformat(),
            note_amount_applied=str(note_applied),
            note_status=note_status(note_total, note_applied),
            document_amount_credited=str(amount_credited),
            document_balance_due=str(balance_due),
            document_status=document_status(balance_due, bill.amount_paid, amount_credited),
        ).to_dict(),
    )


@transaction.atomic
def issue_debit_note(actor: ActorContext, note_public_id) -> CommandResult:
    """
    Issue a DRAFT debit note: Dr Payable / Cr Purchase Returns + Cr Tax
    Recoverable. A note linked to an open bill is applied to it.
    """
    require(actor, "debit_notes.manage")

    note = _locked(DebitNote, actor.company, note_public_id)
    if note is None:
        return CommandResult.fail("Debit note not found.")

    allowed, reason = can_issue_debit_note(note)
    if not allowed:
        return CommandResult.fail(reason)

    bill = _locked(Bill, actor.company, note.bill.public_id) if note.bill_id else None

    memo = f"Debit note {note.number} - {note.reason}"
    try:
        posted = post_document_entry(
            actor,
            date=note.note_date,
            memo=memo,
            lines=[
                (_payable_role(note), note.total, 0, memo),
                *[(line.account, 0, line.line_total, line.description) for line in note.lines.select_related("account")],
                ("tax_recoverable", 0, note.tax_amount, f"Input tax {note.number}"),
            ],
            source_module="purchases",
            source_document=note.number,
            idempotency_key=f"debit_note.posting:{note.public_id}",
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    event = emit_event(
        actor=actor,
        event_type=EventTypes.DEBIT_NOTE_ISSUED,
        aggregate_type="DebitNote",
        aggregate_id=str(note.public_id),
        idempotency_key=f"debit_note.issued:{note.public_id}",
        data=NoteIssuedData(
            note_public_id=str(note.public_id),
            note_number=note.number,
            journal_entry_public_id=posted.public_id,
            issued_at=timezone.now().isoformat(),
        ).to_dict(),
    )
    events = [posted.event, event]

    if bill is not None and bill.status in Bill.OPEN_STATUSES:
        amount = min(note.total, bill.balance_due)
        if amount > 0:
            events.append(_emit_debit_application(actor, note, bill, amount, ZERO, note.total))

    _process_projections(actor.company, force=True)
    note.refresh_from_db()
    logger.info("Debit note %s issued in %s (%s)", note.number, actor.company.name, note.total)
    return CommandResult.ok(note, event=event, events=events)


@transaction.atomic
def apply_debit_note(
    actor: ActorContext,
    note_public_id,
    bill_public_id,
    amount=None,
    via_intercompany: bool = False,
) -> CommandResult:
    """Apply issued debit to an open bill of the same vendor."""
    require(actor, "debit_notes.manage")

    note = _locked(DebitNote, actor.company, note_public_id)
    if note is None:
        return CommandResult.fail("Debit note not found.")
    bill = _locked(Bill, actor.company, bill_public_id)
    if bill is None:
        return CommandResult.fail("Bill not found.")

    try:
        amount = _to_decimal(amount) if amount not in (None, "") else min(note.unapplied_amount, bill.balance_due)
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    allowed, reason = can_apply_debit_note(note, bill, amount, via_intercompany)
    if not allowed:
        return CommandResult.fail(reason)

    event = _emit_debit_application(actor, note, bill, amount, note.amount_applied, note.total)
    _process_projections(actor.company, force=True)
    note.refresh_from_db()
    return CommandResult.ok(note, event=event)


@transaction.atomic
def cancel_debit_note(actor: ActorContext, note_public_id) -> CommandResult:
    require(actor, "debit_notes.manage")

    note = _locked(DebitNote, actor.company, note_public_id)
    if note is None:
        return CommandResult.fail("Debit note not found.")

    allowed, reason = can_cancel_debit_note(note)
    if not allowed:
        return CommandResult.fail(reason)

    events = []
    reversal_id = None
    if note.status == DebitNote.Status.ISSUED and note.journal_entry_public_id:
        try:
            reversal = reverse_document_entry(
                actor,
                entry_public_id=note.journal_entry_public_id,
                memo=f"Cancel debit note {note.number}",
                source_module="purchases",
                source_document=note.number,
            )
        except PostingError as exc:
            return CommandResult.fail(str(exc))
        reversal_id = reversal.public_id
        events.append(reversal.event)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.DEBIT_NOTE_CANCELLED,
        aggregate_type="DebitNote",
        aggregate_id=str(note.public_id),
        idempotency_key=f"debit_note.cancelled:{note.public_id}",
        data=NoteCancelledData(
            note_public_id=str(note.public_id),
            note_number=note.number,
            cancelled_at=timezone.now().isoformat(),
            reversal_entry_public_id=reversal_id,
        ).to_dict(),
    )
    events.append(event)

    _process_projections(actor.company, force=True)
    note.refresh_from_db()
    return CommandResult.ok(note, event=event, events=events)
