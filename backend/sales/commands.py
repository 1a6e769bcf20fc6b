# sales/commands.py
"""
Command layer for the sales sub-ledger.

Same pattern as accounting/commands.py:
1. require() the permission
2. check the policy against the (locked) read model
3. post the journal entry through accounting.posting
4. emit the document event(s)
5. run projections and read the document back

Every check runs before the first event is emitted, so a failed command
leaves no events behind.

Documents are addressed by public_id. Ledger postings:

    invoice issued      Dr Receivable / Cr Revenue (per line) / Cr Tax Payable
    receipt recorded    Dr Cash / Cr Receivable
    credit note issued  Dr Sales Returns (per line) + Dr Tax Payable / Cr Receivable

Intercompany documents use the intercompany receivable account instead of
the trade receivable.
"""

from datetime import timedelta
import logging
import uuid

from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require, require_any
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
from accounts.models import Company
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
    PaymentTermCreatedData,
    ProductCreatedData,
    ProductUpdatedData,
    SettlementRecordedData,
    SettlementVoidedData,
    TradeDocumentCreatedData,
    TradeDocumentPostedData,
    TradeDocumentVoidedData,
)
from .models import (
    CreditNote,
    Customer,
    Invoice,
    PaymentTerm,
    Product,
    Receipt,
    SalesOrder,
)
from .policies import (
    can_apply_credit_note,
    can_cancel_credit_note,
    can_cancel_order,
    can_close_order,
    can_confirm_order,
    can_invoice_order,
    can_issue_credit_note,
    can_issue_invoice,
    can_record_receipt,
    can_void_invoice,
    can_void_receipt,
    order_status_for_quantities,
)


logger = logging.getLogger(__name__)


def _receivable_role(document) -> str:
    return "ic_receivable" if document.is_intercompany else "receivable"


def _locked(model, company, public_id):
    if not public_id:
        return None
    return model.objects.select_for_update().filter(company=company, public_id=public_id).first()


# =============================================================================
# Catalogue: payment terms and products
# =============================================================================

@transaction.atomic
def create_payment_term(actor: ActorContext, code: str, name: str, days_due: int = 0) -> CommandResult:
    require_any(actor, "sales.manage", "purchases.manage")

    if days_due < 0:
        return CommandResult.fail("days_due cannot be negative.")
    if PaymentTerm.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Payment term '{code}' already exists.")

    term_public_id = uuid.uuid4()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.PAYMENT_TERM_CREATED,
        aggregate_type="PaymentTerm",
        aggregate_id=str(term_public_id),
        idempotency_key=f"payment_term.created:{actor.company.public_id}:{code}",
        data=PaymentTermCreatedData(
            term_public_id=str(term_public_id),
            code=code,
            name=name,
            days_due=int(days_due),
        ).to_dict(),
    )

    _process_projections(actor.company)
    term = PaymentTerm.objects.filter(company=actor.company, public_id=event.data["term_public_id"]).first()
    return CommandResult.ok(term, event=event)


def _optional_account(company, public_id):
    if not public_id:
        return None
    account = Account.objects.filter(company=company, public_id=public_id).first()
    if account is None:
        raise PolicyViolation(f"Account {public_id} not found.")
    return account


@transaction.atomic
def create_product(
    actor: ActorContext,
    code: str,
    name: str,
    unit_price="0",
    cost_price="0",
    description: str = "",
    revenue_account_public_id=None,
    expense_account_public_id=None,
) -> CommandResult:
    require_any(actor, "sales.manage", "purchases.manage")

    if Product.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Product '{code}' already exists.")
    try:
        unit_price = _to_decimal(unit_price)
        cost_price = _to_decimal(cost_price)
        revenue_account = _optional_account(actor.company, revenue_account_public_id)
        expense_account = _optional_account(actor.company, expense_account_public_id)
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if unit_price < 0 or cost_price < 0:
        return CommandResult.fail("Prices cannot be negative.")

    product_public_id = uuid.uuid4()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.PRODUCT_CREATED,
        aggregate_type="Product",
        aggregate_id=str(product_public_id),
        idempotency_key=f"product.created:{actor.company.public_id}:{code}",
        data=ProductCreatedData(
            product_public_id=str(product_public_id),
            code=code,
            name=name,
            unit_price=str(unit_price),
            cost_price=str(cost_price),
            description=description,
            revenue_account_public_id=str(revenue_account.public_id) if revenue_account else None,
            expense_account_public_id=str(expense_account.public_id) if expense_account else None,
        ).to_dict(),
    )

    _process_projections(actor.company)
    product = Product.objects.filter(company=actor.company, public_id=event.data["product_public_id"]).first()
    return CommandResult.ok(product, event=event)


PRODUCT_UPDATABLE_FIELDS = {
    "name", "description", "unit_price", "cost_price", "is_active",
    "revenue_account_public_id", "expense_account_public_id",
}


@transaction.atomic
def update_product(actor: ActorContext, product_public_id, **updates) -> CommandResult:
    require_any(actor, "sales.manage", "purchases.manage")

    product = _locked(Product, actor.company, product_public_id)
    if product is None:
        return CommandResult.fail("Product not found.")

    invalid = set(updates) - PRODUCT_UPDATABLE_FIELDS
    if invalid:
        return CommandResult.fail(f"Cannot update fields: {sorted(invalid)}")

    changes = {}
    try:
        for field_name, value in updates.items():
            if field_name in ("unit_price", "cost_price"):
                value = _to_decimal(value)
                if value < 0:
                    return CommandResult.fail("Prices cannot be negative.")
                old = getattr(product, field_name)
                if old != value:
                    changes[field_name] = {"old": str(old), "new": str(value)}
            elif field_name.endswith("_account_public_id"):
                relation = field_name.replace("_public_id", "")
                account = _optional_account(actor.company, value)
                old = getattr(product, relation)
                old_id = str(old.public_id) if old else None
                new_id = str(account.public_id) if account else None
                if old_id != new_id:
                    changes[field_name] = {"old": old_id, "new": new_id}
            else:
                old = getattr(product, field_name)
                if old != value:
                    changes[field_name] = {"old": old, "new": value}
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    if not changes:
        return CommandResult.ok(product)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.PRODUCT_UPDATED,
        aggregate_type="Product",
        aggregate_id=str(product.public_id),
        idempotency_key=f"product.updated:{product.public_id}:{_changes_hash(changes)}",
        data=ProductUpdatedData(
            product_public_id=str(product.public_id),
            changes=changes,
        ).to_dict(),
    )

    _process_projections(actor.company)
    product.refresh_from_db()
    return CommandResult.ok(product, event=event)


# =============================================================================
# Customers
# =============================================================================

@transaction.atomic
def create_customer(
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
    """
    Create a customer.

    related_company_public_id marks the customer as another company of the
    same tenant; intercompany invoices are only issued to such customers.
    """
    require(actor, "sales.manage")

    if Customer.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.fail(f"Customer code '{code}' already exists.")

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
        allowed, reason = can_trade_intercompany(actor.company, related)
        if not allowed:
            return CommandResult.fail(reason)

    customer_public_id = uuid.uuid4()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.CUSTOMER_CREATED,
        aggregate_type="Customer",
        aggregate_id=str(customer_public_id),
        idempotency_key=f"customer.created:{actor.company.public_id}:{code}",
        data=PartyCreatedData(
            party_public_id=str(customer_public_id),
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
    customer = Customer.objects.filter(company=actor.company, public_id=event.data["party_public_id"]).first()
    logger.info("Customer %s created in %s", code, actor.company.name)
    return CommandResult.ok(customer, event=event)


CUSTOMER_UPDATABLE_FIELDS = {"name", "email", "phone", "address", "tax_id", "is_active", "payment_term_public_id"}


@transaction.atomic
def update_customer(actor: ActorContext, customer_public_id, **updates) -> CommandResult:
    require(actor, "sales.manage")

    customer = _locked(Customer, actor.company, customer_public_id)
    if customer is None:
        return CommandResult.fail("Customer not found.")

    invalid = set(updates) - CUSTOMER_UPDATABLE_FIELDS
    if invalid:
        return CommandResult.fail(f"Cannot update fields: {sorted(invalid)}")

    changes = {}
    for field_name, value in updates.items():
        if field_name == "payment_term_public_id":
            old_id = str(customer.payment_term.public_id) if customer.payment_term_id else None
            new_id = str(value) if value else None
            if new_id and not PaymentTerm.objects.filter(company=actor.company, public_id=new_id).exists():
                return CommandResult.fail("Payment term not found.")
            if old_id != new_id:
                changes[field_name] = {"old": old_id, "new": new_id}
            continue
        old = getattr(customer, field_name)
        if old != value:
            changes[field_name] = {"old": old, "new": value}

    if not changes:
        return CommandResult.ok(customer)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CUSTOMER_UPDATED,
        aggregate_type="Customer",
        aggregate_id=str(customer.public_id),
        idempotency_key=f"customer.updated:{customer.public_id}:{_changes_hash(changes)}",
        data=PartyUpdatedData(
            party_public_id=str(customer.public_id),
            changes=changes,
        ).to_dict(),
    )

    _process_projections(actor.company)
    customer.refresh_from_db()
    return CommandResult.ok(customer, event=event)


# =============================================================================
# Sales Orders
# =============================================================================

@transaction.atomic
def create_sales_order(
    actor: ActorContext,
    customer_public_id,
    order_date=None,
    lines=None,
    expected_date=None,
    reference: str = "",
    notes: str = "",
    confirm: bool = False,
    intercompany_transaction_public_id=None,
) -> CommandResult:
    """
    Create a sales order: DRAFT, or OPEN when ``confirm`` is set.

    Lines: [{"product_public_id"?, "description", "quantity", "unit_price"?, "tax_rate"?}]
    """
    require(actor, "sales.manage")

    customer = Customer.objects.filter(company=actor.company, public_id=customer_public_id).first()
    if customer is None:
        return CommandResult.fail("Customer not found.")
    if not customer.is_active:
        return CommandResult.fail(f"Customer {customer.code} is inactive.")

    try:
        order_date = as_date(order_date)
        expected = as_date(expected_date) if expected_date else None
        line_data = build_order_lines(actor.company, lines, price_field="unit_price")
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if not line_data:
        return CommandResult.fail("A sales order needs at least one line.")

    subtotal, tax_amount, total = compute_totals(line_data)
    order_public_id = uuid.uuid4()
    number = _next_document_number(actor.company, "SO")
    status = SalesOrder.Status.OPEN if confirm else SalesOrder.Status.DRAFT

    event = emit_event(
        actor=actor,
        event_type=EventTypes.SALES_ORDER_CREATED,
        aggregate_type="SalesOrder",
        aggregate_id=str(order_public_id),
        idempotency_key=f"sales_order.created:{order_public_id}",
        data=OrderCreatedData(
            order_public_id=str(order_public_id),
            order_number=number,
            party_public_id=str(customer.public_id),
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
            is_intercompany=customer.is_intercompany,
            intercompany_transaction_public_id=(
                str(intercompany_transaction_public_id) if intercompany_transaction_public_id else None
            ),
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    order = SalesOrder.objects.filter(company=actor.company, public_id=order_public_id).first()
    logger.info("Sales order %s created in %s (%s)", number, actor.company.name, total)
    return CommandResult.ok(order, event=event)


def _emit_order_status(actor, order, new_status, quantities=None, key_suffix=""):
    """Emit sales_order.status_changed carrying the per-line invoiced quantities."""
    if quantities is None:
        quantities = {line.line_no: line.invoiced_quantity for line in order.lines.all()}
    return emit_event(
        actor=actor,
        event_type=EventTypes.SALES_ORDER_STATUS_CHANGED,
        aggregate_type="SalesOrder",
        aggregate_id=str(order.public_id),
        idempotency_key=f"sales_order.status_changed:{order.public_id}:{order.status}:{new_status}:{key_suffix}",
        data=OrderStatusChangedData(
            order_public_id=str(order.public_id),
            order_number=order.number,
            old_status=order.status,
            new_status=new_status,
            line_quantities={str(k): str(v) for k, v in quantities.items()},
        ).to_dict(),
    )


def _change_order_status(actor, order_public_id, policy, new_status) -> CommandResult:
    order = _locked(SalesOrder, actor.company, order_public_id)
    if order is None:
        return CommandResult.fail("Sales order not found.")

    allowed, reason = policy(order)
    if not allowed:
        return CommandResult.fail(reason)

    event = _emit_order_status(actor, order, new_status)
    _process_projections(actor.company, force=True)
    order.refresh_from_db()
    return CommandResult.ok(order, event=event)


@transaction.atomic
def confirm_sales_order(actor: ActorContext, order_public_id) -> CommandResult:
    require(actor, "sales.manage")
    return _change_order_status(actor, order_public_id, can_confirm_order, SalesOrder.Status.OPEN)


@transaction.atomic
def cancel_sales_order(actor: ActorContext, order_public_id) -> CommandResult:
    require(actor, "sales.manage")
    return _change_order_status(actor, order_public_id, can_cancel_order, SalesOrder.Status.CANCELLED)


@transaction.atomic
def close_sales_order(actor: ActorContext, order_public_id) -> CommandResult:
    require(actor, "sales.manage")
    return _change_order_status(actor, order_public_id, can_close_order, SalesOrder.Status.CLOSED)


# =============================================================================
# Invoices
# =============================================================================

@transaction.atomic
def create_invoice(
    actor: ActorContext,
    customer_public_id=None,
    invoice_date=None,
    lines=None,
    sales_order_public_id=None,
    quantities=None,
    due_date=None,
    reference: str = "",
    notes: str = "",
    intercompany_transaction_public_id=None,
) -> CommandResult:
    """
    Create a DRAFT invoice.

    Either explicit ``lines`` or a ``sales_order_public_id``: an invoice
    from an order takes each line's remaining quantity, or the
    ``quantities`` given per order line_no (never more than remaining).

    due_date defaults to invoice_date + the customer's payment term days.
    """
    require(actor, "sales.manage")

    order = None
    if sales_order_public_id:
        order = _locked(SalesOrder, actor.company, sales_order_public_id)
        if order is None:
            return CommandResult.fail("Sales order not found.")
        allowed, reason = can_invoice_order(order)
        if not allowed:
            return CommandResult.fail(reason)
        customer = order.customer
        if customer_public_id and str(customer.public_id) != str(customer_public_id):
            return CommandResult.fail("Invoice customer must match the sales order customer.")
    else:
        customer = Customer.objects.filter(company=actor.company, public_id=customer_public_id).first()
        if customer is None:
            return CommandResult.fail("Customer not found.")

    try:
        invoice_date = as_date(invoice_date)
        due = as_date(due_date) if due_date else invoice_date + timedelta(days=customer.days_due)
        line_input = lines_from_order(order, quantities) if order and not lines else lines
        line_data = build_document_lines(
            actor.company,
            line_input,
            default_role="revenue",
            account_field="revenue_account",
            price_field="unit_price",
        )
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if not line_data:
        return CommandResult.fail("An invoice needs at least one line.")
    if due < invoice_date:
        return CommandResult.fail("Due date cannot be before the invoice date.")

    subtotal, tax_amount, total = compute_totals(line_data)
    invoice_public_id = uuid.uuid4()
    number = _next_document_number(actor.company, "INV")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.INVOICE_CREATED,
        aggregate_type="Invoice",
        aggregate_id=str(invoice_public_id),
        idempotency_key=f"invoice.created:{invoice_public_id}",
        data=TradeDocumentCreatedData(
            document_public_id=str(invoice_public_id),
            document_number=number,
            party_public_id=str(customer.public_id),
            document_date=invoice_date.isoformat(),
            due_date=due.isoformat(),
            currency=actor.company.default_currency,
            subtotal=str(subtotal),
            tax_amount=str(tax_amount),
            total=str(total),
            lines=line_data,
            order_public_id=str(order.public_id) if order else None,
            reference=reference,
            notes=notes,
            is_intercompany=customer.is_intercompany,
            intercompany_transaction_public_id=(
                str(intercompany_transaction_public_id) if intercompany_transaction_public_id else None
            ),
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    invoice = Invoice.objects.filter(company=actor.company, public_id=invoice_public_id).first()
    return CommandResult.ok(invoice, event=event)


@transaction.atomic
def issue_invoice(actor: ActorContext, invoice_public_id) -> CommandResult:
    """
    Issue a DRAFT invoice: post Dr Receivable / Cr Revenue / Cr Tax Payable
    and move its sales order's invoiced quantities forward.
    """
    require(actor, "invoices.issue")

    invoice = _locked(Invoice, actor.company, invoice_public_id)
    if invoice is None:
        return CommandResult.fail("Invoice not found.")

    allowed, reason = can_issue_invoice(invoice)
    if not allowed:
        return CommandResult.fail(reason)

    invoice_lines = list(invoice.lines.select_related("account"))

    order = None
    new_quantities = None
    if invoice.sales_order_id:
        order = _locked(SalesOrder, actor.company, invoice.sales_order.public_id)
        allowed, reason = can_invoice_order(order)
        if not allowed:
            return CommandResult.fail(reason)
        order_lines = {line.line_no: line for line in order.lines.all()}
        new_quantities = {no: line.invoiced_quantity for no, line in order_lines.items()}
        for line in invoice_lines:
            if line.order_line_no is None:
                continue
            order_line = order_lines.get(line.order_line_no)
            if order_line is None:
                return CommandResult.fail(f"Order {order.number} has no line {line.order_line_no}.")
            new_quantities[line.order_line_no] += line.quantity
            if new_quantities[line.order_line_no] > order_line.quantity:
                return CommandResult.fail(
                    f"Line {line.line_no}: invoicing {line.quantity} exceeds the remaining "
                    f"quantity {order_line.remaining_quantity} of order line {order_line.line_no}."
                )

    memo = f"Invoice {invoice.number} - {invoice.customer.name}"
    try:
        posted = post_document_entry(
            actor,
            date=invoice.document_date,
            memo=memo,
            lines=[
                (_receivable_role(invoice), invoice.total, 0, memo),
                *[(line.account, 0, line.line_total, line.description) for line in invoice_lines],
                ("tax_payable", 0, invoice.tax_amount, f"Sales tax {invoice.number}"),
            ],
            source_module="sales",
            source_document=invoice.number,
            idempotency_key=f"invoice.posting:{invoice.public_id}",
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    issued_at = timezone.now()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.INVOICE_ISSUED,
        aggregate_type="Invoice",
        aggregate_id=str(invoice.public_id),
        idempotency_key=f"invoice.issued:{invoice.public_id}",
        data=TradeDocumentPostedData(
            document_public_id=str(invoice.public_id),
            document_number=invoice.number,
            journal_entry_public_id=posted.public_id,
            posted_at=issued_at.isoformat(),
            balance_due=str(invoice.total),
        ).to_dict(),
    )
    events = [posted.event, event]

    if order is not None:
        new_status = order_status_for_quantities(order.lines.all(), new_quantities)
        events.append(_emit_order_status(actor, order, new_status, new_quantities, key_suffix=f"inv:{invoice.public_id}"))

    _process_projections(actor.company, force=True)
    invoice.refresh_from_db()
    logger.info("Invoice %s issued in %s (%s)", invoice.number, actor.company.name, invoice.total)
    return CommandResult.ok(invoice, event=event, events=events)


@transaction.atomic
def void_invoice(actor: ActorContext, invoice_public_id, reason: str = "") -> CommandResult:
    """
    Void an invoice.

    A DRAFT invoice is simply discarded. An OPEN invoice without receipts
    or credits gets its entry reversed and its order quantities released.
    """
    require(actor, "invoices.void")

    invoice = _locked(Invoice, actor.company, invoice_public_id)
    if invoice is None:
        return CommandResult.fail("Invoice not found.")

    allowed, why = can_void_invoice(invoice)
    if not allowed:
        return CommandResult.fail(why)

    was_issued = invoice.status != Invoice.Status.DRAFT
    events = []
    reversal_id = None
    if was_issued and invoice.journal_entry_public_id:
        try:
            reversal = reverse_document_entry(
                actor,
                entry_public_id=invoice.journal_entry_public_id,
                memo=f"Void invoice {invoice.number}",
                source_module="sales",
                source_document=invoice.number,
            )
        except PostingError as exc:
            return CommandResult.fail(str(exc))
        reversal_id = reversal.public_id
        events.append(reversal.event)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.INVOICE_VOIDED,
        aggregate_type="Invoice",
        aggregate_id=str(invoice.public_id),
        idempotency_key=f"invoice.voided:{invoice.public_id}",
        data=TradeDocumentVoidedData(
            document_public_id=str(invoice.public_id),
            document_number=invoice.number,
            voided_at=timezone.now().isoformat(),
            reason=reason,
            reversal_entry_public_id=reversal_id,
        ).to_dict(),
    )
    events.append(event)

    if was_issued and invoice.sales_order_id:
        order = _locked(SalesOrder, actor.company, invoice.sales_order.public_id)
        quantities = {line.line_no: line.invoiced_quantity for line in order.lines.all()}
        for line in invoice.lines.all():
            if line.order_line_no in quantities:
                quantities[line.order_line_no] = max(quantities[line.order_line_no] - line.quantity, ZERO)
        new_status = order.status
        if order.status in (SalesOrder.Status.PARTIAL, SalesOrder.Status.INVOICED):
            new_status = order_status_for_quantities(order.lines.all(), quantities)
        events.append(_emit_order_status(actor, order, new_status, quantities, key_suffix=f"void:{invoice.public_id}"))

    _process_projections(actor.company, force=True)
    invoice.refresh_from_db()
    logger.info("Invoice %s voided in %s", invoice.number, actor.company.name)
    return CommandResult.ok(invoice, event=event, events=events)


# =============================================================================
# Receipts
# =============================================================================

@transaction.atomic
def record_receipt(
    actor: ActorContext,
    invoice_public_id,
    amount,
    receipt_date=None,
    payment_method: str = PaymentMethod.BANK_TRANSFER,
    reference: str = "",
    cash_account_public_id=None,
    via_intercompany: bool = False,
) -> CommandResult:
    """
    Record cash received against an OPEN/PARTIAL invoice.

    Posts Dr Cash / Cr Receivable; the invoice becomes PARTIAL or PAID.
    Invoices of an intercompany transaction are only paid by settling the
    transaction, which passes ``via_intercompany``.
    """
    require(actor, "receipts.record")

    invoice = _locked(Invoice, actor.company, invoice_public_id)
    if invoice is None:
        return CommandResult.fail("Invoice not found.")

    try:
        amount = _to_decimal(amount)
        receipt_date = as_date(receipt_date)
        if cash_account_public_id:
            cash_account = _optional_account(actor.company, cash_account_public_id)
        else:
            cash_account = resolve_posting_account(actor.company, "cash")
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    allowed, reason = can_record_receipt(invoice, amount, via_intercompany)
    if not allowed:
        return CommandResult.fail(reason)
    if payment_method not in PaymentMethod.values:
        return CommandResult.fail(f"Unknown payment method '{payment_method}'.")

    number = _next_document_number(actor.company, "RCT")
    memo = f"Receipt {number} for {invoice.number}"
    try:
        posted = post_document_entry(
            actor,
            date=receipt_date,
            memo=memo,
            lines=[
                (cash_account, amount, 0, memo),
                (_receivable_role(invoice), 0, amount, memo),
            ],
            source_module="sales",
            source_document=number,
            idempotency_key=f"receipt.posting:{actor.company.public_id}:{number}",
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    amount_paid = invoice.amount_paid + amount
    balance_due = invoice.balance_due - amount
    receipt_public_id = uuid.uuid4()
    event = emit_event(
        actor=actor,
        event_type=EventTypes.RECEIPT_RECORDED,
        aggregate_type="Receipt",
        aggregate_id=str(receipt_public_id),
        idempotency_key=f"receipt.recorded:{receipt_public_id}",
        data=SettlementRecordedData(
            settlement_public_id=str(receipt_public_id),
            settlement_number=number,
            party_public_id=str(invoice.customer.public_id),
            document_public_id=str(invoice.public_id),
            settlement_date=receipt_date.isoformat(),
            amount=str(amount),
            payment_method=payment_method,
            cash_account_public_id=str(cash_account.public_id),
            journal_entry_public_id=posted.public_id,
            document_amount_paid=str(amount_paid),
            document_balance_due=str(balance_due),
            document_status=document_status(balance_due, amount_paid, invoice.amount_credited),
            reference=reference,
            is_partial=balance_due > 0,
            is_intercompany=invoice.is_intercompany,
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    receipt = Receipt.objects.filter(company=actor.company, public_id=receipt_public_id).first()
    logger.info("Receipt %s of %s recorded against %s", number, amount, invoice.number)
    return CommandResult.ok(receipt, event=event, events=[posted.event, event])


@transaction.atomic
def void_receipt(actor: ActorContext, receipt_public_id) -> CommandResult:
    """Reverse a receipt's entry and restore the invoice balance."""
    require(actor, "receipts.record")

    receipt = _locked(Receipt, actor.company, receipt_public_id)
    if receipt is None:
        return CommandResult.fail("Receipt not found.")

    allowed, reason = can_void_receipt(receipt)
    if not allowed:
        return CommandResult.fail(reason)

    invoice = _locked(Invoice, actor.company, receipt.invoice.public_id)
    try:
        reversal = reverse_document_entry(
            actor,
            entry_public_id=receipt.journal_entry_public_id,
            memo=f"Void receipt {receipt.number}",
            source_module="sales",
            source_document=receipt.number,
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    amount_paid = invoice.amount_paid - receipt.amount
    balance_due = invoice.balance_due + receipt.amount
    event = emit_event(
        actor=actor,
        event_type=EventTypes.RECEIPT_VOIDED,
        aggregate_type="Receipt",
        aggregate_id=str(receipt.public_id),
        idempotency_key=f"receipt.voided:{receipt.public_id}",
        data=SettlementVoidedData(
            settlement_public_id=str(receipt.public_id),
            settlement_number=receipt.number,
            document_public_id=str(invoice.public_id),
            voided_at=timezone.now().isoformat(),
            reversal_entry_public_id=reversal.public_id,
            document_amount_paid=str(amount_paid),
            document_balance_due=str(balance_due),
            document_status=document_status(balance_due, amount_paid, invoice.amount_credited),
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    receipt.refresh_from_db()
    return CommandResult.ok(receipt, event=event, events=[reversal.event, event])


# =============================================================================
# Credit Notes
# =============================================================================

@transaction.atomic
def create_credit_note(
    actor: ActorContext,
    customer_public_id,
    reason: str,
    lines=None,
    note_date=None,
    invoice_public_id=None,
    reference: str = "",
) -> CommandResult:
    """
    Create a DRAFT credit note.

    Lines post to the Sales Returns account unless they name an account.
    A linked invoice must belong to the same customer.
    """
    require(actor, "credit_notes.manage")

    customer = Customer.objects.filter(company=actor.company, public_id=customer_public_id).first()
    if customer is None:
        return CommandResult.fail("Customer not found.")
    if not reason:
        return CommandResult.fail("A credit note needs a reason.")

    invoice = None
    if invoice_public_id:
        invoice = Invoice.objects.filter(company=actor.company, public_id=invoice_public_id).first()
        if invoice is None:
            return CommandResult.fail("Invoice not found.")
        if invoice.customer_id != customer.id:
            return CommandResult.fail("Credit note and invoice belong to different customers.")
        if invoice.status in (Invoice.Status.DRAFT, Invoice.Status.VOID):
            return CommandResult.fail(f"Cannot credit a {invoice.status.lower()} invoice.")
        allowed, why = can_change_trade_document(invoice)
        if not allowed:
            return CommandResult.fail(why)

    try:
        note_date = as_date(note_date)
        line_data = build_document_lines(
            actor.company,
            lines,
            default_role="sales_returns",
            price_field="unit_price",
        )
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if not line_data:
        return CommandResult.fail("A credit note needs at least one line.")

    subtotal, tax_amount, total = compute_totals(line_data)
    note_public_id = uuid.uuid4()
    number = _next_document_number(actor.company, "CN")

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CREDIT_NOTE_CREATED,
        aggregate_type="CreditNote",
        aggregate_id=str(note_public_id),
        idempotency_key=f"credit_note.created:{note_public_id}",
        data=NoteCreatedData(
            note_public_id=str(note_public_id),
            note_number=number,
            party_public_id=str(customer.public_id),
            note_date=note_date.isoformat(),
            reason=reason,
            currency=actor.company.default_currency,
            subtotal=str(subtotal),
            tax_amount=str(tax_amount),
            total=str(total),
            lines=line_data,
            document_public_id=str(invoice.public_id) if invoice else None,
            reference=reference,
            is_intercompany=customer.is_intercompany,
        ).to_dict(),
    )

    _process_projections(actor.company, force=True)
    note = CreditNote.objects.filter(company=actor.company, public_id=note_public_id).first()
    return CommandResult.ok(note, event=event)


def _emit_credit_application(actor, note, invoice, amount, note_applied_before, note_total):
    """credit_note.applied with the note's and the invoice's totals after applying."""
    note_applied = note_applied_before + amount
    amount_credited = invoice.amount_credited + amount
    balance_due = invoice.balance_due - amount
    applied_at = timezone.now()
    return emit_event(
        actor=actor,
        event_type=EventTypes.CREDIT_NOTE_APPLIED,
        aggregate_type="CreditNote",
        aggregate_id=str(note.public_id),
        idempotency_key=f"credit_note.applied:{note.public_id}:{invoice.public_id}:{note_applied}",
        data=NoteAppliedData(
            note_public_id=str(note.public_id),
            document_public_id=str(invoice.public_id),
            amount=str(amount),
            applied_at=applied_at.isoformat(),
            note_amount_applied=str(note_applied),
            note_status=note_status(note_total, note_applied),
            document_amount_credited=str(amount_credited),
            document_balance_due=str(balance_due),
            document_status=document_status(balance_due, invoice.amount_paid, amount_credited),
        ).to_dict(),
    )


@transaction.atomic
def issue_credit_note(actor: ActorContext, note_public_id) -> CommandResult:
    """
    Issue a DRAFT credit note: post Dr Sales Returns + Dr Tax Payable /
    Cr Receivable. A note linked to an open invoice is applied to it for
    min(total, balance due).
    """
    require(actor, "credit_notes.manage")

    note = _locked(CreditNote, actor.company, note_public_id)
    if note is None:
        return CommandResult.fail("Credit note not found.")

    allowed, reason = can_issue_credit_note(note)
    if not allowed:
        return CommandResult.fail(reason)

    invoice = _locked(Invoice, actor.company, note.invoice.public_id) if note.invoice_id else None

    memo = f"Credit note {note.number} - {note.reason}"
    try:
        posted = post_document_entry(
            actor,
            date=note.note_date,
            memo=memo,
            lines=[
                *[(line.account, line.line_total, 0, line.description) for line in note.lines.select_related("account")],
                ("tax_payable", note.tax_amount, 0, f"Sales tax {note.number}"),
                (_receivable_role(note), 0, note.total, memo),
            ],
            source_module="sales",
            source_document=note.number,
            idempotency_key=f"credit_note.posting:{note.public_id}",
        )
    except PostingError as exc:
        return CommandResult.fail(str(exc))

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CREDIT_NOTE_ISSUED,
        aggregate_type="CreditNote",
        aggregate_id=str(note.public_id),
        idempotency_key=f"credit_note.issued:{note.public_id}",
        data=NoteIssuedData(
            note_public_id=str(note.public_id),
            note_number=note.number,
            journal_entry_public_id=posted.public_id,
            issued_at=timezone.now().isoformat(),
        ).to_dict(),
    )
    events = [posted.event, event]

    if invoice is not None and invoice.status in Invoice.OPEN_STATUSES:
        amount = min(note.total, invoice.balance_due)
        if amount > 0:
            events.append(_emit_credit_application(actor, note, invoice, amount, ZERO, note.total))

    _process_projections(actor.company, force=True)
    note.refresh_from_db()
    logger.info("Credit note %s issued in %s (%s)", note.number, actor.company.name, note.total)
    return CommandResult.ok(note, event=event, events=events)


@transaction.atomic
def apply_credit_note(
    actor: ActorContext,
    note_public_id,
    invoice_public_id,
    amount=None,
    via_intercompany: bool = False,
) -> CommandResult:
    """
    Apply issued credit to an open invoice of the same customer.

    No ledger amounts move: the receivable was already credited at issue.
    ``amount`` defaults to min(unapplied credit, invoice balance due).
    """
    require(actor, "credit_notes.manage")

    note = _locked(CreditNote, actor.company, note_public_id)
    if note is None:
        return CommandResult.fail("Credit note not found.")
    invoice = _locked(Invoice, actor.company, invoice_public_id)
    if invoice is None:
        return CommandResult.fail("Invoice not found.")

    try:
        amount = _to_decimal(amount) if amount not in (None, "") else min(note.unapplied_amount, invoice.balance_due)
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    allowed, reason = can_apply_credit_note(note, invoice, amount, via_intercompany)
    if not allowed:
        return CommandResult.fail(reason)

    event = _emit_credit_application(actor, note, invoice, amount, note.amount_applied, note.total)
    _process_projections(actor.company, force=True)
    note.refresh_from_db()
    return CommandResult.ok(note, event=event)


@transaction.atomic
def cancel_credit_note(actor: ActorContext, note_public_id) -> CommandResult:
    """Cancel a DRAFT note, or an ISSUED one with nothing applied (reversal entry)."""
    require(actor, "credit_notes.manage")

    note = _locked(CreditNote, actor.company, note_public_id)
    if note is None:
        return CommandResult.fail("Credit note not found.")

    allowed, reason = can_cancel_credit_note(note)
    if not allowed:
        return CommandResult.fail(reason)

    events = []
    reversal_id = None
    if note.status == CreditNote.Status.ISSUED and note.journal_entry_public_id:
        try:
            reversal = reverse_document_entry(
                actor,
                entry_public_id=note.journal_entry_public_id,
                memo=f"Cancel credit note {note.number}",
                source_module="sales",
                source_document=note.number,
            )
        except PostingError as exc:
            return CommandResult.fail(str(exc))
        reversal_id = reversal.public_id
        events.append(reversal.event)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.CREDIT_NOTE_CANCELLED,
        aggregate_type="CreditNote",
        aggregate_id=str(note.public_id),
        idempotency_key=f"credit_note.cancelled:{note.public_id}",
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
