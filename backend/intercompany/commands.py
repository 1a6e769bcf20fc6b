# intercompany/commands.py
"""
Commands that act on two companies' books at once.

Each intercompany command drives the ordinary sales command in the source
company and the purchases command in the target company, then records the
intercompany event in the source company's stream:

    create_intercompany_order       SO (source) + PO (target)
    invoice_intercompany_transaction invoice (source) + bill (target)
    settle_intercompany_transaction  payment (target) + receipt (source)
    cancel_intercompany_transaction  cancel SO + PO
    create_intercompany_adjustment   credit note (source) + debit note (target)

The whole command runs in one database transaction: if any step fails
nothing is kept on either side.
"""

import logging
import uuid

from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, actor_for_company, require
from accounts.models import Company
from accounting.commands import (
    CommandResult,
    _next_company_sequence,
    _process_projections,
    _to_decimal,
)
from accounting.policies import PolicyViolation, can_trade_intercompany
from accounting.posting import PostingError
from accounting.trade import PaymentMethod, as_date
from events.emitter import emit_event
from events.types import (
    EventTypes,
    IntercompanyAdjustmentRecordedData,
    IntercompanyTransactionCancelledData,
    IntercompanyTransactionCreatedData,
    IntercompanyTransactionInvoicedData,
    IntercompanyTransactionSettledData,
)
from purchases import commands as purchases
from purchases.models import Bill, Vendor
from sales import commands as sales
from sales.models import Customer, Invoice
from .models import IntercompanyAdjustment, IntercompanyTransaction
from .policies import (
    can_adjust_transaction,
    can_cancel_transaction,
    can_invoice_transaction,
    can_settle_transaction,
    transaction_status,
)


logger = logging.getLogger(__name__)


def _check(result: CommandResult):
    """Unwrap a sub-command result, turning a failure into PolicyViolation."""
    if not result.success:
        raise PolicyViolation(result.error)
    return result.data


def _company(public_id):
    return Company.objects.filter(public_id=public_id).first() if public_id else None


def _actors(actor: ActorContext, source: Company, target: Company) -> tuple[ActorContext, ActorContext]:
    """
    ActorContexts for both companies, each holding intercompany.manage.

    Raises:
        PermissionDenied: missing membership or permission in either company
    """
    src_actor = actor if actor.company.id == source.id else actor_for_company(actor.user, source)
    tgt_actor = actor if actor.company.id == target.id else actor_for_company(actor.user, target)
    require(src_actor, "intercompany.manage")
    require(tgt_actor, "intercompany.manage")
    return src_actor, tgt_actor


def _party_code(company: Company) -> str:
    return f"IC{company.id:04d}"


def _ensure_customer(src_actor: ActorContext, target: Company) -> Customer:
    """The source company's customer standing for the target company."""
    customer = Customer.objects.filter(company=src_actor.company, related_company=target).first()
    if customer is not None:
        return customer
    return _check(sales.create_customer(
        src_actor,
        code=_party_code(target),
        name=target.name,
        related_company_public_id=str(target.public_id),
    ))


def _ensure_vendor(tgt_actor: ActorContext, source: Company) -> Vendor:
    """The target company's vendor standing for the source company."""
    vendor = Vendor.objects.filter(company=tgt_actor.company, related_company=source).first()
    if vendor is not None:
        return vendor
    return _check(purchases.create_vendor(
        tgt_actor,
        code=_party_code(source),
        name=source.name,
        related_company_public_id=str(source.public_id),
    ))


def _locked_transaction(actor: ActorContext, transaction_public_id):
    """
    The transaction with the caller's company on either side.
    """
    txn = (
        IntercompanyTransaction.objects.select_for_update()
        .filter(public_id=transaction_public_id, tenant=actor.company.tenant)
        .select_related("source_company", "target_company")
        .first()
    )
    if txn is None or actor.company.id not in (txn.source_company_id, txn.target_company_id):
        return None
    return txn


def _mirrored_items(document_lines) -> list[dict]:
    """Input lines for the other company: same amounts, no local product or account."""
    return [
        {
            "description": line.description,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "tax_rate": line.tax_rate,
        }
        for line in document_lines
    ]


def _open_pairs(txn):
    """
    (invoice, bill) pairs of a transaction still carrying a balance, oldest first.

    A bill belongs to the invoice whose number it carries as the vendor
    invoice number.
    """
    invoices = (
        Invoice.objects.select_for_update()
        .filter(
            company=txn.source_company,
            intercompany_transaction_public_id=txn.public_id,
            status__in=Invoice.OPEN_STATUSES,
        )
        .order_by("document_date", "id")
    )
    pairs = []
    for invoice in invoices:
        bill = (
            Bill.objects.select_for_update()
            .filter(
                company=txn.target_company,
                intercompany_transaction_public_id=txn.public_id,
                vendor_invoice_number=invoice.number,
                status__in=Bill.OPEN_STATUSES,
            )
            .first()
        )
        if bill is not None:
            pairs.append((invoice, bill))
    return pairs


# =============================================================================
# Transactions
# =============================================================================

@transaction.atomic
def create_intercompany_order(
    actor: ActorContext,
    target_company_public_id,
    items,
    transaction_date=None,
    description: str = "",
) -> CommandResult:
    """
    Sell from the actor's company to another company of the same tenant.

    Creates an OPEN sales order in the source company and the mirrored
    OPEN purchase order in the target company, provisioning the
    intercompany customer and vendor on first use.

    Items: [{"product_public_id"?, "description", "quantity", "unit_price"?, "tax_rate"?}]
    """
    source = actor.company
    target = _company(target_company_public_id)
    if target is None:
        return CommandResult.fail("Target company not found.")

    allowed, reason = can_trade_intercompany(source, target)
    if not allowed:
        return CommandResult.fail(reason)
    src_actor, tgt_actor = _actors(actor, source, target)

    if not items:
        return CommandResult.fail("An intercompany order needs at least one item.")

    txn_public_id = uuid.uuid4()
    try:
        txn_date = as_date(transaction_date)
        with transaction.atomic():
            customer = _ensure_customer(src_actor, target)
            vendor = _ensure_vendor(tgt_actor, source)

            order = _check(sales.create_sales_order(
                src_actor,
                customer_public_id=customer.public_id,
                order_date=txn_date,
                lines=items,
                notes=description,
                confirm=True,
                intercompany_transaction_public_id=txn_public_id,
            ))
            purchase_order = _check(purchases.create_purchase_order(
                tgt_actor,
                vendor_public_id=vendor.public_id,
                order_date=txn_date,
                lines=_mirrored_items(order.lines.order_by("line_no")),
                reference=order.number,
                notes=description,
                confirm=True,
                intercompany_transaction_public_id=txn_public_id,
            ))
            if purchase_order.total != order.total:
                raise PolicyViolation("Purchase order total does not match the sales order total.")

            seq = _next_company_sequence(source, f"intercompany_{target.id}")
            reference = f"IC-{source.id}-{target.id}-{seq:06d}"
            event = emit_event(
                actor=src_actor,
                event_type=EventTypes.INTERCOMPANY_TRANSACTION_CREATED,
                aggregate_type="IntercompanyTransaction",
                aggregate_id=str(txn_public_id),
                idempotency_key=f"intercompany_transaction.created:{txn_public_id}",
                data=IntercompanyTransactionCreatedData(
                    transaction_public_id=str(txn_public_id),
                    reference=reference,
                    source_company_public_id=str(source.public_id),
                    target_company_public_id=str(target.public_id),
                    transaction_date=txn_date.isoformat(),
                    amount=str(order.total),
                    sales_order_public_id=str(order.public_id),
                    purchase_order_public_id=str(purchase_order.public_id),
                    description=description,
                ).to_dict(),
            )
    except (PostingError, PolicyViolation) as exc:
        return CommandResult.fail(str(exc))

    _process_projections(source, force=True)
    txn = IntercompanyTransaction.objects.filter(public_id=txn_public_id).first()
    logger.info("Intercompany transaction %s created: %s -> %s (%s)", reference, source.name, target.name, txn.amount)
    return CommandResult.ok(txn, event=event)


@transaction.atomic
def invoice_intercompany_transaction(
    actor: ActorContext,
    transaction_public_id,
    quantities=None,
    invoice_date=None,
) -> CommandResult:
    """
    Invoice (part of) an intercompany order.

    Issues an invoice from the sales order in the source company
    (Dr IC Receivable / Cr Revenue) and posts the matching bill from the
    purchase order in the target company (Dr Inventory / Cr IC Payable).
    ``quantities`` maps order line_no -> quantity; omitted means all that
    remains. Order line numbers are the same on both sides.
    """
    txn = _locked_transaction(actor, transaction_public_id)
    if txn is None:
        return CommandResult.fail("Intercompany transaction not found.")
    src_actor, tgt_actor = _actors(actor, txn.source_company, txn.target_company)

    allowed, reason = can_invoice_transaction(txn)
    if not allowed:
        return CommandResult.fail(reason)

    try:
        invoice_date = as_date(invoice_date)
        with transaction.atomic():
            invoice = _check(sales.create_invoice(
                src_actor,
                sales_order_public_id=txn.sales_order_public_id,
                quantities=quantities,
                invoice_date=invoice_date,
                reference=txn.reference,
                intercompany_transaction_public_id=txn.public_id,
            ))
            invoice = _check(sales.issue_invoice(src_actor, invoice.public_id))

            bill = _check(purchases.create_bill(
                tgt_actor,
                purchase_order_public_id=txn.purchase_order_public_id,
                quantities=quantities,
                bill_date=invoice_date,
                due_date=invoice.due_date,
                vendor_invoice_number=invoice.number,
                reference=txn.reference,
                intercompany_transaction_public_id=txn.public_id,
            ))
            bill = _check(purchases.post_bill(tgt_actor, bill.public_id))

            if bill.total != invoice.total:
                raise PolicyViolation(
                    f"Bill total {bill.total} does not match invoice total {invoice.total}."
                )

            event = emit_event(
                actor=src_actor,
                event_type=EventTypes.INTERCOMPANY_TRANSACTION_INVOICED,
                aggregate_type="IntercompanyTransaction",
                aggregate_id=str(txn.public_id),
                idempotency_key=f"intercompany_transaction.invoiced:{invoice.public_id}",
                data=IntercompanyTransactionInvoicedData(
                    transaction_public_id=str(txn.public_id),
                    invoice_public_id=str(invoice.public_id),
                    bill_public_id=str(bill.public_id),
                    amount=str(invoice.total),
                ).to_dict(),
            )
    except (PostingError, PolicyViolation) as exc:
        return CommandResult.fail(str(exc))

    _process_projections(txn.source_company, force=True)
    txn.refresh_from_db()
    logger.info("Intercompany transaction %s invoiced: %s / %s", txn.reference, invoice.number, bill.number)
    return CommandResult.ok(txn, event=event)


@transaction.atomic
def settle_intercompany_transaction(
    actor: ActorContext,
    transaction_public_id,
    amount,
    payment_method: str = PaymentMethod.BANK_TRANSFER,
    reference: str = "",
    settlement_date=None,
) -> CommandResult:
    """
    Settle invoiced intercompany balance.

    The target company pays its bill and the source company receives the
    same amount against the invoice. The amount is spread over the open
    invoice/bill pairs oldest first; one settled event is recorded per pair.
    """
    txn = _locked_transaction(actor, transaction_public_id)
    if txn is None:
        return CommandResult.fail("Intercompany transaction not found.")
    src_actor, tgt_actor = _actors(actor, txn.source_company, txn.target_company)

    try:
        amount = _to_decimal(amount)
        settlement_date = as_date(settlement_date)
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))

    allowed, reason = can_settle_transaction(txn, amount)
    if not allowed:
        return CommandResult.fail(reason)

    events = []
    amount_settled = txn.amount_settled
    remaining = amount
    try:
        with transaction.atomic():
            for invoice, bill in _open_pairs(txn):
                if remaining <= 0:
                    break
                part = min(remaining, invoice.balance_due, bill.balance_due)
                if part <= 0:
                    continue

                payment = _check(purchases.record_payment(
                    tgt_actor,
                    bill_public_id=bill.public_id,
                    amount=part,
                    payment_date=settlement_date,
                    payment_method=payment_method,
                    reference=reference or txn.reference,
                    via_intercompany=True,
                ))
                receipt = _check(sales.record_receipt(
                    src_actor,
                    invoice_public_id=invoice.public_id,
                    amount=part,
                    receipt_date=settlement_date,
                    payment_method=payment_method,
                    reference=reference or txn.reference,
                    via_intercompany=True,
                ))

                amount_settled += part
                remaining -= part
                status, payment_status = transaction_status(
                    txn.amount, txn.amount_invoiced, amount_settled, txn.amount_adjusted,
                )
                events.append(emit_event(
                    actor=src_actor,
                    event_type=EventTypes.INTERCOMPANY_TRANSACTION_SETTLED,
                    aggregate_type="IntercompanyTransaction",
                    aggregate_id=str(txn.public_id),
                    idempotency_key=f"intercompany_transaction.settled:{receipt.public_id}",
                    data=IntercompanyTransactionSettledData(
                        transaction_public_id=str(txn.public_id),
                        receipt_public_id=str(receipt.public_id),
                        payment_public_id=str(payment.public_id),
                        amount=str(part),
                        amount_settled=str(amount_settled),
                        payment_status=payment_status,
                        status=status,
                    ).to_dict(),
                ))

            if remaining > 0:
                raise PolicyViolation(
                    f"Invoice and bill balances of {txn.reference} do not cover {amount}."
                )
    except (PostingError, PolicyViolation) as exc:
        return CommandResult.fail(str(exc))

    _process_projections(txn.source_company, force=True)
    txn.refresh_from_db()
    logger.info("Intercompany transaction %s settled %s (%s)", txn.reference, amount, txn.payment_status)
    return CommandResult.ok(txn, event=events[-1], events=events)


@transaction.atomic
def cancel_intercompany_transaction(actor: ActorContext, transaction_public_id, reason: str = "") -> CommandResult:
    """Cancel both orders of a transaction nothing has been invoiced against."""
    txn = _locked_transaction(actor, transaction_public_id)
    if txn is None:
        return CommandResult.fail("Intercompany transaction not found.")
    src_actor, tgt_actor = _actors(actor, txn.source_company, txn.target_company)

    allowed, reason_text = can_cancel_transaction(txn)
    if not allowed:
        return CommandResult.fail(reason_text)

    try:
        with transaction.atomic():
            _check(sales.cancel_sales_order(src_actor, txn.sales_order_public_id))
            _check(purchases.cancel_purchase_order(tgt_actor, txn.purchase_order_public_id))
            event = emit_event(
                actor=src_actor,
                event_type=EventTypes.INTERCOMPANY_TRANSACTION_CANCELLED,
                aggregate_type="IntercompanyTransaction",
                aggregate_id=str(txn.public_id),
                idempotency_key=f"intercompany_transaction.cancelled:{txn.public_id}",
                data=IntercompanyTransactionCancelledData(
                    transaction_public_id=str(txn.public_id),
                    cancelled_at=timezone.now().isoformat(),
                    reason=reason,
                ).to_dict(),
            )
    except (PostingError, PolicyViolation) as exc:
        return CommandResult.fail(str(exc))

    _process_projections(txn.source_company, force=True)
    txn.refresh_from_db()
    logger.info("Intercompany transaction %s cancelled", txn.reference)
    return CommandResult.ok(txn, event=event)


# =============================================================================
# Adjustments
# =============================================================================

@transaction.atomic
def create_intercompany_adjustment(
    actor: ActorContext,
    target_company_public_id,
    amount,
    reason: str,
    reference: str = "",
    transaction_public_id=None,
    items=None,
    adjustment_date=None,
    source_company_public_id=None,
) -> CommandResult:
    """
    Adjust intercompany balances symmetrically.

    Issues a credit note in the source company (customer = target) and
    the mirroring debit note in the target company (vendor = source).
    Given a transaction, both notes are applied to its open invoice and
    bill pairs for the same amounts.

    ``items`` default to a single line for ``amount``; when given, their
    total must equal ``amount``. The source company defaults to the
    actor's company.
    """
    source = _company(source_company_public_id) if source_company_public_id else actor.company
    target = _company(target_company_public_id)
    if source is None:
        return CommandResult.fail("Source company not found.")
    if target is None:
        return CommandResult.fail("Target company not found.")

    allowed, reason_text = can_trade_intercompany(source, target)
    if not allowed:
        return CommandResult.fail(reason_text)
    src_actor, tgt_actor = _actors(actor, source, target)

    if not reason:
        return CommandResult.fail("An intercompany adjustment needs a reason.")
    try:
        amount = _to_decimal(amount)
        adjustment_date = as_date(adjustment_date)
    except PolicyViolation as exc:
        return CommandResult.fail(str(exc))
    if amount <= 0:
        return CommandResult.fail("Adjustment amount must be greater than zero.")

    txn = None
    if transaction_public_id:
        txn = _locked_transaction(src_actor, transaction_public_id)
        if txn is None or txn.source_company_id != source.id or txn.target_company_id != target.id:
            return CommandResult.fail("Intercompany transaction not found.")
        allowed, reason_text = can_adjust_transaction(txn, amount)
        if not allowed:
            return CommandResult.fail(reason_text)

    if reference:
        if IntercompanyAdjustment.objects.filter(tenant=source.tenant, reference=reference).exists():
            return CommandResult.fail(f"Adjustment reference '{reference}' already exists.")

    lines = items or [{"description": reason, "quantity": "1", "unit_price": str(amount)}]
    adjustment_public_id = uuid.uuid4()
    transaction_amount_adjusted = None
    try:
        with transaction.atomic():
            if not reference:
                seq = _next_company_sequence(source, f"intercompany_adj_{target.id}")
                reference = f"IC-ADJ-{source.id}-{target.id}-{seq:06d}"

            customer = _ensure_customer(src_actor, target)
            vendor = _ensure_vendor(tgt_actor, source)

            credit_note = _check(sales.create_credit_note(
                src_actor,
                customer_public_id=customer.public_id,
                reason=f"Intercompany Adjustment: {reason}",
                lines=lines,
                note_date=adjustment_date,
                reference=reference,
            ))
            if credit_note.total != amount:
                raise PolicyViolation(
                    f"Adjustment items total {credit_note.total} does not match amount {amount}."
                )
            debit_note = _check(purchases.create_debit_note(
                tgt_actor,
                vendor_public_id=vendor.public_id,
                reason=f"Intercompany Adjustment: {reason}",
                lines=_mirrored_items(credit_note.lines.order_by("line_no")),
                note_date=adjustment_date,
                reference=reference,
            ))
            if debit_note.total != credit_note.total:
                raise PolicyViolation("Debit note total does not match the credit note total.")

            credit_note = _check(sales.issue_credit_note(src_actor, credit_note.public_id))
            debit_note = _check(purchases.issue_debit_note(tgt_actor, debit_note.public_id))

            if txn is not None:
                remaining = amount
                for invoice, bill in _open_pairs(txn):
                    if remaining <= 0:
                        break
                    part = min(remaining, invoice.balance_due, bill.balance_due)
                    if part <= 0:
                        continue
                    _check(sales.apply_credit_note(
                        src_actor, credit_note.public_id, invoice.public_id, part, via_intercompany=True,
                    ))
                    _check(purchases.apply_debit_note(
                        tgt_actor, debit_note.public_id, bill.public_id, part, via_intercompany=True,
                    ))
                    remaining -= part
                if remaining > 0:
                    raise PolicyViolation(
                        f"Invoice and bill balances of {txn.reference} do not cover {amount}."
                    )
                transaction_amount_adjusted = txn.amount_adjusted + amount

            event = emit_event(
                actor=src_actor,
                event_type=EventTypes.INTERCOMPANY_ADJUSTMENT_RECORDED,
                aggregate_type="IntercompanyAdjustment",
                aggregate_id=str(adjustment_public_id),
                idempotency_key=f"intercompany_adjustment.recorded:{adjustment_public_id}",
                data=IntercompanyAdjustmentRecordedData(
                    adjustment_public_id=str(adjustment_public_id),
                    reference=reference,
                    source_company_public_id=str(source.public_id),
                    target_company_public_id=str(target.public_id),
                    credit_note_public_id=str(credit_note.public_id),
                    debit_note_public_id=str(debit_note.public_id),
                    amount=str(amount),
                    reason=reason,
                    adjustment_date=adjustment_date.isoformat(),
                    transaction_public_id=str(txn.public_id) if txn else None,
                    transaction_amount_adjusted=(
                        str(transaction_amount_adjusted) if transaction_amount_adjusted is not None else None
                    ),
                ).to_dict(),
            )
    except (PostingError, PolicyViolation) as exc:
        return CommandResult.fail(str(exc))

    _process_projections(source, force=True)
    adjustment = IntercompanyAdjustment.objects.filter(public_id=adjustment_public_id).first()
    logger.info("Intercompany adjustment %s recorded: %s -> %s (%s)", reference, source.name, target.name, amount)
    return CommandResult.ok(adjustment, event=event)
