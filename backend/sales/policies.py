# sales/policies.py
"""
Business policy functions for the sales sub-ledger.

Same contract as accounting/policies.py: every can_* returns
(allowed, reason) and never changes state.
"""

from decimal import Decimal

from accounting.policies import can_change_trade_document
from .models import CreditNote, Invoice, SalesOrder


# =============================================================================
# Sales Orders
# =============================================================================

def can_confirm_order(order) -> tuple[bool, str]:
    if order.status != SalesOrder.Status.DRAFT:
        return False, f"Only draft orders can be confirmed (order is {order.status})."
    return True, ""


def can_cancel_order(order) -> tuple[bool, str]:
    if order.status in (SalesOrder.Status.CANCELLED, SalesOrder.Status.CLOSED):
        return False, f"Order is already {order.status.lower()}."
    if any(line.invoiced_quantity > 0 for line in order.lines.all()):
        return False, "Cannot cancel an order with invoiced quantities."
    return True, ""


def can_close_order(order) -> tuple[bool, str]:
    if order.status not in (SalesOrder.Status.OPEN, SalesOrder.Status.PARTIAL, SalesOrder.Status.INVOICED):
        return False, f"Cannot close an order in status {order.status}."
    return True, ""


def can_invoice_order(order) -> tuple[bool, str]:
    if order.status not in SalesOrder.INVOICEABLE_STATUSES:
        return False, f"Order {order.number} is not open for invoicing ({order.status})."
    return True, ""


def order_status_for_quantities(order_lines, quantities: dict) -> str:
    """
    Status implied by per-line invoiced quantities.

    ``quantities`` maps line_no -> invoiced quantity after the change.
    """
    if all(quantities.get(line.line_no, Decimal("0")) <= 0 for line in order_lines):
        return SalesOrder.Status.OPEN
    if all(quantities.get(line.line_no, Decimal("0")) >= line.quantity for line in order_lines):
        return SalesOrder.Status.INVOICED
    return SalesOrder.Status.PARTIAL


# =============================================================================
# Invoices
# =============================================================================

def can_issue_invoice(invoice) -> tuple[bool, str]:
    if invoice.status != Invoice.Status.DRAFT:
        return False, f"Only draft invoices can be issued (invoice is {invoice.status})."
    if invoice.total <= 0:
        return False, "Invoice total must be greater than zero."
    if not invoice.lines.exists():
        return False, "Invoice has no lines."
    return True, ""


def can_void_invoice(invoice) -> tuple[bool, str]:
    if invoice.status == Invoice.Status.VOID:
        return False, "Invoice is already void."
    allowed, reason = can_change_trade_document(invoice)
    if not allowed:
        return False, reason
    if invoice.status == Invoice.Status.DRAFT:
        return True, ""
    if invoice.status != Invoice.Status.OPEN:
        return False, f"Only open invoices can be voided (invoice is {invoice.status})."
    if invoice.amount_paid > 0 or invoice.receipts.filter(status="POSTED").exists():
        return False, "Cannot void an invoice with receipts. Void the receipts first."
    if invoice.amount_credited > 0:
        return False, "Cannot void an invoice with applied credit notes."
    return True, ""


# =============================================================================
# Receipts
# =============================================================================

def can_record_receipt(invoice, amount: Decimal, via_intercompany: bool = False) -> tuple[bool, str]:
    allowed, reason = can_change_trade_document(invoice, via_intercompany)
    if not allowed:
        return False, reason
    if invoice.status not in Invoice.OPEN_STATUSES:
        return False, f"Invoice {invoice.number} is not open for payment ({invoice.status})."
    if amount <= 0:
        return False, "Receipt amount must be greater than zero."
    if amount > invoice.balance_due:
        return False, (
            f"Receipt amount {amount} exceeds invoice balance due {invoice.balance_due}."
        )
    return True, ""


def can_void_receipt(receipt) -> tuple[bool, str]:
    if receipt.status != receipt.Status.POSTED:
        return False, "Receipt is already void."
    allowed, reason = can_change_trade_document(receipt.invoice)
    if not allowed:
        return False, reason
    if receipt.invoice.status == Invoice.Status.VOID:
        return False, "The invoice of this receipt is void."
    return True, ""


# =============================================================================
# Credit Notes
# =============================================================================

def can_issue_credit_note(note) -> tuple[bool, str]:
    if note.status != CreditNote.Status.DRAFT:
        return False, f"Only draft credit notes can be issued (note is {note.status})."
    if note.total <= 0:
        return False, "Credit note total must be greater than zero."
    return True, ""


def can_apply_credit_note(note, invoice, amount: Decimal, via_intercompany: bool = False) -> tuple[bool, str]:
    allowed, reason = can_change_trade_document(invoice, via_intercompany)
    if not allowed:
        return False, reason
    if note.status not in CreditNote.APPLICABLE_STATUSES:
        return False, f"Credit note {note.number} cannot be applied ({note.status})."
    if invoice.status not in Invoice.OPEN_STATUSES:
        return False, f"Invoice {invoice.number} is not open ({invoice.status})."
    if invoice.customer_id != note.customer_id:
        return False, "Credit note and invoice belong to different customers."
    if amount <= 0:
        return False, "Amount to apply must be greater than zero."
    if amount > note.unapplied_amount:
        return False, f"Amount {amount} exceeds the unapplied credit {note.unapplied_amount}."
    if amount > invoice.balance_due:
        return False, f"Amount {amount} exceeds invoice balance due {invoice.balance_due}."
    return True, ""


def can_cancel_credit_note(note) -> tuple[bool, str]:
    if note.status == CreditNote.Status.DRAFT:
        return True, ""
    if note.status != CreditNote.Status.ISSUED:
        return False, f"Cannot cancel a credit note in status {note.status}."
    if note.amount_applied > 0:
        return False, "Cannot cancel a credit note that has been applied."
    return True, ""

