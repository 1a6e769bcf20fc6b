# purchases/policies.py
"""
Business policy functions for the purchases sub-ledger.

Mirror of sales/policies.py: every can_* returns (allowed, reason).
"""

from decimal import Decimal

from accounting.policies import can_change_trade_document
from .models import Bill, DebitNote, PurchaseOrder


# =============================================================================
# Purchase Orders
# =============================================================================

def can_confirm_order(order) -> tuple[bool, str]:
    if order.status != PurchaseOrder.Status.DRAFT:
        return False, f"Only draft orders can be confirmed (order is {order.status})."
    return True, ""


def can_cancel_order(order) -> tuple[bool, str]:
    if order.status in (PurchaseOrder.Status.CANCELLED, PurchaseOrder.Status.CLOSED):
        return False, f"Order is already {order.status.lower()}."
    if any(line.billed_quantity > 0 for line in order.lines.all()):
        return False, "Cannot cancel an order with billed quantities."
    return True, ""


def can_close_order(order) -> tuple[bool, str]:
    if order.status not in (PurchaseOrder.Status.OPEN, PurchaseOrder.Status.PARTIAL, PurchaseOrder.Status.BILLED):
        return False, f"Cannot close an order in status {order.status}."
    return True, ""


def can_bill_order(order) -> tuple[bool, str]:
    if order.status not in PurchaseOrder.BILLABLE_STATUSES:
        return False, f"Order {order.number} is not open for billing ({order.status})."
    return True, ""


def order_status_for_quantities(order_lines, quantities: dict) -> str:
    """Status implied by per-line billed quantities (line_no -> quantity)."""
    if all(quantities.get(line.line_no, Decimal("0")) <= 0 for line in order_lines):
        return PurchaseOrder.Status.OPEN
    if all(quantities.get(line.line_no, Decimal("0")) >= line.quantity for line in order_lines):
        return PurchaseOrder.Status.BILLED
    return PurchaseOrder.Status.PARTIAL


# =============================================================================
# Bills
# =============================================================================

def can_post_bill(bill) -> tuple[bool, str]:
    if bill.status != Bill.Status.DRAFT:
        return False, f"Only draft bills can be posted (bill is {bill.status})."
    if bill.total <= 0:
        return False, "Bill total must be greater than zero."
    if not bill.lines.exists():
        return False, "Bill has no lines."
    return True, ""


def is_duplicate_vendor_invoice(company, vendor, vendor_invoice_number: str) -> bool:
    """A vendor's invoice number may only be booked once (void bills excepted)."""
    if not vendor_invoice_number:
        return False
    return Bill.objects.filter(
        company=company,
        vendor=vendor,
        vendor_invoice_number=vendor_invoice_number,
    ).exclude(status=Bill.Status.VOID).exists()


def can_void_bill(bill) -> tuple[bool, str]:
    if bill.status == Bill.Status.VOID:
        return False, "Bill is already void."
    allowed, reason = can_change_trade_document(bill)
    if not allowed:
        return False, reason
    if bill.status == Bill.Status.DRAFT:
        return True, ""
    if bill.status != Bill.Status.OPEN:
        return False, f"Only open bills can be voided (bill is {bill.status})."
    if bill.amount_paid > 0 or bill.payments.filter(status="POSTED").exists():
        return False, "Cannot void a bill with payments. Void the payments first."
    if bill.amount_credited > 0:
        return False, "Cannot void a bill with applied debit notes."
    return True, ""


# =============================================================================
# Payments
# =============================================================================

def can_record_payment(bill, amount: Decimal, via_intercompany: bool = False) -> tuple[bool, str]:
    allowed, reason = can_change_trade_document(bill, via_intercompany)
    if not allowed:
        return False, reason
    if bill.status not in Bill.OPEN_STATUSES:
        return False, f"Bill {bill.number} is not open for payment ({bill.status})."
    if amount <= 0:
        return False, "Payment amount must be greater than zero."
    if amount > bill.balance_due:
        return False, f"Payment amount {amount} exceeds bill balance due {bill.balance_due}."
    return True, ""


def can_void_payment(payment) -> tuple[bool, str]:
    if payment.status != payment.Status.POSTED:
        return False, "Payment is already void."
    allowed, reason = can_change_trade_document(payment.bill)
    if not allowed:
        return False, reason
    if payment.bill.status == Bill.Status.VOID:
        return False, "The bill of this payment is void."
    return True, ""


# =============================================================================
# Debit Notes
# =============================================================================

def can_issue_debit_note(note) -> tuple[bool, str]:
    if note.status != DebitNote.Status.DRAFT:
        return False, f"Only draft debit notes can be issued (note is {note.status})."
    if note.total <= 0:
        return False, "Debit note total must be greater than zero."
    return True, ""


def can_apply_debit_note(note, bill, amount: Decimal, via_intercompany: bool = False) -> tuple[bool, str]:
    allowed, reason = can_change_trade_document(bill, via_intercompany)
    if not allowed:
        return False, reason
    if note.status not in DebitNote.APPLICABLE_STATUSES:
        return False, f"Debit note {note.number} cannot be applied ({note.status})."
    if bill.status not in Bill.OPEN_STATUSES:
        return False, f"Bill {bill.number} is not open ({bill.status})."
    if bill.vendor_id != note.vendor_id:
        return False, "Debit note and bill belong to different vendors."
    if amount <= 0:
        return False, "Amount to apply must be greater than zero."
    if amount > note.unapplied_amount:
        return False, f"Amount {amount} exceeds the unapplied debit {note.unapplied_amount}."
    if amount > bill.balance_due:
        return False, f"Amount {amount} exceeds bill balance due {bill.balance_due}."
    return True, ""


def can_cancel_debit_note(note) -> tuple[bool, str]:
    if note.status == DebitNote.Status.DRAFT:
        return True, ""
    if note.status != DebitNote.Status.ISSUED:
        return False, f"Cannot cancel a debit note in status {note.status}."
    if note.amount_applied > 0:
        return False, "Cannot cancel a debit note that has been applied."
    return True, ""
