# intercompany/policies.py
"""
Business policy functions for intercompany transactions.
"""

from decimal import Decimal

from .models import IntercompanyTransaction


def transaction_status(txn_amount, amount_invoiced, amount_settled, amount_adjusted) -> tuple[str, str]:
    """
    (status, payment_status) implied by a transaction's running totals.

    COMPLETED once the whole order is invoiced and nothing invoiced is
    left outstanding. Adjustments count towards clearing the balance, so a
    transaction cleared by adjustments alone is PAID.
    """
    outstanding = amount_invoiced - amount_settled - amount_adjusted
    if amount_invoiced > 0 and outstanding <= 0:
        payment_status = IntercompanyTransaction.PaymentStatus.PAID
    elif amount_settled > 0:
        payment_status = IntercompanyTransaction.PaymentStatus.PARTIAL
    else:
        payment_status = IntercompanyTransaction.PaymentStatus.UNPAID

    if amount_invoiced <= 0:
        status = IntercompanyTransaction.Status.PENDING
    elif amount_invoiced >= txn_amount and outstanding <= 0:
        status = IntercompanyTransaction.Status.COMPLETED
    else:
        status = IntercompanyTransaction.Status.INVOICED
    return status, payment_status


def can_invoice_transaction(txn) -> tuple[bool, str]:
    if txn.status == IntercompanyTransaction.Status.CANCELLED:
        return False, f"Transaction {txn.reference} is cancelled."
    if txn.uninvoiced <= 0:
        return False, f"Transaction {txn.reference} is fully invoiced."
    return True, ""


def can_settle_transaction(txn, amount: Decimal) -> tuple[bool, str]:
    if txn.status == IntercompanyTransaction.Status.CANCELLED:
        return False, f"Transaction {txn.reference} is cancelled."
    if txn.amount_invoiced <= 0:
        return False, f"Transaction {txn.reference} has not been invoiced."
    if amount <= 0:
        return False, "Settlement amount must be greater than zero."
    if amount > txn.outstanding:
        return False, f"Settlement amount {amount} exceeds the outstanding balance {txn.outstanding}."
    return True, ""


def can_cancel_transaction(txn) -> tuple[bool, str]:
    if txn.status == IntercompanyTransaction.Status.CANCELLED:
        return False, f"Transaction {txn.reference} is already cancelled."
    if txn.amount_invoiced > 0:
        return False, "Cannot cancel a transaction that has been invoiced."
    return True, ""


def can_adjust_transaction(txn, amount: Decimal) -> tuple[bool, str]:
    if txn.status == IntercompanyTransaction.Status.CANCELLED:
        return False, f"Transaction {txn.reference} is cancelled."
    if amount > txn.outstanding:
        return False, f"Adjustment amount {amount} exceeds the outstanding balance {txn.outstanding}."
    return True, ""
