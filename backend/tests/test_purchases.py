# tests/test_purchases.py
"""
Tests for the payables side: purchase orders, bills, payments and debit
notes.
"""

import pytest
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from accounting.models import JournalEntry
from purchases import commands
from purchases.models import Bill, DebitNote, Payment, PurchaseOrder
from tests.factories import balance_of, client_for, line, posted_bill


def _roles(public_id):
    entry = JournalEntry.objects.get(public_id=public_id)
    result = {}
    for jl in entry.lines.select_related("account"):
        debit, credit = result.get(jl.account.role, (Decimal("0.00"), Decimal("0.00")))
        result[jl.account.role] = (debit + jl.debit, credit + jl.credit)
    return result


def _debit_note(actor, vendor, amount="50.00", bill=None, tax_rate="0"):
    created = commands.create_debit_note(
        actor,
        vendor_public_id=vendor.public_id,
        reason="Short shipment",
        lines=[line(description="Returned units", unit_price=amount, tax_rate=tax_rate)],
        bill_public_id=bill.public_id if bill else None,
    )
    assert created.success, created.error
    return created.data


class TestBills:

    def test_post_bill_debits_expense_and_input_tax(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(quantity="3", unit_price="100.00", tax_rate="5")],
                           vendor_invoice_number="INI-1001")

        assert bill.status == Bill.Status.OPEN
        assert bill.total == Decimal("315.00")
        assert _roles(bill.journal_entry_public_id) == {
            "expense": (Decimal("300.00"), Decimal("0.00")),
            "tax_recoverable": (Decimal("15.00"), Decimal("0.00")),
            "payable": (Decimal("0.00"), Decimal("315.00")),
        }
        assert balance_of(actor.company, "payable") == Decimal("315.00")

    def test_duplicate_vendor_invoice_rejected(self, actor, vendor):
        posted_bill(actor, vendor, [line()], vendor_invoice_number="INI-77")
        again = commands.create_bill(
            actor, vendor_public_id=vendor.public_id, lines=[line()], vendor_invoice_number="INI-77",
        )
        assert not again.success
        assert "already booked" in again.error

    def test_void_bill_reverses(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(unit_price="90.00")])
        result = commands.void_bill(actor, bill.public_id, reason="Duplicate")
        assert result.success, result.error
        assert result.data.status == Bill.Status.VOID
        assert balance_of(actor.company, "payable") == Decimal("0.00")
        assert balance_of(actor.company, "expense") == Decimal("0.00")

    def test_viewer_cannot_create_bills(self, viewer_actor, vendor):
        with pytest.raises(PermissionDenied):
            commands.create_bill(viewer_actor, vendor_public_id=vendor.public_id, lines=[line()])


class TestPayments:

    def test_partial_and_full_payment(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(unit_price="500.00")])

        first = commands.record_payment(actor, bill.public_id, "125.00")
        assert first.success, first.error
        bill.refresh_from_db()
        assert bill.status == Bill.Status.PARTIAL
        assert bill.balance_due == Decimal("375.00")

        commands.record_payment(actor, bill.public_id, "375.00")
        bill.refresh_from_db()
        assert bill.status == Bill.Status.PAID
        assert balance_of(actor.company, "payable") == Decimal("0.00")
        assert balance_of(actor.company, "cash") == Decimal("-500.00")

    def test_overpayment_refused(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(unit_price="20.00")])
        assert not commands.record_payment(actor, bill.public_id, "25.00").success

    def test_void_payment(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(unit_price="20.00")])
        payment = commands.record_payment(actor, bill.public_id, "20.00").data

        result = commands.void_payment(actor, payment.public_id)
        assert result.success, result.error
        assert result.data.status == Payment.Status.VOID
        bill.refresh_from_db()
        assert bill.status == Bill.Status.OPEN


class TestDebitNotes:

    def test_issue_debits_payable_and_credits_returns(self, actor, vendor):
        note = commands.issue_debit_note(actor, _debit_note(actor, vendor, "200.00", tax_rate="5").public_id)
        assert note.success, note.error
        assert _roles(note.data.journal_entry_public_id) == {
            "payable": (Decimal("210.00"), Decimal("0.00")),
            "purchase_returns": (Decimal("0.00"), Decimal("200.00")),
            "tax_recoverable": (Decimal("0.00"), Decimal("10.00")),
        }

    def test_linked_note_applied_on_issue(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(unit_price="100.00")])
        note = commands.issue_debit_note(actor, _debit_note(actor, vendor, "40.00", bill=bill).public_id).data

        bill.refresh_from_db()
        assert note.status == DebitNote.Status.APPLIED
        assert bill.amount_credited == Decimal("40.00")
        assert bill.balance_due == Decimal("60.00")
        assert balance_of(actor.company, "payable") == Decimal("60.00")

    def test_apply_and_cancel_rules(self, actor, vendor):
        bill = posted_bill(actor, vendor, [line(unit_price="100.00")])
        note = commands.issue_debit_note(actor, _debit_note(actor, vendor, "30.00").public_id).data

        result = commands.apply_debit_note(actor, note.public_id, bill.public_id, "10.00")
        assert result.success, result.error
        assert result.data.status == DebitNote.Status.PARTIAL
        assert result.data.unapplied_amount == Decimal("20.00")

        assert not commands.cancel_debit_note(actor, note.public_id).success

    def test_cancel_unapplied_note(self, actor, vendor):
        note = commands.issue_debit_note(actor, _debit_note(actor, vendor, "30.00").public_id).data
        result = commands.cancel_debit_note(actor, note.public_id)
        assert result.success, result.error
        assert balance_of(actor.company, "payable") == Decimal("0.00")
        assert balance_of(actor.company, "purchase_returns") == Decimal("0.00")


class TestPurchaseOrders:

    def test_bill_from_order(self, actor, vendor):
        order = commands.create_purchase_order(
            actor,
            vendor_public_id=vendor.public_id,
            lines=[line(quantity="5", unit_price="8.00"), line(description="Crate", quantity="1", unit_price="12.00")],
            confirm=True,
        ).data
        assert order.status == PurchaseOrder.Status.OPEN

        bill = commands.create_bill(actor, purchase_order_public_id=order.public_id, quantities={"1": "5"}).data
        assert bill.total == Decimal("40.00")
        commands.post_bill(actor, bill.public_id)
        order.refresh_from_db()
        assert order.status == PurchaseOrder.Status.PARTIAL

        rest = commands.create_bill(actor, purchase_order_public_id=order.public_id).data
        commands.post_bill(actor, rest.public_id)
        order.refresh_from_db()
        assert order.status == PurchaseOrder.Status.BILLED

    def test_billed_order_cannot_be_cancelled(self, actor, vendor):
        order = commands.create_purchase_order(
            actor, vendor_public_id=vendor.public_id, lines=[line()], confirm=True,
        ).data
        bill = commands.create_bill(actor, purchase_order_public_id=order.public_id).data
        commands.post_bill(actor, bill.public_id)

        assert not commands.cancel_purchase_order(actor, order.public_id).success


class TestPurchaseOrderApi:

    def test_create_and_cancel(self, owner, company, vendor):
        client = client_for(owner, company)
        response = client.post("/api/purchases/purchase-orders/", {
            "vendor_public_id": str(vendor.public_id),
            "lines": [{"description": "Toner", "quantity": "2", "unit_price": "30.00"}],
            "confirm": True,
        }, format="json")
        assert response.status_code == 201, response.data
        assert response.data["status"] == PurchaseOrder.Status.OPEN

        public_id = response.data["public_id"]
        response = client.post(f"/api/purchases/purchase-orders/{public_id}/cancel/", {}, format="json")
        assert response.status_code == 200, response.data
        assert response.data["status"] == PurchaseOrder.Status.CANCELLED
        assert client.get(f"/api/purchases/purchase-orders/{public_id}/").data["status"] == "CANCELLED"
