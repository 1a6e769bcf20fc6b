# tests/test_sales.py
"""
Tests for the receivables side: sales orders, invoices, receipts and
credit notes, with the ledger entries each of them posts.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from accounting.models import JournalEntry
from events.models import BusinessEvent
from events.types import EventTypes
from sales import commands
from sales.models import CreditNote, Invoice, Receipt, SalesOrder
from tests.factories import account, balance_of, client_for, issued_invoice, line


def _entry(public_id):
    return JournalEntry.objects.get(public_id=public_id)


def _amounts_by_role(entry):
    """{role: (debit, credit)} for the lines of a posted entry."""
    result = {}
    for jl in entry.lines.select_related("account"):
        debit, credit = result.get(jl.account.role, (Decimal("0.00"), Decimal("0.00")))
        result[jl.account.role] = (debit + jl.debit, credit + jl.credit)
    return result


def _credit_note(actor, customer, amount="50.00", invoice=None, tax_rate="0"):
    created = commands.create_credit_note(
        actor,
        customer_public_id=customer.public_id,
        reason="Damaged goods",
        lines=[line(description="Return", unit_price=amount, tax_rate=tax_rate)],
        invoice_public_id=invoice.public_id if invoice else None,
    )
    assert created.success, created.error
    return created.data


# =============================================================================
# Customers and terms
# =============================================================================

class TestCustomers:

    def test_duplicate_customer_code(self, actor, customer):
        result = commands.create_customer(actor, code=customer.code, name="Someone else")
        assert not result.success

    def test_payment_term_sets_due_date(self, actor, today):
        term = commands.create_payment_term(actor, "NET30", "Net 30", days_due=30).data
        cust = commands.create_customer(actor, code="C030", name="Slow Payer", payment_term_public_id=term.public_id).data

        invoice = commands.create_invoice(
            actor, customer_public_id=cust.public_id, invoice_date=today, lines=[line()],
        ).data
        assert invoice.due_date == today + timedelta(days=30)

    def test_related_company_must_share_tenant(self, actor, outside_company):
        result = commands.create_customer(
            actor, code="ICX", name="Outsider", related_company_public_id=outside_company.public_id,
        )
        assert not result.success
        assert "same tenant" in result.error


# =============================================================================
# Invoices
# =============================================================================

class TestInvoices:

    def test_create_computes_totals(self, actor, customer):
        result = commands.create_invoice(actor, customer_public_id=customer.public_id, lines=[
            line(quantity="2", unit_price="100.00", tax_rate="10"),
            line(description="Service", quantity="1", unit_price="50.00"),
        ])
        assert result.success, result.error
        invoice = result.data
        assert invoice.status == Invoice.Status.DRAFT
        assert invoice.subtotal == Decimal("250.00")
        assert invoice.tax_amount == Decimal("20.00")
        assert invoice.total == Decimal("270.00")
        assert invoice.journal_entry_public_id is None

    def test_invoice_needs_lines(self, actor, customer):
        result = commands.create_invoice(actor, customer_public_id=customer.public_id, lines=[])
        assert not result.success

    def test_issue_posts_receivable_revenue_and_tax(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(quantity="2", unit_price="100.00", tax_rate="10")])

        assert invoice.status == Invoice.Status.OPEN
        assert invoice.balance_due == Decimal("220.00")

        entry = _entry(invoice.journal_entry_public_id)
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.source_module == "sales"
        assert entry.source_document == invoice.number
        assert _amounts_by_role(entry) == {
            "receivable": (Decimal("220.00"), Decimal("0.00")),
            "revenue": (Decimal("0.00"), Decimal("200.00")),
            "tax_payable": (Decimal("0.00"), Decimal("20.00")),
        }
        assert balance_of(actor.company, "receivable") == Decimal("220.00")

    def test_cannot_issue_twice(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line()])
        again = commands.issue_invoice(actor, invoice.public_id)
        assert not again.success

    def test_line_account_overrides_revenue(self, actor, customer):
        other = account(actor.company, "sales_returns")
        invoice = issued_invoice(actor, customer, [line(account_public_id=str(other.public_id))])
        lines = _amounts_by_role(_entry(invoice.journal_entry_public_id))
        assert "revenue" not in lines
        assert lines["sales_returns"] == (Decimal("0.00"), Decimal("100.00"))

    def test_void_open_invoice_reverses_entry(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="80.00")])

        result = commands.void_invoice(actor, invoice.public_id, reason="Wrong customer")
        assert result.success, result.error

        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.VOID
        assert invoice.void_reason == "Wrong customer"
        assert _entry(invoice.journal_entry_public_id).status == JournalEntry.Status.REVERSED
        assert balance_of(actor.company, "receivable") == Decimal("0.00")
        assert balance_of(actor.company, "revenue") == Decimal("0.00")

    def test_void_draft_posts_nothing(self, actor, customer):
        invoice = commands.create_invoice(actor, customer_public_id=customer.public_id, lines=[line()]).data
        posted_before = JournalEntry.objects.filter(company=actor.company).count()

        result = commands.void_invoice(actor, invoice.public_id)
        assert result.success, result.error
        assert result.data.reversal_entry_public_id is None
        assert JournalEntry.objects.filter(company=actor.company).count() == posted_before

    def test_clerk_cannot_void(self, actor, clerk_actor, customer):
        invoice = issued_invoice(actor, customer, [line()])
        with pytest.raises(PermissionDenied):
            commands.void_invoice(clerk_actor, invoice.public_id)

    def test_clerk_can_issue(self, clerk_actor, customer):
        invoice = issued_invoice(clerk_actor, customer, [line()])
        assert invoice.status == Invoice.Status.OPEN


# =============================================================================
# Receipts
# =============================================================================

class TestReceipts:

    def test_partial_then_full_payment(self, actor, customer, today):
        invoice = issued_invoice(actor, customer, [line(unit_price="300.00")])

        first = commands.record_receipt(actor, invoice.public_id, "100.00", receipt_date=today)
        assert first.success, first.error
        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.PARTIAL
        assert invoice.balance_due == Decimal("200.00")
        assert first.data.is_partial

        second = commands.record_receipt(actor, invoice.public_id, "200.00", receipt_date=today)
        assert second.success, second.error
        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.PAID
        assert invoice.balance_due == Decimal("0.00")
        assert invoice.amount_paid == Decimal("300.00")

        assert balance_of(actor.company, "cash") == Decimal("300.00")
        assert balance_of(actor.company, "receivable") == Decimal("0.00")

    def test_overpayment_refused(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="40.00")])
        result = commands.record_receipt(actor, invoice.public_id, "40.01")
        assert not result.success
        assert "exceeds" in result.error

    def test_receipt_on_draft_refused(self, actor, customer):
        invoice = commands.create_invoice(actor, customer_public_id=customer.public_id, lines=[line()]).data
        result = commands.record_receipt(actor, invoice.public_id, "10.00")
        assert not result.success

    def test_void_receipt_reopens_invoice(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="60.00")])
        receipt = commands.record_receipt(actor, invoice.public_id, "60.00").data

        result = commands.void_receipt(actor, receipt.public_id)
        assert result.success, result.error
        assert result.data.status == Receipt.Status.VOID

        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.OPEN
        assert invoice.balance_due == Decimal("60.00")
        assert balance_of(actor.company, "cash") == Decimal("0.00")

    def test_invoice_with_receipts_cannot_be_voided(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line()])
        commands.record_receipt(actor, invoice.public_id, "10.00")
        result = commands.void_invoice(actor, invoice.public_id)
        assert not result.success
        assert "receipts" in result.error


# =============================================================================
# Credit notes
# =============================================================================

class TestCreditNotes:

    def test_issue_posts_returns_and_credits_receivable(self, actor, customer):
        note = _credit_note(actor, customer, amount="100.00", tax_rate="10")
        result = commands.issue_credit_note(actor, note.public_id)
        assert result.success, result.error

        note = result.data
        assert note.status == CreditNote.Status.ISSUED
        assert note.unapplied_amount == Decimal("110.00")
        assert _amounts_by_role(_entry(note.journal_entry_public_id)) == {
            "sales_returns": (Decimal("100.00"), Decimal("0.00")),
            "tax_payable": (Decimal("10.00"), Decimal("0.00")),
            "receivable": (Decimal("0.00"), Decimal("110.00")),
        }

    def test_linked_note_is_applied_on_issue(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="200.00")])
        note = _credit_note(actor, customer, amount="50.00", invoice=invoice)

        note = commands.issue_credit_note(actor, note.public_id).data
        invoice.refresh_from_db()

        assert note.status == CreditNote.Status.APPLIED
        assert invoice.amount_credited == Decimal("50.00")
        assert invoice.balance_due == Decimal("150.00")
        assert invoice.status == Invoice.Status.PARTIAL
        assert balance_of(actor.company, "receivable") == Decimal("150.00")

    def test_note_larger_than_balance_keeps_remainder(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="30.00")])
        note = _credit_note(actor, customer, amount="50.00", invoice=invoice)

        note = commands.issue_credit_note(actor, note.public_id).data
        invoice.refresh_from_db()

        assert invoice.status == Invoice.Status.PAID
        assert note.status == CreditNote.Status.PARTIAL
        assert note.unapplied_amount == Decimal("20.00")

    def test_apply_to_another_invoice(self, actor, customer):
        first = issued_invoice(actor, customer, [line(unit_price="100.00")])
        second = issued_invoice(actor, customer, [line(unit_price="100.00")])
        note = commands.issue_credit_note(actor, _credit_note(actor, customer, amount="60.00").public_id).data

        assert commands.apply_credit_note(actor, note.public_id, first.public_id, "25.00").success
        result = commands.apply_credit_note(actor, note.public_id, second.public_id)
        assert result.success, result.error

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.balance_due == Decimal("75.00")
        assert second.balance_due == Decimal("65.00")
        assert result.data.status == CreditNote.Status.APPLIED

        applied_events = BusinessEvent.objects.filter(
            company=actor.company, event_type=EventTypes.CREDIT_NOTE_APPLIED,
        )
        assert applied_events.count() == 2

    def test_apply_more_than_unapplied_refused(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="500.00")])
        note = commands.issue_credit_note(actor, _credit_note(actor, customer, amount="40.00").public_id).data
        result = commands.apply_credit_note(actor, note.public_id, invoice.public_id, "40.01")
        assert not result.success

    def test_draft_note_cannot_be_applied(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line()])
        note = _credit_note(actor, customer)
        result = commands.apply_credit_note(actor, note.public_id, invoice.public_id, "10.00")
        assert not result.success

    def test_cancel_issued_note_reverses(self, actor, customer):
        note = commands.issue_credit_note(actor, _credit_note(actor, customer, amount="70.00").public_id).data
        assert balance_of(actor.company, "receivable") == Decimal("-70.00")

        result = commands.cancel_credit_note(actor, note.public_id)
        assert result.success, result.error
        assert result.data.status == CreditNote.Status.CANCELLED
        assert balance_of(actor.company, "receivable") == Decimal("0.00")
        assert balance_of(actor.company, "sales_returns") == Decimal("0.00")

    def test_applied_note_cannot_be_cancelled(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line()])
        note = _credit_note(actor, customer, amount="10.00", invoice=invoice)
        commands.issue_credit_note(actor, note.public_id)
        result = commands.cancel_credit_note(actor, note.public_id)
        assert not result.success

    def test_invoice_with_credit_cannot_be_voided(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line()])
        note = _credit_note(actor, customer, amount="10.00", invoice=invoice)
        commands.issue_credit_note(actor, note.public_id)
        assert not commands.void_invoice(actor, invoice.public_id).success

    def test_clerk_cannot_manage_credit_notes(self, clerk_actor, customer):
        with pytest.raises(PermissionDenied):
            _credit_note(clerk_actor, customer)


# =============================================================================
# Sales orders
# =============================================================================

class TestSalesOrders:

    def _order(self, actor, customer, confirm=True):
        result = commands.create_sales_order(
            actor,
            customer_public_id=customer.public_id,
            lines=[line(quantity="10", unit_price="15.00")],
            confirm=confirm,
        )
        assert result.success, result.error
        return result.data

    def test_confirm(self, actor, customer):
        order = self._order(actor, customer, confirm=False)
        assert order.status == SalesOrder.Status.DRAFT
        result = commands.confirm_sales_order(actor, order.public_id)
        assert result.success, result.error
        assert result.data.status == SalesOrder.Status.OPEN

    def test_draft_order_cannot_be_invoiced(self, actor, customer):
        order = self._order(actor, customer, confirm=False)
        result = commands.create_invoice(actor, sales_order_public_id=order.public_id)
        assert not result.success

    def test_partial_then_full_invoicing(self, actor, customer):
        order = self._order(actor, customer)

        first = commands.create_invoice(actor, sales_order_public_id=order.public_id, quantities={"1": "4"})
        assert first.success, first.error
        assert first.data.total == Decimal("60.00")
        commands.issue_invoice(actor, first.data.public_id)
        order.refresh_from_db()
        assert order.status == SalesOrder.Status.PARTIAL
        assert order.lines.get(line_no=1).invoiced_quantity == Decimal("4")

        rest = commands.create_invoice(actor, sales_order_public_id=order.public_id)
        assert rest.data.total == Decimal("90.00")
        commands.issue_invoice(actor, rest.data.public_id)
        order.refresh_from_db()
        assert order.status == SalesOrder.Status.INVOICED

    def test_quantity_above_remaining_refused(self, actor, customer):
        order = self._order(actor, customer)
        result = commands.create_invoice(actor, sales_order_public_id=order.public_id, quantities={"1": "11"})
        assert not result.success
        assert "exceeds remaining" in result.error

    def test_voiding_invoice_releases_quantities(self, actor, customer):
        order = self._order(actor, customer)
        invoice = commands.create_invoice(actor, sales_order_public_id=order.public_id).data
        commands.issue_invoice(actor, invoice.public_id)

        commands.void_invoice(actor, invoice.public_id, reason="Re-issue")
        order.refresh_from_db()
        assert order.status == SalesOrder.Status.OPEN
        assert order.lines.get(line_no=1).invoiced_quantity == Decimal("0")

    def test_cancel_and_close(self, actor, customer):
        cancelled = commands.cancel_sales_order(actor, self._order(actor, customer).public_id)
        assert cancelled.data.status == SalesOrder.Status.CANCELLED

        order = self._order(actor, customer)
        invoice = commands.create_invoice(actor, sales_order_public_id=order.public_id, quantities={"1": "2"}).data
        commands.issue_invoice(actor, invoice.public_id)
        closed = commands.close_sales_order(actor, order.public_id)
        assert closed.success, closed.error
        assert closed.data.status == SalesOrder.Status.CLOSED


class TestSalesOrderApi:

    def test_create_confirm_and_list(self, owner, company, customer):
        client = client_for(owner, company)
        response = client.post("/api/sales/sales-orders/", {
            "customer_public_id": str(customer.public_id),
            "lines": [{"description": "Crates", "quantity": "4", "unit_price": "12.50"}],
        }, format="json")
        assert response.status_code == 201, response.data
        assert response.data["status"] == SalesOrder.Status.DRAFT
        assert Decimal(response.data["total"]) == Decimal("50.00")

        public_id = response.data["public_id"]
        response = client.post(f"/api/sales/sales-orders/{public_id}/confirm/", {}, format="json")
        assert response.status_code == 200, response.data
        assert response.data["status"] == SalesOrder.Status.OPEN

        response = client.get("/api/sales/sales-orders/", {"status": "OPEN"})
        assert [row["public_id"] for row in response.data] == [public_id]

    def test_old_orders_route_is_gone(self, api_client):
        assert api_client.get("/api/sales/orders/").status_code == 404
