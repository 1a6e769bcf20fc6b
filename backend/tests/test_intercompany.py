# tests/test_intercompany.py
"""
Tests for intercompany trading between two companies of one tenant:
orders, invoicing, settlement, cancellation and adjustments, and that
both sets of books agree after each step.
"""

import pytest
from decimal import Decimal

from django.core.exceptions import PermissionDenied

from events.models import BusinessEvent
from events.types import EventTypes
from intercompany import commands
from intercompany.models import IntercompanyAdjustment, IntercompanyTransaction
from intercompany.policies import transaction_status
from purchases import commands as purchases
from purchases.models import Bill, DebitNote, Payment, PurchaseOrder
from reports.queries import intercompany_reconciliation, subledger_reconciliation
from sales import commands as sales
from sales.models import CreditNote, Invoice, Receipt, SalesOrder
from tests.factories import balance_of, client_for, line


def _order(actor, target, quantity="10", unit_price="50.00", tax_rate="0"):
    result = commands.create_intercompany_order(
        actor,
        target_company_public_id=target.public_id,
        items=[line(description="Steel coil", quantity=quantity, unit_price=unit_price, tax_rate=tax_rate)],
        description="Monthly supply",
    )
    assert result.success, result.error
    return result.data


def _assert_books_agree(tenant, *companies):
    recon = intercompany_reconciliation(tenant)
    assert recon["is_reconciled"], recon
    for company in companies:
        assert subledger_reconciliation(company)["is_reconciled"]


@pytest.fixture
def txn(actor, second_company):
    return _order(actor, second_company)


class TestIntercompanyOrders:

    def test_order_creates_mirrored_orders(self, actor, company, second_company, txn):
        assert txn.status == IntercompanyTransaction.Status.PENDING
        assert txn.payment_status == IntercompanyTransaction.PaymentStatus.UNPAID
        assert txn.amount == Decimal("500.00")
        assert txn.reference == f"IC-{company.id}-{second_company.id}-000001"
        assert txn.tenant_id == company.tenant_id

        sales_order = SalesOrder.objects.get(public_id=txn.sales_order_public_id)
        purchase_order = PurchaseOrder.objects.get(public_id=txn.purchase_order_public_id)
        assert sales_order.company_id == company.id
        assert purchase_order.company_id == second_company.id
        assert sales_order.status == SalesOrder.Status.OPEN
        assert purchase_order.status == PurchaseOrder.Status.OPEN
        assert sales_order.total == purchase_order.total
        assert sales_order.customer.related_company_id == second_company.id
        assert purchase_order.vendor.related_company_id == company.id

    def test_references_are_sequential(self, actor, second_company, txn):
        second = _order(actor, second_company, quantity="1")
        assert second.reference.endswith("000002")

    def test_intercompany_parties_are_reused(self, actor, company, second_company, txn):
        _order(actor, second_company, quantity="1")
        assert company.customers.filter(related_company=second_company).count() == 1
        assert second_company.vendors.filter(related_company=company).count() == 1

    def test_events_recorded_in_source_stream(self, company, txn):
        assert BusinessEvent.objects.filter(
            company=company,
            event_type=EventTypes.INTERCOMPANY_TRANSACTION_CREATED,
            aggregate_id=str(txn.public_id),
        ).exists()

    def test_other_tenant_refused(self, actor, outside_company):
        result = commands.create_intercompany_order(
            actor, target_company_public_id=outside_company.public_id, items=[line()],
        )
        assert not result.success
        assert "same tenant" in result.error

    def test_self_trade_refused(self, actor, company):
        result = commands.create_intercompany_order(
            actor, target_company_public_id=company.public_id, items=[line()],
        )
        assert not result.success

    def test_requires_membership_in_both_companies(self, clerk_actor, second_company):
        with pytest.raises(PermissionDenied):
            commands.create_intercompany_order(
                clerk_actor, target_company_public_id=second_company.public_id, items=[line()],
            )

    def test_empty_items_refused(self, actor, second_company):
        result = commands.create_intercompany_order(
            actor, target_company_public_id=second_company.public_id, items=[],
        )
        assert not result.success


class TestIntercompanyInvoicing:

    def test_partial_invoice_posts_both_sides(self, actor, tenant, company, second_company, txn):
        result = commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "4"})
        assert result.success, result.error
        txn = result.data

        assert txn.status == IntercompanyTransaction.Status.INVOICED
        assert txn.amount_invoiced == Decimal("200.00")
        assert txn.outstanding == Decimal("200.00")

        invoice = Invoice.objects.get(public_id=txn.invoice_public_id)
        bill = Bill.objects.get(public_id=txn.bill_public_id)
        assert invoice.is_intercompany and bill.is_intercompany
        assert invoice.total == bill.total == Decimal("200.00")
        assert bill.vendor_invoice_number == invoice.number

        assert balance_of(company, "ic_receivable") == Decimal("200.00")
        assert balance_of(company, "receivable") == Decimal("0.00")
        assert balance_of(company, "revenue") == Decimal("200.00")
        assert balance_of(second_company, "ic_payable") == Decimal("200.00")
        assert balance_of(second_company, "inventory") == Decimal("200.00")

        _assert_books_agree(tenant, company, second_company)

    def test_invoice_everything(self, actor, txn):
        txn = commands.invoice_intercompany_transaction(actor, txn.public_id).data
        assert txn.amount_invoiced == txn.amount
        assert commands.invoice_intercompany_transaction(actor, txn.public_id).success is False

    def test_target_side_can_invoice(self, second_actor, txn):
        result = commands.invoice_intercompany_transaction(second_actor, txn.public_id)
        assert result.success, result.error


class TestIntercompanySettlement:

    def test_full_lifecycle(self, actor, tenant, company, second_company, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "6"})

        partial = commands.settle_intercompany_transaction(actor, txn.public_id, "100.00")
        assert partial.success, partial.error
        assert partial.data.payment_status == IntercompanyTransaction.PaymentStatus.PARTIAL
        _assert_books_agree(tenant, company, second_company)

        paid = commands.settle_intercompany_transaction(actor, txn.public_id, "200.00")
        assert paid.data.payment_status == IntercompanyTransaction.PaymentStatus.PAID
        assert paid.data.status == IntercompanyTransaction.Status.INVOICED

        commands.invoice_intercompany_transaction(actor, txn.public_id)
        done = commands.settle_intercompany_transaction(actor, txn.public_id, "200.00").data
        assert done.status == IntercompanyTransaction.Status.COMPLETED
        assert done.payment_status == IntercompanyTransaction.PaymentStatus.PAID
        assert done.amount_settled == Decimal("500.00")

        assert balance_of(company, "ic_receivable") == Decimal("0.00")
        assert balance_of(second_company, "ic_payable") == Decimal("0.00")
        assert balance_of(company, "cash") == Decimal("500.00")
        assert balance_of(second_company, "cash") == Decimal("-500.00")
        _assert_books_agree(tenant, company, second_company)

    def test_settlement_spans_invoice_pairs(self, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "2"})
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "2"})

        result = commands.settle_intercompany_transaction(actor, txn.public_id, "150.00")
        assert result.success, result.error
        assert len(result.events) == 2

        invoices = Invoice.objects.filter(intercompany_transaction_public_id=txn.public_id).order_by("number")
        assert [i.status for i in invoices] == [Invoice.Status.PAID, Invoice.Status.PARTIAL]

    def test_cannot_settle_more_than_outstanding(self, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "1"})
        result = commands.settle_intercompany_transaction(actor, txn.public_id, "50.01")
        assert not result.success
        assert "exceeds" in result.error

    def test_cannot_settle_before_invoicing(self, actor, txn):
        assert not commands.settle_intercompany_transaction(actor, txn.public_id, "10.00").success


class TestIntercompanyCancellation:

    def test_cancel_pending(self, actor, txn):
        result = commands.cancel_intercompany_transaction(actor, txn.public_id, reason="Order withdrawn")
        assert result.success, result.error
        assert result.data.status == IntercompanyTransaction.Status.CANCELLED
        assert result.data.cancel_reason == "Order withdrawn"
        assert SalesOrder.objects.get(public_id=txn.sales_order_public_id).status == SalesOrder.Status.CANCELLED
        assert PurchaseOrder.objects.get(public_id=txn.purchase_order_public_id).status == PurchaseOrder.Status.CANCELLED

    def test_invoiced_transaction_cannot_be_cancelled(self, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "1"})
        assert not commands.cancel_intercompany_transaction(actor, txn.public_id).success


class TestIntercompanyAdjustments:

    def test_standalone_adjustment_is_symmetric(self, actor, tenant, company, second_company):
        result = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="75.00",
            reason="Price correction",
        )
        assert result.success, result.error
        adjustment = result.data

        credit_note = CreditNote.objects.get(public_id=adjustment.credit_note_public_id)
        debit_note = DebitNote.objects.get(public_id=adjustment.debit_note_public_id)
        assert credit_note.company_id == company.id
        assert debit_note.company_id == second_company.id
        assert credit_note.total == debit_note.total == Decimal("75.00")
        assert credit_note.status == CreditNote.Status.ISSUED
        assert debit_note.status == DebitNote.Status.ISSUED
        assert adjustment.reference.startswith(f"IC-ADJ-{company.id}-{second_company.id}-")

        assert balance_of(company, "ic_receivable") == Decimal("-75.00")
        assert balance_of(second_company, "ic_payable") == Decimal("-75.00")
        _assert_books_agree(tenant, company, second_company)

    def test_adjustment_against_transaction(self, actor, tenant, company, second_company, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id)

        result = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="120.00",
            reason="Volume rebate",
            transaction_public_id=txn.public_id,
        )
        assert result.success, result.error

        txn.refresh_from_db()
        assert txn.amount_adjusted == Decimal("120.00")
        assert txn.outstanding == Decimal("380.00")

        invoice = Invoice.objects.get(public_id=txn.invoice_public_id)
        bill = Bill.objects.get(public_id=txn.bill_public_id)
        assert invoice.amount_credited == bill.amount_credited == Decimal("120.00")
        assert invoice.balance_due == bill.balance_due == Decimal("380.00")
        _assert_books_agree(tenant, company, second_company)

        settled = commands.settle_intercompany_transaction(actor, txn.public_id, "380.00").data
        assert settled.status == IntercompanyTransaction.Status.COMPLETED

    def test_notes_carry_the_adjustment_reference(self, actor, company, second_company):
        result = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="30.00",
            reason="Freight share",
        )
        assert result.success, result.error
        adjustment = result.data

        credit_note = CreditNote.objects.get(public_id=adjustment.credit_note_public_id)
        debit_note = DebitNote.objects.get(public_id=adjustment.debit_note_public_id)
        assert adjustment.reference == f"IC-ADJ-{company.id}-{second_company.id}-000001"
        assert credit_note.reference == debit_note.reference == adjustment.reference

    def test_given_reference_is_used_on_both_notes(self, actor, second_company):
        adjustment = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="12.00",
            reason="Fee",
            reference="ADJ-77",
        ).data
        assert CreditNote.objects.get(public_id=adjustment.credit_note_public_id).reference == "ADJ-77"
        assert DebitNote.objects.get(public_id=adjustment.debit_note_public_id).reference == "ADJ-77"

    def test_adjustment_clearing_everything_marks_paid(self, actor, second_company, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id)
        result = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="500.00",
            reason="Goods written off",
            transaction_public_id=txn.public_id,
        )
        assert result.success, result.error

        txn.refresh_from_db()
        assert txn.outstanding == Decimal("0.00")
        assert txn.amount_settled == Decimal("0.00")
        assert txn.status == IntercompanyTransaction.Status.COMPLETED
        assert txn.payment_status == IntercompanyTransaction.PaymentStatus.PAID

    def test_partial_adjustment_without_settlement_stays_unpaid(self, actor, second_company, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id)
        commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="100.00",
            reason="Rebate",
            transaction_public_id=txn.public_id,
        )
        txn.refresh_from_db()
        assert txn.status == IntercompanyTransaction.Status.INVOICED
        assert txn.payment_status == IntercompanyTransaction.PaymentStatus.UNPAID

    def test_adjustment_above_outstanding_refused(self, actor, second_company, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "1"})
        result = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="60.00",
            reason="Too much",
            transaction_public_id=txn.public_id,
        )
        assert not result.success

    def test_items_must_match_amount(self, actor, second_company):
        result = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="100.00",
            reason="Itemised",
            items=[line(unit_price="40.00"), line(unit_price="50.00")],
        )
        assert not result.success
        assert not IntercompanyAdjustment.objects.exists()
        assert not CreditNote.objects.exists()

    def test_reason_required(self, actor, second_company):
        result = commands.create_intercompany_adjustment(
            actor, target_company_public_id=second_company.public_id, amount="10.00", reason="",
        )
        assert not result.success

    def test_duplicate_reference_refused(self, actor, second_company):
        kwargs = dict(target_company_public_id=second_company.public_id, amount="5.00", reason="Fee", reference="ADJ-1")
        assert commands.create_intercompany_adjustment(actor, **kwargs).success
        assert not commands.create_intercompany_adjustment(actor, **kwargs).success


class TestTransactionStatus:

    @pytest.mark.parametrize("invoiced, settled, adjusted, expected", [
        ("0", "0", "0", ("PENDING", "UNPAID")),
        ("100", "0", "0", ("INVOICED", "UNPAID")),
        ("100", "40", "0", ("INVOICED", "PARTIAL")),
        ("100", "0", "100", ("COMPLETED", "PAID")),
        ("100", "60", "40", ("COMPLETED", "PAID")),
        ("50", "0", "50", ("INVOICED", "PAID")),
    ])
    def test_status_from_totals(self, invoiced, settled, adjusted, expected):
        assert transaction_status(
            Decimal("100"), Decimal(invoiced), Decimal(settled), Decimal(adjusted),
        ) == expected


class TestIntercompanyDocumentGuards:
    """Invoices and bills of a transaction only move through the intercompany commands."""

    @pytest.fixture
    def invoiced(self, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id, quantities={"1": "4"})
        txn.refresh_from_db()
        invoice = Invoice.objects.get(public_id=txn.invoice_public_id)
        bill = Bill.objects.get(public_id=txn.bill_public_id)
        return txn, invoice, bill

    def test_direct_receipt_refused(self, actor, tenant, company, second_company, invoiced):
        txn, invoice, _ = invoiced
        result = sales.record_receipt(actor, invoice_public_id=invoice.public_id, amount="50.00")
        assert not result.success
        assert "intercompany" in result.error
        assert not Receipt.objects.filter(invoice=invoice).exists()
        _assert_books_agree(tenant, company, second_company)

    def test_direct_payment_refused(self, second_actor, invoiced):
        _, _, bill = invoiced
        result = purchases.record_payment(second_actor, bill_public_id=bill.public_id, amount="50.00")
        assert not result.success
        assert "intercompany" in result.error
        assert not Payment.objects.filter(bill=bill).exists()

    def test_void_invoice_and_bill_refused(self, actor, second_actor, invoiced):
        _, invoice, bill = invoiced
        assert not sales.void_invoice(actor, invoice.public_id, reason="Mistake").success
        assert not purchases.void_bill(second_actor, bill.public_id, reason="Mistake").success
        invoice.refresh_from_db()
        bill.refresh_from_db()
        assert invoice.status == Invoice.Status.OPEN
        assert bill.status == Bill.Status.OPEN

    def test_void_settlement_receipt_and_payment_refused(
        self, actor, second_actor, tenant, company, second_company, invoiced,
    ):
        txn, invoice, bill = invoiced
        assert commands.settle_intercompany_transaction(actor, txn.public_id, "80.00").success
        receipt = Receipt.objects.get(invoice=invoice)
        payment = Payment.objects.get(bill=bill)

        result = sales.void_receipt(actor, receipt.public_id)
        assert not result.success
        assert "intercompany" in result.error
        assert not purchases.void_payment(second_actor, payment.public_id).success

        receipt.refresh_from_db()
        assert receipt.status == Receipt.Status.POSTED
        _assert_books_agree(tenant, company, second_company)

    def test_apply_standalone_notes_refused(self, actor, second_actor, second_company, invoiced):
        _, invoice, bill = invoiced
        adjustment = commands.create_intercompany_adjustment(
            actor,
            target_company_public_id=second_company.public_id,
            amount="20.00",
            reason="Unlinked rebate",
        ).data

        result = sales.apply_credit_note(actor, adjustment.credit_note_public_id, invoice.public_id)
        assert not result.success
        assert "intercompany" in result.error
        result = purchases.apply_debit_note(second_actor, adjustment.debit_note_public_id, bill.public_id)
        assert not result.success

        invoice.refresh_from_db()
        assert invoice.amount_credited == Decimal("0.00")

    def test_credit_note_cannot_link_intercompany_invoice(self, actor, invoiced):
        _, invoice, _ = invoiced
        result = sales.create_credit_note(
            actor,
            customer_public_id=invoice.customer.public_id,
            reason="Return",
            lines=[line(unit_price="10.00")],
            invoice_public_id=invoice.public_id,
        )
        assert not result.success
        assert "intercompany" in result.error

    def test_settlement_still_pays_both_sides(self, actor, invoiced):
        txn, invoice, bill = invoiced
        result = commands.settle_intercompany_transaction(actor, txn.public_id, "200.00")
        assert result.success, result.error
        invoice.refresh_from_db()
        bill.refresh_from_db()
        assert invoice.status == Invoice.Status.PAID
        assert bill.status == Bill.Status.PAID


class TestIntercompanyApi:

    def test_create_and_invoice_via_api(self, owner, company, second_company):
        client = client_for(owner, company)
        response = client.post("/api/intercompany/transactions/", {
            "target_company_public_id": str(second_company.public_id),
            "items": [{"description": "Pallets", "quantity": "3", "unit_price": "20.00"}],
            "description": "API order",
        }, format="json")
        assert response.status_code == 201, response.data
        assert response.data["status"] == "PENDING"
        assert Decimal(response.data["amount"]) == Decimal("60.00")

        public_id = response.data["public_id"]
        response = client.post(f"/api/intercompany/transactions/{public_id}/invoice/", {}, format="json")
        assert response.status_code == 200, response.data
        assert response.data["status"] == "INVOICED"
        assert Decimal(response.data["outstanding"]) == Decimal("60.00")

    def test_viewer_gets_403(self, viewer_client, second_company):
        response = viewer_client.post("/api/intercompany/transactions/", {
            "target_company_public_id": str(second_company.public_id),
            "items": [{"description": "Pallets", "quantity": "1", "unit_price": "20.00"}],
        }, format="json")
        assert response.status_code == 403

    def test_void_invoice_via_api_refused(self, owner, company, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id)
        txn.refresh_from_db()

        client = client_for(owner, company)
        response = client.post(
            f"/api/sales/invoices/{txn.invoice_public_id}/void/", {"reason": "Oops"}, format="json",
        )
        assert response.status_code == 400
        assert "intercompany" in response.data["detail"]
        assert Invoice.objects.get(public_id=txn.invoice_public_id).status == Invoice.Status.OPEN

    def test_receipt_via_api_refused(self, owner, company, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id)
        txn.refresh_from_db()

        client = client_for(owner, company)
        response = client.post("/api/sales/receipts/", {
            "invoice_public_id": str(txn.invoice_public_id),
            "amount": "100.00",
        }, format="json")
        assert response.status_code == 400
        assert "intercompany" in response.data["detail"]
        assert not Receipt.objects.exists()

    def test_payment_via_api_refused(self, owner, second_company, actor, txn):
        commands.invoice_intercompany_transaction(actor, txn.public_id)
        txn.refresh_from_db()

        client = client_for(owner, second_company)
        response = client.post("/api/purchases/payments/", {
            "bill_public_id": str(txn.bill_public_id),
            "amount": "100.00",
        }, format="json")
        assert response.status_code == 400
        assert not Payment.objects.exists()
