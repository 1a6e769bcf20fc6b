# tests/test_reports.py
"""
Tests for the reports: receivables/payables aging, note summaries,
sub-ledger reconciliation, statements, intercompany balances and exports.
"""

import uuid

import pytest
from datetime import timedelta
from decimal import Decimal

from accounting import commands as ledger
from intercompany import commands as intercompany
from reports import queries
from sales import commands as sales
from purchases import commands as purchases
from tests.factories import account, issued_invoice, line, posted_bill


def _credit_note(actor, customer, amount, invoice=None):
    note = sales.create_credit_note(
        actor,
        customer_public_id=customer.public_id,
        reason="Damaged goods",
        lines=[line(description="Allowance", unit_price=amount)],
        invoice_public_id=invoice.public_id if invoice else None,
    ).data
    result = sales.issue_credit_note(actor, note.public_id)
    assert result.success, result.error
    return result.data


def _manual_entry(actor, entry_date, debit_role, credit_role, amount):
    entry = ledger.create_journal_entry(actor, date=entry_date, memo="Manual adjustment", lines=[
        {"account_id": account(actor.company, debit_role).id, "debit": amount, "description": "Adjustment"},
        {"account_id": account(actor.company, credit_role).id, "credit": amount, "description": "Adjustment"},
    ]).data
    assert ledger.save_journal_entry_complete(actor, entry.id).success
    result = ledger.post_journal_entry(actor, entry.id)
    assert result.success, result.error
    return result.data


@pytest.fixture
def trading(actor, customer, vendor):
    """A small book of trade: two invoices, a receipt, a credit note, a bill and a payment."""
    first = issued_invoice(actor, customer, [line(unit_price="400.00", tax_rate="10")])
    second = issued_invoice(actor, customer, [line(unit_price="100.00")])
    sales.record_receipt(actor, first.public_id, "140.00")
    _credit_note(actor, customer, "60.00", invoice=second)

    bill = posted_bill(actor, vendor, [line(unit_price="250.00")])
    purchases.record_payment(actor, bill.public_id, "50.00")
    return {"invoices": [first, second], "bill": bill}


class TestReceivablesAndPayables:

    def test_ar_summary_totals(self, actor, customer, trading):
        report = queries.ar_summary(actor.company)

        assert report["total_invoiced"] == Decimal("540.00")
        assert report["total_received"] == Decimal("140.00")
        assert report["total_credited"] == Decimal("60.00")
        assert report["total_outstanding"] == Decimal("340.00")
        assert report["open_invoice_count"] == 2
        assert report["aging"]["current"] == Decimal("340.00")
        assert report["total_overdue"] == Decimal("0.00")

        [row] = report["customers"]
        assert row["code"] == customer.code
        assert row["outstanding"] == Decimal("340.00")

    def test_aging_buckets_move_with_as_of(self, actor, today, trading):
        report = queries.ar_summary(actor.company, as_of=today + timedelta(days=45))
        assert report["aging"]["31_60"] == Decimal("340.00")
        assert report["aging"]["current"] == Decimal("0.00")
        assert report["total_overdue"] == Decimal("340.00")

    def test_as_of_excludes_later_documents(self, actor, today, trading):
        report = queries.ar_summary(actor.company, as_of=today - timedelta(days=1))
        assert report["total_invoiced"] == Decimal("0")
        assert report["customers"] == []

    def test_ap_summary_totals(self, actor, vendor, trading):
        report = queries.ap_summary(actor.company)
        assert report["total_billed"] == Decimal("250.00")
        assert report["total_paid"] == Decimal("50.00")
        assert report["total_outstanding"] == Decimal("200.00")
        assert report["open_bill_count"] == 1
        assert report["vendors"][0]["code"] == vendor.code

    def test_fully_paid_documents_leave_aging(self, actor, customer):
        invoice = issued_invoice(actor, customer, [line(unit_price="80.00")])
        sales.record_receipt(actor, invoice.public_id, "80.00")

        report = queries.ar_summary(actor.company)
        assert report["total_invoiced"] == Decimal("80.00")
        assert report["total_outstanding"] == Decimal("0")
        assert report["open_invoice_count"] == 0


class TestCreditDebitSummary:

    def test_counts_and_amounts(self, actor, customer, vendor):
        invoice = issued_invoice(actor, customer, [line(unit_price="500.00")])
        note = _credit_note(actor, customer, "90.00")
        sales.apply_credit_note(actor, note.public_id, invoice.public_id, "30.00")
        sales.create_credit_note(
            actor, customer_public_id=customer.public_id, reason="Pending", lines=[line(unit_price="10.00")],
        )

        debit = purchases.create_debit_note(
            actor, vendor_public_id=vendor.public_id, reason="Returned", lines=[line(unit_price="25.00")],
        ).data
        purchases.issue_debit_note(actor, debit.public_id)

        report = queries.credit_debit_summary(actor.company)
        credit_notes = report["credit_notes"]
        assert credit_notes["count"] == 2
        assert credit_notes["draft_count"] == 1
        assert credit_notes["issued_count"] == 1
        assert credit_notes["applied_count"] == 1
        assert credit_notes["total_amount"] == Decimal("90.00")
        assert credit_notes["applied_amount"] == Decimal("30.00")
        assert credit_notes["unapplied_amount"] == Decimal("60.00")

        assert report["debit_notes"]["total_amount"] == Decimal("25.00")
        assert report["debit_notes"]["applied_count"] == 0
        assert report["net_amount"] == Decimal("65.00")

    def test_cancelled_notes_carry_no_amount(self, actor, customer):
        note = _credit_note(actor, customer, "40.00")
        sales.cancel_credit_note(actor, note.public_id)

        credit_notes = queries.credit_debit_summary(actor.company)["credit_notes"]
        assert credit_notes["cancelled_count"] == 1
        assert credit_notes["total_amount"] == Decimal("0")


class TestSubledgerReconciliation:

    def test_documents_keep_control_accounts_reconciled(self, actor, customer, trading):
        _credit_note(actor, customer, "15.00")

        report = queries.subledger_reconciliation(actor.company)
        assert report["is_reconciled"], report
        rows = {row["role"]: row for row in report["accounts"]}
        assert set(rows) == {"receivable", "ic_receivable", "payable", "ic_payable"}
        assert rows["receivable"]["ledger_balance"] == Decimal("325.00")
        assert rows["payable"]["subledger_balance"] == Decimal("200.00")

    def test_manual_entry_to_control_account_shows_difference(self, actor, today, trading):
        _manual_entry(actor, today, "receivable", "revenue", "25.00")

        report = queries.subledger_reconciliation(actor.company)
        assert not report["is_reconciled"]
        rows = {row["role"]: row for row in report["accounts"]}
        assert rows["receivable"]["difference"] == Decimal("25.00")
        assert rows["payable"]["is_reconciled"]


class TestStatements:

    def test_income_statement_nets_contra_accounts(self, actor, trading):
        report = queries.income_statement(actor.company)
        assert report["total_revenue"] == Decimal("440.00")
        assert report["total_expenses"] == Decimal("250.00")
        assert report["net_income"] == Decimal("190.00")

    def test_balance_sheet_balances_with_current_earnings(self, actor, trading):
        report = queries.balance_sheet(actor.company)
        assert report["is_balanced"], report
        assert report["equity"]["current_earnings"] == Decimal("190.00")
        assert report["total_assets"] == report["total_liabilities_and_equity"]

    def test_trial_balance_reports_lag(self, actor, trading):
        report = queries.trial_balance(actor.company)
        assert report["is_balanced"]
        assert report["lag"] == 0


class TestIntercompanyReports:

    @pytest.fixture
    def invoiced(self, actor, second_company):
        txn = intercompany.create_intercompany_order(
            actor,
            target_company_public_id=second_company.public_id,
            items=[line(description="Resin", quantity="8", unit_price="25.00")],
        ).data
        intercompany.invoice_intercompany_transaction(actor, txn.public_id)
        return txn

    def test_balances_per_related_company(self, company, second_company, invoiced):
        seller = queries.intercompany_balances(company)
        buyer = queries.intercompany_balances(second_company)

        assert seller["companies"][0]["company_public_id"] == str(second_company.public_id)
        assert seller["total_receivable"] == Decimal("200.00")
        assert seller["net"] == Decimal("200.00")
        assert buyer["total_payable"] == Decimal("200.00")
        assert buyer["net"] == Decimal("-200.00")

    def test_reconciliation_covers_transactions_and_pairs(self, tenant, invoiced):
        report = queries.intercompany_reconciliation(tenant)
        assert report["is_reconciled"]
        [row] = report["transactions"]
        assert row["reference"] == invoiced.reference
        assert row["source_receivable"] == row["target_payable"] == Decimal("200.00")
        assert len(report["company_pairs"]) == 1

    def test_tenant_summary_eliminations(self, tenant, company, second_company, invoiced):
        report = queries.tenant_summary(tenant)
        assert [row["company_name"] for row in report["companies"]] == sorted([company.name, second_company.name])
        assert report["eliminations"]["intercompany_receivable"] == Decimal("200.00")
        assert report["eliminations"]["intercompany_payable"] == Decimal("200.00")
        assert report["eliminations"]["difference"] == Decimal("0.00")
        assert report["totals"]["invoices"] == 1
        assert report["totals"]["bills"] == 1


class TestOrderTracking:

    @pytest.fixture
    def sales_order(self, actor, customer):
        order = sales.create_sales_order(
            actor,
            customer_public_id=customer.public_id,
            lines=[line(description="Crate", quantity="10", unit_price="20.00")],
            confirm=True,
        ).data
        invoice = sales.create_invoice(actor, sales_order_public_id=order.public_id, quantities={"1": "4"}).data
        assert sales.issue_invoice(actor, invoice.public_id).success
        assert sales.record_receipt(actor, invoice.public_id, "50.00").success
        return order

    def test_sales_order_with_invoices_and_receipts(self, actor, sales_order):
        sales.create_sales_order(
            actor,
            customer_public_id=sales_order.customer.public_id,
            lines=[line(unit_price="35.00")],
            confirm=True,
        )

        report = queries.sales_order_tracking(actor.company)
        assert report["order_count"] == 2
        assert report["total_ordered"] == Decimal("235.00")
        assert report["total_invoiced"] == Decimal("80.00")
        assert report["total_received"] == Decimal("50.00")
        assert report["total_outstanding"] == Decimal("30.00")

        rows = {row["number"]: row for row in report["orders"]}
        tracked = rows[sales_order.number]
        assert tracked["workflow_status"] == "PARTIALLY_PAID"
        assert tracked["customer_name"] == "Globex Retail"
        [invoice] = tracked["invoices"]
        assert invoice["balance_due"] == Decimal("30.00")
        assert [r["amount"] for r in invoice["receipts"]] == [Decimal("50.00")]

        [untouched] = [row for number, row in rows.items() if number != sales_order.number]
        assert untouched["workflow_status"] == "ORDERED"
        assert untouched["invoices"] == []

    def test_void_receipts_are_left_out(self, actor, sales_order):
        receipt = sales_order.invoices.get().receipts.get()
        assert sales.void_receipt(actor, receipt.public_id).success

        [row] = queries.sales_order_tracking(actor.company)["orders"]
        assert row["received"] == Decimal("0.00")
        assert row["invoices"][0]["receipts"] == []
        assert row["workflow_status"] == "INVOICED"

    def test_customer_filter(self, actor, sales_order):
        report = queries.sales_order_tracking(actor.company, customer=str(uuid.uuid4()))
        assert report["order_count"] == 0
        report = queries.sales_order_tracking(actor.company, customer=str(sales_order.customer.public_id))
        assert report["order_count"] == 1

    def test_purchase_order_with_bills_and_payments(self, actor, vendor):
        order = purchases.create_purchase_order(
            actor,
            vendor_public_id=vendor.public_id,
            lines=[line(description="Pallet", quantity="5", unit_price="30.00")],
            confirm=True,
        ).data
        bill = purchases.create_bill(actor, purchase_order_public_id=order.public_id).data
        assert purchases.post_bill(actor, bill.public_id).success
        assert purchases.record_payment(actor, bill.public_id, "150.00").success

        report = queries.purchase_order_tracking(actor.company)
        assert report["total_billed"] == Decimal("150.00")
        assert report["total_paid"] == Decimal("150.00")
        assert report["total_outstanding"] == Decimal("0.00")
        [row] = report["orders"]
        assert row["vendor_name"] == vendor.name
        assert row["workflow_status"] == "PAID"
        assert len(row["bills"][0]["payments"]) == 1


class TestReceiptTracking:

    def test_groups_receipts_by_invoice(self, actor, trading):
        first = trading["invoices"][0]
        sales.record_receipt(actor, first.public_id, "300.00")

        report = queries.receipt_tracking(actor.company)
        assert report["invoice_count"] == 1
        assert report["receipt_count"] == 2
        assert report["total_invoiced"] == Decimal("440.00")
        assert report["total_received"] == Decimal("440.00")
        assert report["paid_count"] == 1
        assert report["collection_rate"] == Decimal("100.00")
        [row] = report["invoices"]
        assert row["number"] == first.number
        assert row["payment_status"] == "PAID"

    def test_partial_collection(self, actor, trading):
        report = queries.receipt_tracking(actor.company)
        [row] = report["invoices"]
        assert row["received"] == Decimal("140.00")
        assert row["balance_due"] == Decimal("300.00")
        assert row["collected_percent"] == Decimal("31.82")
        assert row["payment_status"] == "PARTIAL"
        assert report["partial_count"] == 1

    def test_date_range(self, actor, today, trading):
        report = queries.receipt_tracking(actor.company, date_from=today + timedelta(days=1))
        assert report["invoice_count"] == 0
        assert report["collection_rate"] == Decimal("0.00")


class TestReceiptEligibleTransactions:

    def test_open_invoices_with_balance(self, actor, customer, trading):
        paid = issued_invoice(actor, customer, [line(unit_price="20.00")])
        sales.record_receipt(actor, paid.public_id, "20.00")

        report = queries.receipt_eligible_transactions(actor.company)
        balances = {row["number"]: row["balance_due"] for row in report["invoices"]}
        assert balances == {
            trading["invoices"][0].number: Decimal("300.00"),
            trading["invoices"][1].number: Decimal("40.00"),
        }
        assert report["intercompany_transactions"] == []

    def test_intercompany_invoices_listed_as_transactions(self, company, second_company, actor):
        txn = intercompany.create_intercompany_order(
            actor,
            target_company_public_id=second_company.public_id,
            items=[line(description="Resin", quantity="8", unit_price="25.00")],
        ).data
        intercompany.invoice_intercompany_transaction(actor, txn.public_id)

        seller = queries.receipt_eligible_transactions(company)
        assert seller["invoices"] == []
        [row] = seller["intercompany_transactions"]
        assert row["reference"] == txn.reference
        assert row["outstanding"] == Decimal("200.00")

        buyer = queries.receipt_eligible_transactions(second_company)
        assert buyer["intercompany_transactions"] == []


class TestCashReports:

    def test_payment_reconciliation_matches_documents(self, actor, trading):
        report = queries.payment_reconciliation(actor.company)
        assert report["is_reconciled"], report
        assert report["receipts"] == {"count": 1, "total": Decimal("140.00")}
        assert report["payments"] == {"count": 1, "total": Decimal("50.00")}
        assert report["invoices"]["amount_paid"] == Decimal("140.00")
        assert report["bills"]["amount_paid"] == Decimal("50.00")
        assert report["cash_balance"] == Decimal("90.00")
        assert report["net_settlements"] == Decimal("90.00")
        assert report["other_movements"] == Decimal("0.00")

    def test_manual_cash_entry_shows_as_other_movement(self, actor, today, trading):
        _manual_entry(actor, today, "cash", "revenue", "25.00")

        report = queries.payment_reconciliation(actor.company)
        assert report["cash_balance"] == Decimal("115.00")
        assert report["other_movements"] == Decimal("25.00")
        assert report["is_reconciled"]

    def test_void_receipt_drops_out(self, actor, trading):
        receipt = trading["invoices"][0].receipts.get()
        assert sales.void_receipt(actor, receipt.public_id).success

        report = queries.payment_reconciliation(actor.company)
        assert report["receipts"]["count"] == 0
        assert report["invoices"]["amount_paid"] == Decimal("0.00")
        assert report["cash_balance"] == Decimal("-50.00")
        assert report["is_reconciled"]

    def test_cash_flow_statement(self, actor, trading):
        report = queries.cash_flow_statement(actor.company)
        operating = report["operating_activities"]
        assert operating["cash_from_customers"]["total"] == Decimal("140.00")
        assert operating["cash_from_customers"]["trade"] == Decimal("140.00")
        assert operating["cash_to_suppliers"]["count"] == 1
        assert operating["net_operating_cash"] == Decimal("90.00")
        assert report["cash_position"] == Decimal("90.00")
        assert report["receivables"] == Decimal("340.00")
        assert report["payables"] == Decimal("200.00")

    def test_cash_flow_period_excludes_earlier_settlements(self, actor, today, trading):
        report = queries.cash_flow_statement(actor.company, date_from=today + timedelta(days=1))
        assert report["operating_activities"]["net_operating_cash"] == Decimal("0.00")
        assert report["cash_position"] == Decimal("90.00")


class TestReportApi:

    def test_ar_summary_json(self, api_client, trading):
        response = api_client.get("/api/reports/ar-summary/")
        assert response.status_code == 200
        assert Decimal(str(response.json()["total_outstanding"])) == Decimal("340.00")

    def test_xlsx_export(self, api_client, trading):
        response = api_client.get("/api/reports/ar-summary/", {"export": "xlsx"})
        assert response.status_code == 200
        assert response["Content-Type"] == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        assert response["Content-Disposition"].startswith('attachment; filename="ar_aging_')

    def test_csv_export(self, api_client, trading):
        response = api_client.get("/api/reports/trial-balance/", {"export": "csv"})
        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/csv")

    def test_unknown_export_format(self, api_client):
        response = api_client.get("/api/reports/ap-summary/", {"export": "pdf"})
        assert response.status_code == 400

    def test_viewer_can_read_but_not_export(self, viewer_client):
        assert viewer_client.get("/api/reports/ar-summary/").status_code == 200
        assert viewer_client.get("/api/reports/ar-summary/", {"export": "csv"}).status_code == 403

    def test_tenant_reconciliation_endpoint(self, api_client, tenant):
        response = api_client.get("/api/reports/intercompany-reconciliation/")
        assert response.status_code == 200
        assert response.json()["tenant"] == tenant.name

    @pytest.mark.parametrize("path", [
        "sales-order-tracking",
        "purchase-order-tracking",
        "receipt-tracking",
        "receipt-eligible-transactions",
        "payment-reconciliation",
        "cash-flow-statement",
    ])
    def test_tracking_and_cash_endpoints(self, api_client, trading, path):
        response = api_client.get(f"/api/reports/{path}/")
        assert response.status_code == 200

    def test_payment_reconciliation_json(self, api_client, trading):
        body = api_client.get("/api/reports/payment-reconciliation/").json()
        assert body["is_reconciled"] is True
        assert Decimal(str(body["cash_balance"])) == Decimal("90.00")

    def test_receipt_tracking_csv_export(self, api_client, trading):
        response = api_client.get("/api/reports/receipt-tracking/", {"export": "csv"})
        assert response.status_code == 200
        assert trading["invoices"][0].number in response.content.decode()
