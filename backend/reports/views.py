# reports/views.py
"""
Read-only report endpoints.

Company reports cover the actor's active company; tenant reports cover
every company of its tenant. Exportable reports take ?export=xlsx|csv
and need reports.export.
"""

from datetime import date
from decimal import Decimal

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from accounting.trade import as_date
from accounting.policies import PolicyViolation
from . import exports, queries


def _jsonable(value):
    """Decimals as strings, dates as ISO strings, recursively."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _bad_request(message):
    return Response({"detail": message}, status=status.HTTP_400_BAD_REQUEST)


class ReportView(APIView):
    """
    Base class: subclasses implement build(actor, params) and, when the
    report can be exported, name export_rows/export_columns.
    """
    permission_classes = [IsAuthenticated]
    tenant_scope = False
    export_title = ""
    export_columns = None
    export_rows_key = None

    def build(self, actor, params):
        raise NotImplementedError

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")
        if self.tenant_scope and actor.company.tenant_id is None:
            return _bad_request("The active company does not belong to a tenant.")

        try:
            report = self.build(actor, request.query_params)
        except PolicyViolation as exc:
            return _bad_request(str(exc))

        export_format = request.query_params.get("export")
        if export_format and self.export_columns:
            require(actor, "reports.export")
            if export_format not in exports.ExportFormat.CHOICES:
                return _bad_request(f"Unknown export format '{export_format}'.")
            return exports.create_export_response(
                report[self.export_rows_key],
                self.export_columns,
                export_format,
                filename=f"{self.export_title.lower().replace(' ', '_')}_{date.today():%Y%m%d}",
                title=f"{self.export_title} - {actor.company.name}",
            )
        return Response(_jsonable(report))


def _optional_date(params, name):
    value = params.get(name)
    return as_date(value) if value else None


class ARSummaryView(ReportView):
    """GET /api/reports/ar-summary/?as_of=YYYY-MM-DD"""
    export_title = "AR Aging"
    export_columns = exports.PARTY_AGING_COLUMNS
    export_rows_key = "customers"

    def build(self, actor, params):
        return queries.ar_summary(actor.company, _optional_date(params, "as_of"))


class APSummaryView(ReportView):
    """GET /api/reports/ap-summary/?as_of=YYYY-MM-DD"""
    export_title = "AP Aging"
    export_columns = exports.PARTY_AGING_COLUMNS
    export_rows_key = "vendors"

    def build(self, actor, params):
        return queries.ap_summary(actor.company, _optional_date(params, "as_of"))


class CreditDebitSummaryView(ReportView):
    """GET /api/reports/credit-debit-summary/?date_from=&date_to="""

    def build(self, actor, params):
        return queries.credit_debit_summary(
            actor.company,
            _optional_date(params, "date_from"),
            _optional_date(params, "date_to"),
        )


class SubledgerReconciliationView(ReportView):
    """GET /api/reports/subledger-reconciliation/"""
    export_title = "Subledger Reconciliation"
    export_columns = exports.SUBLEDGER_COLUMNS
    export_rows_key = "accounts"

    def build(self, actor, params):
        return queries.subledger_reconciliation(actor.company)


class IntercompanyBalancesView(ReportView):
    """GET /api/reports/intercompany-balances/"""

    def build(self, actor, params):
        require(actor, "intercompany.view")
        return queries.intercompany_balances(actor.company)


class IntercompanyReconciliationView(ReportView):
    """GET /api/reports/intercompany-reconciliation/"""
    tenant_scope = True
    export_title = "Intercompany Reconciliation"
    export_columns = exports.INTERCOMPANY_RECONCILIATION_COLUMNS
    export_rows_key = "transactions"

    def build(self, actor, params):
        require(actor, "intercompany.view")
        return queries.intercompany_reconciliation(actor.company.tenant)


class TenantSummaryView(ReportView):
    """GET /api/reports/tenant-summary/"""
    tenant_scope = True
    export_title = "Tenant Summary"
    export_columns = exports.TENANT_SUMMARY_COLUMNS
    export_rows_key = "companies"

    def build(self, actor, params):
        return queries.tenant_summary(actor.company.tenant)


class TrialBalanceView(ReportView):
    """GET /api/reports/trial-balance/"""
    export_title = "Trial Balance"
    export_columns = exports.TRIAL_BALANCE_COLUMNS
    export_rows_key = "accounts"

    def build(self, actor, params):
        return queries.trial_balance(actor.company)


class IncomeStatementView(ReportView):
    """GET /api/reports/income-statement/"""

    def build(self, actor, params):
        return queries.income_statement(actor.company)


class BalanceSheetView(ReportView):
    """GET /api/reports/balance-sheet/"""

    def build(self, actor, params):
        return queries.balance_sheet(actor.company)


class SalesOrderTrackingView(ReportView):
    """GET /api/reports/sales-order-tracking/?date_from=&date_to=&customer=&status="""

    def build(self, actor, params):
        return queries.sales_order_tracking(
            actor.company,
            date_from=_optional_date(params, "date_from"),
            date_to=_optional_date(params, "date_to"),
            customer=params.get("customer"),
            status=params.get("status"),
        )


class PurchaseOrderTrackingView(ReportView):
    """GET /api/reports/purchase-order-tracking/?date_from=&date_to=&vendor=&status="""

    def build(self, actor, params):
        return queries.purchase_order_tracking(
            actor.company,
            date_from=_optional_date(params, "date_from"),
            date_to=_optional_date(params, "date_to"),
            vendor=params.get("vendor"),
            status=params.get("status"),
        )


class ReceiptTrackingView(ReportView):
    """GET /api/reports/receipt-tracking/?date_from=&date_to="""
    export_title = "Receipt Tracking"
    export_columns = exports.RECEIPT_TRACKING_COLUMNS
    export_rows_key = "invoices"

    def build(self, actor, params):
        return queries.receipt_tracking(
            actor.company,
            _optional_date(params, "date_from"),
            _optional_date(params, "date_to"),
        )


class ReceiptEligibleTransactionsView(ReportView):
    """GET /api/reports/receipt-eligible-transactions/"""

    def build(self, actor, params):
        return queries.receipt_eligible_transactions(actor.company)


class PaymentReconciliationView(ReportView):
    """GET /api/reports/payment-reconciliation/"""

    def build(self, actor, params):
        return queries.payment_reconciliation(actor.company)


class CashFlowStatementView(ReportView):
    """GET /api/reports/cash-flow-statement/?date_from=&date_to="""

    def build(self, actor, params):
        return queries.cash_flow_statement(
            actor.company,
            _optional_date(params, "date_from"),
            _optional_date(params, "date_to"),
        )
