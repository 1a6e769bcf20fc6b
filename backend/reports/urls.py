# reports/urls.py
from django.urls import path

from .views import (
    APSummaryView,
    ARSummaryView,
    BalanceSheetView,
    CashFlowStatementView,
    CreditDebitSummaryView,
    IncomeStatementView,
    IntercompanyBalancesView,
    IntercompanyReconciliationView,
    PaymentReconciliationView,
    PurchaseOrderTrackingView,
    ReceiptEligibleTransactionsView,
    ReceiptTrackingView,
    SalesOrderTrackingView,
    SubledgerReconciliationView,
    TenantSummaryView,
    TrialBalanceView,
)

app_name = "reports"

urlpatterns = [
    path("ar-summary/", ARSummaryView.as_view(), name="ar-summary"),
    path("ap-summary/", APSummaryView.as_view(), name="ap-summary"),
    path("credit-debit-summary/", CreditDebitSummaryView.as_view(), name="credit-debit-summary"),
    path("subledger-reconciliation/", SubledgerReconciliationView.as_view(), name="subledger-reconciliation"),
    path("intercompany-balances/", IntercompanyBalancesView.as_view(), name="intercompany-balances"),
    path(
        "intercompany-reconciliation/",
        IntercompanyReconciliationView.as_view(),
        name="intercompany-reconciliation",
    ),
    path("tenant-summary/", TenantSummaryView.as_view(), name="tenant-summary"),
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("sales-order-tracking/", SalesOrderTrackingView.as_view(), name="sales-order-tracking"),
    path("purchase-order-tracking/", PurchaseOrderTrackingView.as_view(), name="purchase-order-tracking"),
    path("receipt-tracking/", ReceiptTrackingView.as_view(), name="receipt-tracking"),
    path(
        "receipt-eligible-transactions/",
        ReceiptEligibleTransactionsView.as_view(),
        name="receipt-eligible-transactions",
    ),
    path("payment-reconciliation/", PaymentReconciliationView.as_view(), name="payment-reconciliation"),
    path("cash-flow-statement/", CashFlowStatementView.as_view(), name="cash-flow-statement"),
]
