# intercompany/urls.py
"""
URL configuration for the intercompany API.

Endpoints:
- /transactions/ - intercompany orders with invoice/settle/cancel actions
- /adjustments/ - symmetric credit/debit note adjustments
"""

from django.urls import path

from .views import (
    AdjustmentDetailView,
    AdjustmentListCreateView,
    TransactionCancelView,
    TransactionDetailView,
    TransactionInvoiceView,
    TransactionListCreateView,
    TransactionSettleView,
)

app_name = "intercompany"

urlpatterns = [
    path("transactions/", TransactionListCreateView.as_view(), name="transaction-list-create"),
    path("transactions/<uuid:public_id>/", TransactionDetailView.as_view(), name="transaction-detail"),
    path("transactions/<uuid:public_id>/invoice/", TransactionInvoiceView.as_view(), name="transaction-invoice"),
    path("transactions/<uuid:public_id>/settle/", TransactionSettleView.as_view(), name="transaction-settle"),
    path("transactions/<uuid:public_id>/cancel/", TransactionCancelView.as_view(), name="transaction-cancel"),

    path("adjustments/", AdjustmentListCreateView.as_view(), name="adjustment-list-create"),
    path("adjustments/<uuid:public_id>/", AdjustmentDetailView.as_view(), name="adjustment-detail"),
]
