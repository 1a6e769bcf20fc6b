# purchases/urls.py
"""
URL configuration for the purchases API.

Endpoints:
- /vendors/ - vendors (intercompany vendors carry related_company)
- /purchase-orders/ - purchase orders with confirm/cancel/close actions
- /bills/ - bills with post/void actions
- /payments/ - payments with void action
- /debit-notes/ - debit notes with issue/apply/cancel actions
"""

from django.urls import path

from .views import (
    VendorListCreateView,
    VendorDetailView,
    PurchaseOrderListCreateView,
    PurchaseOrderDetailView,
    PurchaseOrderActionView,
    BillListCreateView,
    BillDetailView,
    BillPostView,
    BillVoidView,
    PaymentListCreateView,
    PaymentVoidView,
    DebitNoteListCreateView,
    DebitNoteDetailView,
    DebitNoteIssueView,
    DebitNoteApplyView,
    DebitNoteCancelView,
)

app_name = "purchases"

urlpatterns = [
    # Vendors
    path("vendors/", VendorListCreateView.as_view(), name="vendor-list-create"),
    path("vendors/<uuid:public_id>/", VendorDetailView.as_view(), name="vendor-detail"),

    # Purchase orders
    path("purchase-orders/", PurchaseOrderListCreateView.as_view(), name="order-list-create"),
    path("purchase-orders/<uuid:public_id>/", PurchaseOrderDetailView.as_view(), name="order-detail"),
    path(
        "purchase-orders/<uuid:public_id>/confirm/",
        PurchaseOrderActionView.as_view(order_action="confirm"),
        name="order-confirm",
    ),
    path(
        "purchase-orders/<uuid:public_id>/cancel/",
        PurchaseOrderActionView.as_view(order_action="cancel"),
        name="order-cancel",
    ),
    path(
        "purchase-orders/<uuid:public_id>/close/",
        PurchaseOrderActionView.as_view(order_action="close"),
        name="order-close",
    ),

    # Bills
    path("bills/", BillListCreateView.as_view(), name="bill-list-create"),
    path("bills/<uuid:public_id>/", BillDetailView.as_view(), name="bill-detail"),
    path("bills/<uuid:public_id>/post/", BillPostView.as_view(), name="bill-post"),
    path("bills/<uuid:public_id>/void/", BillVoidView.as_view(), name="bill-void"),

    # Payments
    path("payments/", PaymentListCreateView.as_view(), name="payment-list-create"),
    path("payments/<uuid:public_id>/void/", PaymentVoidView.as_view(), name="payment-void"),

    # Debit notes
    path("debit-notes/", DebitNoteListCreateView.as_view(), name="debit-note-list-create"),
    path("debit-notes/<uuid:public_id>/", DebitNoteDetailView.as_view(), name="debit-note-detail"),
    path("debit-notes/<uuid:public_id>/issue/", DebitNoteIssueView.as_view(), name="debit-note-issue"),
    path("debit-notes/<uuid:public_id>/apply/", DebitNoteApplyView.as_view(), name="debit-note-apply"),
    path("debit-notes/<uuid:public_id>/cancel/", DebitNoteCancelView.as_view(), name="debit-note-cancel"),
]
