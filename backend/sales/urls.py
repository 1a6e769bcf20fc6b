# sales/urls.py
"""
URL configuration for the sales API.

Endpoints:
- /payment-terms/, /products/ - catalogue shared with purchases
- /customers/ - customers (intercompany customers carry related_company)
- /sales-orders/ - sales orders with confirm/cancel/close actions
- /invoices/ - invoices with issue/void actions
- /receipts/ - receipts with void action
- /credit-notes/ - credit notes with issue/apply/cancel actions
"""

from django.urls import path

from .views import (
    PaymentTermListCreateView,
    ProductListCreateView,
    ProductDetailView,
    CustomerListCreateView,
    CustomerDetailView,
    SalesOrderListCreateView,
    SalesOrderDetailView,
    SalesOrderActionView,
    InvoiceListCreateView,
    InvoiceDetailView,
    InvoiceIssueView,
    InvoiceVoidView,
    ReceiptListCreateView,
    ReceiptVoidView,
    CreditNoteListCreateView,
    CreditNoteDetailView,
    CreditNoteIssueView,
    CreditNoteApplyView,
    CreditNoteCancelView,
)

app_name = "sales"

urlpatterns = [
    # Catalogue
    path("payment-terms/", PaymentTermListCreateView.as_view(), name="payment-term-list-create"),
    path("products/", ProductListCreateView.as_view(), name="product-list-create"),
    path("products/<uuid:public_id>/", ProductDetailView.as_view(), name="product-detail"),

    # Customers
    path("customers/", CustomerListCreateView.as_view(), name="customer-list-create"),
    path("customers/<uuid:public_id>/", CustomerDetailView.as_view(), name="customer-detail"),

    # Sales orders
    path("sales-orders/", SalesOrderListCreateView.as_view(), name="order-list-create"),
    path("sales-orders/<uuid:public_id>/", SalesOrderDetailView.as_view(), name="order-detail"),
    path(
        "sales-orders/<uuid:public_id>/confirm/",
        SalesOrderActionView.as_view(order_action="confirm"),
        name="order-confirm",
    ),
    path(
        "sales-orders/<uuid:public_id>/cancel/",
        SalesOrderActionView.as_view(order_action="cancel"),
        name="order-cancel",
    ),
    path(
        "sales-orders/<uuid:public_id>/close/",
        SalesOrderActionView.as_view(order_action="close"),
        name="order-close",
    ),

    # Invoices
    path("invoices/", InvoiceListCreateView.as_view(), name="invoice-list-create"),
    path("invoices/<uuid:public_id>/", InvoiceDetailView.as_view(), name="invoice-detail"),
    path("invoices/<uuid:public_id>/issue/", InvoiceIssueView.as_view(), name="invoice-issue"),
    path("invoices/<uuid:public_id>/void/", InvoiceVoidView.as_view(), name="invoice-void"),

    # Receipts
    path("receipts/", ReceiptListCreateView.as_view(), name="receipt-list-create"),
    path("receipts/<uuid:public_id>/void/", ReceiptVoidView.as_view(), name="receipt-void"),

    # Credit notes
    path("credit-notes/", CreditNoteListCreateView.as_view(), name="credit-note-list-create"),
    path("credit-notes/<uuid:public_id>/", CreditNoteDetailView.as_view(), name="credit-note-detail"),
    path("credit-notes/<uuid:public_id>/issue/", CreditNoteIssueView.as_view(), name="credit-note-issue"),
    path("credit-notes/<uuid:public_id>/apply/", CreditNoteApplyView.as_view(), name="credit-note-apply"),
    path("credit-notes/<uuid:public_id>/cancel/", CreditNoteCancelView.as_view(), name="credit-note-cancel"),
]
