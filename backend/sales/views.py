# sales/views.py
"""
Thin views over sales/commands.py.

Documents are addressed by public_id in URLs. Reads check the
permission here; writes leave the permission check to the command.
"""

from datetime import date

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from django.shortcuts import get_object_or_404

from accounts.authz import resolve_actor, require, require_any
from accounting.trade import TradeDocument
from .models import CreditNote, Customer, Invoice, PaymentTerm, Product, Receipt, SalesOrder
from .serializers import (
    CreditNoteCreateSerializer,
    CreditNoteSerializer,
    CustomerSerializer,
    InvoiceCreateSerializer,
    InvoiceSerializer,
    NoteApplySerializer,
    PartyCreateSerializer,
    PartyUpdateSerializer,
    PaymentTermCreateSerializer,
    PaymentTermSerializer,
    ProductCreateSerializer,
    ProductSerializer,
    ProductUpdateSerializer,
    ReceiptCreateSerializer,
    ReceiptSerializer,
    SalesOrderCreateSerializer,
    SalesOrderSerializer,
    VoidSerializer,
    command_lines,
)
from . import commands


def _fail(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


def filter_documents(queryset, params, party_field):
    """Query params shared by invoice and bill lists: status, <party>, overdue, date_from, date_to."""
    if params.get("status"):
        queryset = queryset.filter(status=params["status"])
    if params.get(party_field):
        queryset = queryset.filter(**{f"{party_field}__public_id": params[party_field]})
    if params.get("overdue") in ("1", "true"):
        queryset = queryset.filter(
            status__in=TradeDocument.OPEN_STATUSES,
            balance_due__gt=0,
            due_date__lt=date.today(),
        )
    if params.get("date_from"):
        queryset = queryset.filter(document_date__gte=params["date_from"])
    if params.get("date_to"):
        queryset = queryset.filter(document_date__lte=params["date_to"])
    return queryset


# =============================================================================
# Catalogue
# =============================================================================

class PaymentTermListCreateView(APIView):
    """
    GET /api/sales/payment-terms/
    POST /api/sales/payment-terms/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require_any(actor, "sales.view", "purchases.view")
        terms = PaymentTerm.objects.filter(company=actor.company)
        return Response(PaymentTermSerializer(terms, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PaymentTermCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.create_payment_term(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(PaymentTermSerializer(result.data).data, status=status.HTTP_201_CREATED)


class ProductListCreateView(APIView):
    """
    GET /api/sales/products/
    POST /api/sales/products/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require_any(actor, "sales.view", "purchases.view")
        products = Product.objects.filter(company=actor.company).select_related(
            "revenue_account", "expense_account",
        )
        if request.query_params.get("active") in ("1", "true"):
            products = products.filter(is_active=True)
        return Response(ProductSerializer(products, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = ProductCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.create_product(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(ProductSerializer(result.data).data, status=status.HTTP_201_CREATED)


class ProductDetailView(APIView):
    """
    GET /api/sales/products/<public_id>/
    PATCH /api/sales/products/<public_id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require_any(actor, "sales.view", "purchases.view")
        product = get_object_or_404(Product, company=actor.company, public_id=public_id)
        return Response(ProductSerializer(product).data)

    def patch(self, request, public_id):
        actor = resolve_actor(request)
        serializer = ProductUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = commands.update_product(actor, public_id, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(ProductSerializer(result.data).data)


# =============================================================================
# Customers
# =============================================================================

class CustomerListCreateView(APIView):
    """
    GET /api/sales/customers/ -> ?intercompany=1 for intercompany customers only
    POST /api/sales/customers/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        customers = Customer.objects.filter(company=actor.company).select_related(
            "payment_term", "related_company",
        )
        if request.query_params.get("intercompany") in ("1", "true"):
            customers = customers.filter(related_company__isnull=False)
        return Response(CustomerSerializer(customers, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PartyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.create_customer(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(CustomerSerializer(result.data).data, status=status.HTTP_201_CREATED)


class CustomerDetailView(APIView):
    """
    GET /api/sales/customers/<public_id>/
    PATCH /api/sales/customers/<public_id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        customer = get_object_or_404(Customer, company=actor.company, public_id=public_id)
        return Response(CustomerSerializer(customer).data)

    def patch(self, request, public_id):
        actor = resolve_actor(request)
        serializer = PartyUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = commands.update_customer(actor, public_id, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(CustomerSerializer(result.data).data)


# =============================================================================
# Sales Orders
# =============================================================================

class SalesOrderListCreateView(APIView):
    """
    GET /api/sales/sales-orders/ -> ?status=&customer=
    POST /api/sales/sales-orders/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        orders = SalesOrder.objects.filter(company=actor.company).select_related(
            "customer",
        ).prefetch_related("lines", "lines__product")

        params = request.query_params
        if params.get("status"):
            orders = orders.filter(status=params["status"])
        if params.get("customer"):
            orders = orders.filter(customer__public_id=params["customer"])
        return Response(SalesOrderSerializer(orders, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = SalesOrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_sales_order(
            actor,
            customer_public_id=data["customer_public_id"],
            order_date=data.get("order_date"),
            lines=command_lines(data["lines"]),
            expected_date=data.get("expected_date"),
            reference=data["reference"],
            notes=data["notes"],
            confirm=data["confirm"],
        )
        if not result.success:
            return _fail(result)
        return Response(SalesOrderSerializer(result.data).data, status=status.HTTP_201_CREATED)


class SalesOrderDetailView(APIView):
    """GET /api/sales/sales-orders/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        order = get_object_or_404(SalesOrder, company=actor.company, public_id=public_id)
        return Response(SalesOrderSerializer(order).data)


class SalesOrderActionView(APIView):
    """POST /api/sales/sales-orders/<public_id>/{confirm,cancel,close}/"""
    permission_classes = [IsAuthenticated]
    order_action = None

    ACTIONS = {
        "confirm": commands.confirm_sales_order,
        "cancel": commands.cancel_sales_order,
        "close": commands.close_sales_order,
    }

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = self.ACTIONS[self.order_action](actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(SalesOrderSerializer(result.data).data)


# =============================================================================
# Invoices
# =============================================================================

class InvoiceListCreateView(APIView):
    """
    GET /api/sales/invoices/ -> ?status=&customer=&overdue=1&date_from=&date_to=
    POST /api/sales/invoices/ -> DRAFT invoice, from lines or from a sales order
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        invoices = Invoice.objects.filter(company=actor.company).select_related(
            "customer", "sales_order",
        ).prefetch_related("lines", "lines__account", "lines__product")
        invoices = filter_documents(invoices, request.query_params, "customer")
        return Response(InvoiceSerializer(invoices, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = InvoiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_invoice(
            actor,
            customer_public_id=data.get("customer_public_id"),
            invoice_date=data.get("invoice_date"),
            lines=command_lines(data.get("lines") or []),
            sales_order_public_id=data.get("sales_order_public_id"),
            quantities=data.get("quantities"),
            due_date=data.get("due_date"),
            reference=data["reference"],
            notes=data["notes"],
        )
        if not result.success:
            return _fail(result)
        return Response(InvoiceSerializer(result.data).data, status=status.HTTP_201_CREATED)


class InvoiceDetailView(APIView):
    """GET /api/sales/invoices/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        invoice = get_object_or_404(Invoice, company=actor.company, public_id=public_id)
        return Response(InvoiceSerializer(invoice).data)


class InvoiceIssueView(APIView):
    """POST /api/sales/invoices/<public_id>/issue/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.issue_invoice(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(InvoiceSerializer(result.data).data)


class InvoiceVoidView(APIView):
    """POST /api/sales/invoices/<public_id>/void/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.void_invoice(actor, public_id, reason=serializer.validated_data["reason"])
        if not result.success:
            return _fail(result)
        return Response(InvoiceSerializer(result.data).data)


# =============================================================================
# Receipts
# =============================================================================

class ReceiptListCreateView(APIView):
    """
    GET /api/sales/receipts/ -> ?invoice=&customer=
    POST /api/sales/receipts/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        receipts = Receipt.objects.filter(company=actor.company).select_related(
            "customer", "invoice", "cash_account",
        )
        params = request.query_params
        if params.get("invoice"):
            receipts = receipts.filter(invoice__public_id=params["invoice"])
        if params.get("customer"):
            receipts = receipts.filter(customer__public_id=params["customer"])
        return Response(ReceiptSerializer(receipts, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = ReceiptCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.record_receipt(
            actor,
            invoice_public_id=data["invoice_public_id"],
            amount=data["amount"],
            receipt_date=data.get("date"),
            payment_method=data["payment_method"],
            reference=data["reference"],
            cash_account_public_id=data.get("cash_account_public_id"),
        )
        if not result.success:
            return _fail(result)
        return Response(ReceiptSerializer(result.data).data, status=status.HTTP_201_CREATED)


class ReceiptVoidView(APIView):
    """POST /api/sales/receipts/<public_id>/void/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.void_receipt(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(ReceiptSerializer(result.data).data)


# =============================================================================
# Credit Notes
# =============================================================================

class CreditNoteListCreateView(APIView):
    """
    GET /api/sales/credit-notes/ -> ?status=&customer=
    POST /api/sales/credit-notes/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        notes = CreditNote.objects.filter(company=actor.company).select_related(
            "customer", "invoice",
        ).prefetch_related("lines", "lines__account", "applications", "applications__invoice")
        params = request.query_params
        if params.get("status"):
            notes = notes.filter(status=params["status"])
        if params.get("customer"):
            notes = notes.filter(customer__public_id=params["customer"])
        return Response(CreditNoteSerializer(notes, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = CreditNoteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_credit_note(
            actor,
            customer_public_id=data["customer_public_id"],
            reason=data["reason"],
            lines=command_lines(data["lines"]),
            note_date=data.get("note_date"),
            invoice_public_id=data.get("invoice_public_id"),
            reference=data["reference"],
        )
        if not result.success:
            return _fail(result)
        return Response(CreditNoteSerializer(result.data).data, status=status.HTTP_201_CREATED)


class CreditNoteDetailView(APIView):
    """GET /api/sales/credit-notes/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "sales.view")
        note = get_object_or_404(CreditNote, company=actor.company, public_id=public_id)
        return Response(CreditNoteSerializer(note).data)


class CreditNoteIssueView(APIView):
    """POST /api/sales/credit-notes/<public_id>/issue/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.issue_credit_note(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(CreditNoteSerializer(result.data).data)


class CreditNoteApplyView(APIView):
    """
    POST /api/sales/credit-notes/<public_id>/apply/

    Body: {"document_public_id": <invoice>, "amount": optional}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = NoteApplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.apply_credit_note(
            actor, public_id, data["document_public_id"], amount=data.get("amount"),
        )
        if not result.success:
            return _fail(result)
        return Response(CreditNoteSerializer(result.data).data)


class CreditNoteCancelView(APIView):
    """POST /api/sales/credit-notes/<public_id>/cancel/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.cancel_credit_note(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(CreditNoteSerializer(result.data).data)
