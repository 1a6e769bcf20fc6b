# purchases/views.py
"""
Thin views over purchases/commands.py. Mirror of sales/views.py.
"""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from django.shortcuts import get_object_or_404

from accounts.authz import resolve_actor, require
from sales.serializers import (
    NoteApplySerializer,
    PartyCreateSerializer,
    PartyUpdateSerializer,
    VoidSerializer,
    command_lines,
)
from sales.views import filter_documents
from .models import Bill, DebitNote, Payment, PurchaseOrder, Vendor
from .serializers import (
    BillCreateSerializer,
    BillSerializer,
    DebitNoteCreateSerializer,
    DebitNoteSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    VendorSerializer,
)
from . import commands


def _fail(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


# =============================================================================
# Vendors
# =============================================================================

class VendorListCreateView(APIView):
    """
    GET /api/purchases/vendors/ -> ?intercompany=1
    POST /api/purchases/vendors/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        vendors = Vendor.objects.filter(company=actor.company).select_related(
            "payment_term", "related_company",
        )
        if request.query_params.get("intercompany") in ("1", "true"):
            vendors = vendors.filter(related_company__isnull=False)
        return Response(VendorSerializer(vendors, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PartyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.create_vendor(actor, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(VendorSerializer(result.data).data, status=status.HTTP_201_CREATED)


class VendorDetailView(APIView):
    """
    GET /api/purchases/vendors/<public_id>/
    PATCH /api/purchases/vendors/<public_id>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        vendor = get_object_or_404(Vendor, company=actor.company, public_id=public_id)
        return Response(VendorSerializer(vendor).data)

    def patch(self, request, public_id):
        actor = resolve_actor(request)
        serializer = PartyUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        result = commands.update_vendor(actor, public_id, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(VendorSerializer(result.data).data)


# =============================================================================
# Purchase Orders
# =============================================================================

class PurchaseOrderListCreateView(APIView):
    """
    GET /api/purchases/purchase-orders/ -> ?status=&vendor=
    POST /api/purchases/purchase-orders/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        orders = PurchaseOrder.objects.filter(company=actor.company).select_related(
            "vendor",
        ).prefetch_related("lines", "lines__product")

        params = request.query_params
        if params.get("status"):
            orders = orders.filter(status=params["status"])
        if params.get("vendor"):
            orders = orders.filter(vendor__public_id=params["vendor"])
        return Response(PurchaseOrderSerializer(orders, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PurchaseOrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_purchase_order(
            actor,
            vendor_public_id=data["vendor_public_id"],
            order_date=data.get("order_date"),
            lines=command_lines(data["lines"]),
            expected_date=data.get("expected_date"),
            reference=data["reference"],
            notes=data["notes"],
            confirm=data["confirm"],
        )
        if not result.success:
            return _fail(result)
        return Response(PurchaseOrderSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PurchaseOrderDetailView(APIView):
    """GET /api/purchases/purchase-orders/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        order = get_object_or_404(PurchaseOrder, company=actor.company, public_id=public_id)
        return Response(PurchaseOrderSerializer(order).data)


class PurchaseOrderActionView(APIView):
    """POST /api/purchases/purchase-orders/<public_id>/{confirm,cancel,close}/"""
    permission_classes = [IsAuthenticated]
    order_action = None

    ACTIONS = {
        "confirm": commands.confirm_purchase_order,
        "cancel": commands.cancel_purchase_order,
        "close": commands.close_purchase_order,
    }

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = self.ACTIONS[self.order_action](actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(PurchaseOrderSerializer(result.data).data)


# =============================================================================
# Bills
# =============================================================================

class BillListCreateView(APIView):
    """
    GET /api/purchases/bills/ -> ?status=&vendor=&overdue=1&date_from=&date_to=
    POST /api/purchases/bills/ -> DRAFT bill, from lines or from a purchase order
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        bills = Bill.objects.filter(company=actor.company).select_related(
            "vendor", "purchase_order",
        ).prefetch_related("lines", "lines__account", "lines__product")
        bills = filter_documents(bills, request.query_params, "vendor")
        return Response(BillSerializer(bills, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = BillCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_bill(
            actor,
            vendor_public_id=data.get("vendor_public_id"),
            bill_date=data.get("bill_date"),
            lines=command_lines(data.get("lines") or []),
            purchase_order_public_id=data.get("purchase_order_public_id"),
            quantities=data.get("quantities"),
            due_date=data.get("due_date"),
            vendor_invoice_number=data["vendor_invoice_number"],
            reference=data["reference"],
            notes=data["notes"],
        )
        if not result.success:
            return _fail(result)
        return Response(BillSerializer(result.data).data, status=status.HTTP_201_CREATED)


class BillDetailView(APIView):
    """GET /api/purchases/bills/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        bill = get_object_or_404(Bill, company=actor.company, public_id=public_id)
        return Response(BillSerializer(bill).data)


class BillPostView(APIView):
    """POST /api/purchases/bills/<public_id>/post/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.post_bill(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(BillSerializer(result.data).data)


class BillVoidView(APIView):
    """POST /api/purchases/bills/<public_id>/void/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.void_bill(actor, public_id, reason=serializer.validated_data["reason"])
        if not result.success:
            return _fail(result)
        return Response(BillSerializer(result.data).data)


# =============================================================================
# Payments
# =============================================================================

class PaymentListCreateView(APIView):
    """
    GET /api/purchases/payments/ -> ?bill=&vendor=
    POST /api/purchases/payments/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        payments = Payment.objects.filter(company=actor.company).select_related(
            "vendor", "bill", "cash_account",
        )
        params = request.query_params
        if params.get("bill"):
            payments = payments.filter(bill__public_id=params["bill"])
        if params.get("vendor"):
            payments = payments.filter(vendor__public_id=params["vendor"])
        return Response(PaymentSerializer(payments, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.record_payment(
            actor,
            bill_public_id=data["bill_public_id"],
            amount=data["amount"],
            payment_date=data.get("date"),
            payment_method=data["payment_method"],
            reference=data["reference"],
            cash_account_public_id=data.get("cash_account_public_id"),
        )
        if not result.success:
            return _fail(result)
        return Response(PaymentSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PaymentVoidView(APIView):
    """POST /api/purchases/payments/<public_id>/void/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.void_payment(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(PaymentSerializer(result.data).data)


# =============================================================================
# Debit Notes
# =============================================================================

class DebitNoteListCreateView(APIView):
    """
    GET /api/purchases/debit-notes/ -> ?status=&vendor=
    POST /api/purchases/debit-notes/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        notes = DebitNote.objects.filter(company=actor.company).select_related(
            "vendor", "bill",
        ).prefetch_related("lines", "lines__account", "applications", "applications__bill")
        params = request.query_params
        if params.get("status"):
            notes = notes.filter(status=params["status"])
        if params.get("vendor"):
            notes = notes.filter(vendor__public_id=params["vendor"])
        return Response(DebitNoteSerializer(notes, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = DebitNoteCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_debit_note(
            actor,
            vendor_public_id=data["vendor_public_id"],
            reason=data["reason"],
            lines=command_lines(data["lines"]),
            note_date=data.get("note_date"),
            bill_public_id=data.get("bill_public_id"),
            reference=data["reference"],
        )
        if not result.success:
            return _fail(result)
        return Response(DebitNoteSerializer(result.data).data, status=status.HTTP_201_CREATED)


class DebitNoteDetailView(APIView):
    """GET /api/purchases/debit-notes/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "purchases.view")
        note = get_object_or_404(DebitNote, company=actor.company, public_id=public_id)
        return Response(DebitNoteSerializer(note).data)


class DebitNoteIssueView(APIView):
    """POST /api/purchases/debit-notes/<public_id>/issue/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.issue_debit_note(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(DebitNoteSerializer(result.data).data)


class DebitNoteApplyView(APIView):
    """
    POST /api/purchases/debit-notes/<public_id>/apply/

    Body: {"document_public_id": <bill>, "amount": optional}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = NoteApplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.apply_debit_note(
            actor, public_id, data["document_public_id"], amount=data.get("amount"),
        )
        if not result.success:
            return _fail(result)
        return Response(DebitNoteSerializer(result.data).data)


class DebitNoteCancelView(APIView):
    """POST /api/purchases/debit-notes/<public_id>/cancel/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        result = commands.cancel_debit_note(actor, public_id)
        if not result.success:
            return _fail(result)
        return Response(DebitNoteSerializer(result.data).data)
