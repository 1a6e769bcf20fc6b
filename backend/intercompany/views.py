# intercompany/views.py
"""
Views for intercompany transactions and adjustments.

A company sees the transactions and adjustments it is either side of.
"""

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from sales.serializers import command_lines
from .models import IntercompanyAdjustment, IntercompanyTransaction
from .serializers import (
    IntercompanyAdjustmentCreateSerializer,
    IntercompanyAdjustmentSerializer,
    IntercompanyCancelSerializer,
    IntercompanyInvoiceSerializer,
    IntercompanyOrderCreateSerializer,
    IntercompanySettleSerializer,
    IntercompanyTransactionSerializer,
)
from . import commands


def _fail(result):
    return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)


def _involving(model, company):
    return model.objects.filter(Q(source_company=company) | Q(target_company=company)).select_related(
        "source_company", "target_company",
    )


class TransactionListCreateView(APIView):
    """
    GET /api/intercompany/transactions/ -> ?status=&payment_status=&role=source|target
    POST /api/intercompany/transactions/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "intercompany.view")
        txns = _involving(IntercompanyTransaction, actor.company)

        params = request.query_params
        if params.get("status"):
            txns = txns.filter(status=params["status"])
        if params.get("payment_status"):
            txns = txns.filter(payment_status=params["payment_status"])
        if params.get("role") == "source":
            txns = txns.filter(source_company=actor.company)
        elif params.get("role") == "target":
            txns = txns.filter(target_company=actor.company)
        return Response(IntercompanyTransactionSerializer(txns, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = IntercompanyOrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = commands.create_intercompany_order(
            actor,
            target_company_public_id=data["target_company_public_id"],
            items=command_lines(data["items"]),
            transaction_date=data.get("transaction_date"),
            description=data["description"],
        )
        if not result.success:
            return _fail(result)
        return Response(IntercompanyTransactionSerializer(result.data).data, status=status.HTTP_201_CREATED)


class TransactionDetailView(APIView):
    """GET /api/intercompany/transactions/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "intercompany.view")
        txn = get_object_or_404(_involving(IntercompanyTransaction, actor.company), public_id=public_id)
        return Response(IntercompanyTransactionSerializer(txn).data)


class TransactionInvoiceView(APIView):
    """POST /api/intercompany/transactions/<public_id>/invoice/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = IntercompanyInvoiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.invoice_intercompany_transaction(
            actor,
            public_id,
            quantities=serializer.validated_data.get("quantities"),
            invoice_date=serializer.validated_data.get("invoice_date"),
        )
        if not result.success:
            return _fail(result)
        return Response(IntercompanyTransactionSerializer(result.data).data)


class TransactionSettleView(APIView):
    """POST /api/intercompany/transactions/<public_id>/settle/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = IntercompanySettleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.settle_intercompany_transaction(actor, public_id, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(IntercompanyTransactionSerializer(result.data).data)


class TransactionCancelView(APIView):
    """POST /api/intercompany/transactions/<public_id>/cancel/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        actor = resolve_actor(request)
        serializer = IntercompanyCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = commands.cancel_intercompany_transaction(actor, public_id, **serializer.validated_data)
        if not result.success:
            return _fail(result)
        return Response(IntercompanyTransactionSerializer(result.data).data)


class AdjustmentListCreateView(APIView):
    """
    GET /api/intercompany/adjustments/ -> ?reference=&transaction=
    POST /api/intercompany/adjustments/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "intercompany.view")
        adjustments = _involving(IntercompanyAdjustment, actor.company).select_related("transaction")

        params = request.query_params
        if params.get("reference"):
            adjustments = adjustments.filter(reference__icontains=params["reference"])
        if params.get("transaction"):
            adjustments = adjustments.filter(transaction__public_id=params["transaction"])
        return Response(IntercompanyAdjustmentSerializer(adjustments, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = IntercompanyAdjustmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if data.get("items"):
            data["items"] = command_lines(data["items"])

        result = commands.create_intercompany_adjustment(actor, **data)
        if not result.success:
            return _fail(result)
        return Response(IntercompanyAdjustmentSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AdjustmentDetailView(APIView):
    """GET /api/intercompany/adjustments/<public_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, public_id):
        actor = resolve_actor(request)
        require(actor, "intercompany.view")
        adjustment = get_object_or_404(
            _involving(IntercompanyAdjustment, actor.company).select_related("transaction"),
            public_id=public_id,
        )
        return Response(IntercompanyAdjustmentSerializer(adjustment).data)
