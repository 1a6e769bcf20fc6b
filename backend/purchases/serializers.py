# purchases/serializers.py
"""
Serializers for the purchases API. Line, void, apply and party input
serializers are shared with sales.
"""

from rest_framework import serializers

from sales.serializers import (
    MONEY,
    QUANTITY,
    DocumentLineInputSerializer,
    DocumentLineSerializer,
    OrderLineInputSerializer,
    PartySerializer,
    SettlementInputMixin,
)
from .models import (
    Bill,
    BillLine,
    DebitNote,
    DebitNoteApplication,
    DebitNoteLine,
    Payment,
    PurchaseOrder,
    PurchaseOrderLine,
    Vendor,
)


class VendorSerializer(PartySerializer):
    class Meta(PartySerializer.Meta):
        model = Vendor


# =============================================================================
# Purchase Orders
# =============================================================================

class PurchaseOrderLineSerializer(serializers.ModelSerializer):
    product_public_id = serializers.UUIDField(source="product.public_id", read_only=True, default=None)
    remaining_quantity = serializers.DecimalField(read_only=True, **QUANTITY)

    class Meta:
        model = PurchaseOrderLine
        fields = [
            "line_no", "product_public_id", "description", "quantity", "unit_price",
            "tax_rate", "line_total", "tax_amount", "billed_quantity", "remaining_quantity",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    vendor_public_id = serializers.UUIDField(source="vendor.public_id", read_only=True)
    vendor_name = serializers.CharField(source="vendor.name", read_only=True)
    lines = PurchaseOrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "public_id", "number", "vendor_public_id", "vendor_name", "order_date",
            "expected_date", "status", "currency", "subtotal", "tax_amount", "total",
            "reference", "notes", "is_intercompany", "intercompany_transaction_public_id",
            "lines", "created_at", "updated_at",
        ]
        read_only_fields = fields


class PurchaseOrderCreateSerializer(serializers.Serializer):
    vendor_public_id = serializers.UUIDField()
    order_date = serializers.DateField(required=False)
    expected_date = serializers.DateField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    confirm = serializers.BooleanField(default=False)
    lines = OrderLineInputSerializer(many=True)


# =============================================================================
# Bills
# =============================================================================

class BillLineSerializer(DocumentLineSerializer):
    class Meta(DocumentLineSerializer.Meta):
        model = BillLine


class BillSerializer(serializers.ModelSerializer):
    vendor_public_id = serializers.UUIDField(source="vendor.public_id", read_only=True)
    vendor_name = serializers.CharField(source="vendor.name", read_only=True)
    purchase_order_public_id = serializers.UUIDField(source="purchase_order.public_id", read_only=True, default=None)
    lines = BillLineSerializer(many=True, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Bill
        fields = [
            "public_id", "number", "vendor_public_id", "vendor_name", "vendor_invoice_number",
            "purchase_order_public_id", "document_date", "due_date", "status", "currency",
            "subtotal", "tax_amount", "total", "amount_paid", "amount_credited",
            "balance_due", "is_overdue", "journal_entry_public_id",
            "reversal_entry_public_id", "is_intercompany",
            "intercompany_transaction_public_id", "reference", "notes",
            "posted_at", "voided_at", "void_reason", "lines", "created_at",
        ]
        read_only_fields = fields


class BillCreateSerializer(serializers.Serializer):
    vendor_public_id = serializers.UUIDField(required=False, allow_null=True)
    purchase_order_public_id = serializers.UUIDField(required=False, allow_null=True)
    quantities = serializers.DictField(
        child=serializers.DecimalField(min_value=0, **QUANTITY), required=False,
    )
    bill_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    vendor_invoice_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    lines = DocumentLineInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if not attrs.get("purchase_order_public_id"):
            if not attrs.get("vendor_public_id"):
                raise serializers.ValidationError("vendor_public_id or purchase_order_public_id is required.")
            if not attrs.get("lines"):
                raise serializers.ValidationError("lines are required when billing without an order.")
        return attrs


# =============================================================================
# Payments
# =============================================================================

class PaymentSerializer(serializers.ModelSerializer):
    vendor_public_id = serializers.UUIDField(source="vendor.public_id", read_only=True)
    bill_public_id = serializers.UUIDField(source="bill.public_id", read_only=True)
    bill_number = serializers.CharField(source="bill.number", read_only=True)
    cash_account_code = serializers.CharField(source="cash_account.code", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "public_id", "number", "vendor_public_id", "bill_public_id", "bill_number",
            "settlement_date", "amount", "payment_method", "reference", "is_partial",
            "status", "cash_account_code", "journal_entry_public_id",
            "reversal_entry_public_id", "is_intercompany", "voided_at", "created_at",
        ]
        read_only_fields = fields


class PaymentCreateSerializer(SettlementInputMixin):
    bill_public_id = serializers.UUIDField()


# =============================================================================
# Debit Notes
# =============================================================================

class DebitNoteLineSerializer(DocumentLineSerializer):
    class Meta(DocumentLineSerializer.Meta):
        model = DebitNoteLine


class DebitNoteApplicationSerializer(serializers.ModelSerializer):
    bill_public_id = serializers.UUIDField(source="bill.public_id", read_only=True)
    bill_number = serializers.CharField(source="bill.number", read_only=True)

    class Meta:
        model = DebitNoteApplication
        fields = ["bill_public_id", "bill_number", "amount", "applied_at"]
        read_only_fields = fields


class DebitNoteSerializer(serializers.ModelSerializer):
    vendor_public_id = serializers.UUIDField(source="vendor.public_id", read_only=True)
    bill_public_id = serializers.UUIDField(source="bill.public_id", read_only=True, default=None)
    unapplied_amount = serializers.DecimalField(read_only=True, **MONEY)
    lines = DebitNoteLineSerializer(many=True, read_only=True)
    applications = DebitNoteApplicationSerializer(many=True, read_only=True)

    class Meta:
        model = DebitNote
        fields = [
            "public_id", "number", "vendor_public_id", "bill_public_id",
            "note_date", "reason", "currency", "subtotal", "tax_amount", "total",
            "amount_applied", "unapplied_amount", "status", "journal_entry_public_id",
            "reversal_entry_public_id", "is_intercompany", "reference",
            "issued_at", "cancelled_at", "lines", "applications", "created_at",
        ]
        read_only_fields = fields


class DebitNoteCreateSerializer(serializers.Serializer):
    vendor_public_id = serializers.UUIDField()
    reason = serializers.CharField(max_length=255)
    note_date = serializers.DateField(required=False)
    bill_public_id = serializers.UUIDField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    lines = DocumentLineInputSerializer(many=True)
