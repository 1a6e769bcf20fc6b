# intercompany/serializers.py
"""
Serializers for the intercompany API.
"""

from rest_framework import serializers

from accounting.trade import PaymentMethod
from sales.serializers import MONEY, OrderLineInputSerializer
from .models import IntercompanyAdjustment, IntercompanyTransaction


class IntercompanyTransactionSerializer(serializers.ModelSerializer):
    source_company_public_id = serializers.UUIDField(source="source_company.public_id", read_only=True)
    source_company_name = serializers.CharField(source="source_company.name", read_only=True)
    target_company_public_id = serializers.UUIDField(source="target_company.public_id", read_only=True)
    target_company_name = serializers.CharField(source="target_company.name", read_only=True)
    outstanding = serializers.DecimalField(read_only=True, **MONEY)

    class Meta:
        model = IntercompanyTransaction
        fields = [
            "public_id", "reference", "transaction_date", "description",
            "source_company_public_id", "source_company_name",
            "target_company_public_id", "target_company_name",
            "amount", "amount_invoiced", "amount_settled", "amount_adjusted", "outstanding",
            "status", "payment_status",
            "sales_order_public_id", "purchase_order_public_id",
            "invoice_public_id", "bill_public_id",
            "cancelled_at", "cancel_reason", "created_at", "updated_at",
        ]
        read_only_fields = fields


class IntercompanyOrderCreateSerializer(serializers.Serializer):
    target_company_public_id = serializers.UUIDField()
    transaction_date = serializers.DateField(required=False)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    items = OrderLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required.")
        return value


class IntercompanyInvoiceSerializer(serializers.Serializer):
    invoice_date = serializers.DateField(required=False)
    quantities = serializers.DictField(
        child=serializers.DecimalField(min_value=0, max_digits=18, decimal_places=4),
        required=False,
        help_text="Order line_no -> quantity to invoice; omit for everything remaining.",
    )


class IntercompanySettleSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.BANK_TRANSFER)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    settlement_date = serializers.DateField(required=False)


class IntercompanyCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class IntercompanyAdjustmentSerializer(serializers.ModelSerializer):
    source_company_public_id = serializers.UUIDField(source="source_company.public_id", read_only=True)
    source_company_name = serializers.CharField(source="source_company.name", read_only=True)
    target_company_public_id = serializers.UUIDField(source="target_company.public_id", read_only=True)
    target_company_name = serializers.CharField(source="target_company.name", read_only=True)
    transaction_public_id = serializers.UUIDField(source="transaction.public_id", read_only=True, default=None)

    class Meta:
        model = IntercompanyAdjustment
        fields = [
            "public_id", "reference", "adjustment_date", "reason", "amount", "status",
            "source_company_public_id", "source_company_name",
            "target_company_public_id", "target_company_name",
            "transaction_public_id", "credit_note_public_id", "debit_note_public_id",
            "created_at",
        ]
        read_only_fields = fields


class IntercompanyAdjustmentCreateSerializer(serializers.Serializer):
    source_company_public_id = serializers.UUIDField(required=False, allow_null=True)
    target_company_public_id = serializers.UUIDField()
    amount = serializers.DecimalField(min_value=0, **MONEY)
    reason = serializers.CharField(max_length=200)
    reference = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    transaction_public_id = serializers.UUIDField(required=False, allow_null=True)
    adjustment_date = serializers.DateField(required=False)
    items = OrderLineInputSerializer(many=True, required=False)
