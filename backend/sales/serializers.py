# sales/serializers.py
"""
Serializers for the sales API.

Output serializers are read-only views of the read models; input
serializers only parse and shape request data for the command layer.
The line and void input serializers are reused by purchases.
"""

from rest_framework import serializers

from accounting.trade import PaymentMethod
from .models import (
    CreditNote,
    CreditNoteApplication,
    CreditNoteLine,
    Customer,
    Invoice,
    InvoiceLine,
    PaymentTerm,
    Product,
    Receipt,
    SalesOrder,
    SalesOrderLine,
)


MONEY = {"max_digits": 18, "decimal_places": 2}
QUANTITY = {"max_digits": 18, "decimal_places": 4}


# =============================================================================
# Shared input serializers
# =============================================================================

class OrderLineInputSerializer(serializers.Serializer):
    product_public_id = serializers.UUIDField(required=False, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.DecimalField(min_value=0, **QUANTITY)
    unit_price = serializers.DecimalField(required=False, allow_null=True, min_value=0, **MONEY)
    tax_rate = serializers.DecimalField(
        max_digits=6, decimal_places=2, required=False, min_value=0, max_value=100,
    )

    def validate(self, attrs):
        if not attrs.get("product_public_id") and attrs.get("unit_price") is None:
            raise serializers.ValidationError("unit_price is required for lines without a product.")
        return attrs


class DocumentLineInputSerializer(OrderLineInputSerializer):
    account_public_id = serializers.UUIDField(required=False, allow_null=True)


class VoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class NoteApplySerializer(serializers.Serializer):
    document_public_id = serializers.UUIDField()
    amount = serializers.DecimalField(required=False, allow_null=True, **MONEY)


class SettlementInputMixin(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)
    date = serializers.DateField(required=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.BANK_TRANSFER)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    cash_account_public_id = serializers.UUIDField(required=False, allow_null=True)


def command_lines(lines):
    """Validated line dicts -> command line dicts without unset keys."""
    return [{key: value for key, value in line.items() if value is not None} for line in lines]


# =============================================================================
# Catalogue
# =============================================================================

class PaymentTermSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTerm
        fields = ["public_id", "code", "name", "days_due", "is_active", "created_at"]
        read_only_fields = fields


class PaymentTermCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=30)
    name = serializers.CharField(max_length=100)
    days_due = serializers.IntegerField(min_value=0, default=0)


class ProductSerializer(serializers.ModelSerializer):
    revenue_account_public_id = serializers.UUIDField(source="revenue_account.public_id", read_only=True, default=None)
    expense_account_public_id = serializers.UUIDField(source="expense_account.public_id", read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            "public_id", "code", "name", "description", "unit_price", "cost_price",
            "revenue_account_public_id", "expense_account_public_id",
            "is_active", "created_at", "updated_at",
        ]
        read_only_fields = fields


class ProductCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    unit_price = serializers.DecimalField(min_value=0, default=0, **MONEY)
    cost_price = serializers.DecimalField(min_value=0, default=0, **MONEY)
    revenue_account_public_id = serializers.UUIDField(required=False, allow_null=True)
    expense_account_public_id = serializers.UUIDField(required=False, allow_null=True)


class ProductUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    unit_price = serializers.DecimalField(min_value=0, required=False, **MONEY)
    cost_price = serializers.DecimalField(min_value=0, required=False, **MONEY)
    is_active = serializers.BooleanField(required=False)
    revenue_account_public_id = serializers.UUIDField(required=False, allow_null=True)
    expense_account_public_id = serializers.UUIDField(required=False, allow_null=True)


# =============================================================================
# Parties
# =============================================================================

class PartySerializer(serializers.ModelSerializer):
    """Output shape shared by customers and vendors."""

    payment_term_public_id = serializers.UUIDField(source="payment_term.public_id", read_only=True, default=None)
    related_company_public_id = serializers.UUIDField(source="related_company.public_id", read_only=True, default=None)
    is_intercompany = serializers.BooleanField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            "public_id", "code", "name", "email", "phone", "address", "tax_id",
            "payment_term_public_id", "related_company_public_id", "is_intercompany",
            "is_active", "created_at", "updated_at",
        ]
        read_only_fields = fields


class CustomerSerializer(PartySerializer):
    class Meta(PartySerializer.Meta):
        model = Customer


class PartyCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=30)
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    address = serializers.CharField(required=False, allow_blank=True, default="")
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    payment_term_public_id = serializers.UUIDField(required=False, allow_null=True)
    related_company_public_id = serializers.UUIDField(required=False, allow_null=True)


class PartyUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)
    payment_term_public_id = serializers.UUIDField(required=False, allow_null=True)


# =============================================================================
# Sales Orders
# =============================================================================

class SalesOrderLineSerializer(serializers.ModelSerializer):
    product_public_id = serializers.UUIDField(source="product.public_id", read_only=True, default=None)
    remaining_quantity = serializers.DecimalField(read_only=True, **QUANTITY)

    class Meta:
        model = SalesOrderLine
        fields = [
            "line_no", "product_public_id", "description", "quantity", "unit_price",
            "tax_rate", "line_total", "tax_amount", "invoiced_quantity", "remaining_quantity",
        ]
        read_only_fields = fields


class SalesOrderSerializer(serializers.ModelSerializer):
    customer_public_id = serializers.UUIDField(source="customer.public_id", read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    lines = SalesOrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            "public_id", "number", "customer_public_id", "customer_name", "order_date",
            "expected_date", "status", "currency", "subtotal", "tax_amount", "total",
            "reference", "notes", "is_intercompany", "intercompany_transaction_public_id",
            "lines", "created_at", "updated_at",
        ]
        read_only_fields = fields


class SalesOrderCreateSerializer(serializers.Serializer):
    customer_public_id = serializers.UUIDField()
    order_date = serializers.DateField(required=False)
    expected_date = serializers.DateField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    confirm = serializers.BooleanField(default=False)
    lines = OrderLineInputSerializer(many=True)


# =============================================================================
# Invoices
# =============================================================================

class DocumentLineSerializer(serializers.ModelSerializer):
    product_public_id = serializers.UUIDField(source="product.public_id", read_only=True, default=None)
    account_public_id = serializers.UUIDField(source="account.public_id", read_only=True)
    account_code = serializers.CharField(source="account.code", read_only=True)

    class Meta:
        model = InvoiceLine
        fields = [
            "line_no", "product_public_id", "description", "quantity", "unit_price",
            "tax_rate", "line_total", "tax_amount", "account_public_id", "account_code",
            "order_line_no",
        ]
        read_only_fields = fields


class InvoiceLineSerializer(DocumentLineSerializer):
    class Meta(DocumentLineSerializer.Meta):
        model = InvoiceLine


class InvoiceSerializer(serializers.ModelSerializer):
    customer_public_id = serializers.UUIDField(source="customer.public_id", read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    sales_order_public_id = serializers.UUIDField(source="sales_order.public_id", read_only=True, default=None)
    lines = InvoiceLineSerializer(many=True, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "public_id", "number", "customer_public_id", "customer_name",
            "sales_order_public_id", "document_date", "due_date", "status", "currency",
            "subtotal", "tax_amount", "total", "amount_paid", "amount_credited",
            "balance_due", "is_overdue", "journal_entry_public_id",
            "reversal_entry_public_id", "is_intercompany",
            "intercompany_transaction_public_id", "reference", "notes",
            "posted_at", "voided_at", "void_reason", "lines", "created_at",
        ]
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    customer_public_id = serializers.UUIDField(required=False, allow_null=True)
    sales_order_public_id = serializers.UUIDField(required=False, allow_null=True)
    quantities = serializers.DictField(
        child=serializers.DecimalField(min_value=0, **QUANTITY), required=False,
    )
    invoice_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    lines = DocumentLineInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if not attrs.get("sales_order_public_id"):
            if not attrs.get("customer_public_id"):
                raise serializers.ValidationError("customer_public_id or sales_order_public_id is required.")
            if not attrs.get("lines"):
                raise serializers.ValidationError("lines are required when invoicing without an order.")
        return attrs


# =============================================================================
# Receipts
# =============================================================================

class ReceiptSerializer(serializers.ModelSerializer):
    customer_public_id = serializers.UUIDField(source="customer.public_id", read_only=True)
    invoice_public_id = serializers.UUIDField(source="invoice.public_id", read_only=True)
    invoice_number = serializers.CharField(source="invoice.number", read_only=True)
    cash_account_code = serializers.CharField(source="cash_account.code", read_only=True)

    class Meta:
        model = Receipt
        fields = [
            "public_id", "number", "customer_public_id", "invoice_public_id",
            "invoice_number", "settlement_date", "amount", "payment_method",
            "reference", "is_partial", "status", "cash_account_code",
            "journal_entry_public_id", "reversal_entry_public_id",
            "is_intercompany", "voided_at", "created_at",
        ]
        read_only_fields = fields


class ReceiptCreateSerializer(SettlementInputMixin):
    invoice_public_id = serializers.UUIDField()


# =============================================================================
# Credit Notes
# =============================================================================

class CreditNoteLineSerializer(DocumentLineSerializer):
    class Meta(DocumentLineSerializer.Meta):
        model = CreditNoteLine


class CreditNoteApplicationSerializer(serializers.ModelSerializer):
    invoice_public_id = serializers.UUIDField(source="invoice.public_id", read_only=True)
    invoice_number = serializers.CharField(source="invoice.number", read_only=True)

    class Meta:
        model = CreditNoteApplication
        fields = ["invoice_public_id", "invoice_number", "amount", "applied_at"]
        read_only_fields = fields


class CreditNoteSerializer(serializers.ModelSerializer):
    customer_public_id = serializers.UUIDField(source="customer.public_id", read_only=True)
    invoice_public_id = serializers.UUIDField(source="invoice.public_id", read_only=True, default=None)
    unapplied_amount = serializers.DecimalField(read_only=True, **MONEY)
    lines = CreditNoteLineSerializer(many=True, read_only=True)
    applications = CreditNoteApplicationSerializer(many=True, read_only=True)

    class Meta:
        model = CreditNote
        fields = [
            "public_id", "number", "customer_public_id", "invoice_public_id",
            "note_date", "reason", "currency", "subtotal", "tax_amount", "total",
            "amount_applied", "unapplied_amount", "status", "journal_entry_public_id",
            "reversal_entry_public_id", "is_intercompany", "reference",
            "issued_at", "cancelled_at", "lines", "applications", "created_at",
        ]
        read_only_fields = fields


class CreditNoteCreateSerializer(serializers.Serializer):
    customer_public_id = serializers.UUIDField()
    reason = serializers.CharField(max_length=255)
    note_date = serializers.DateField(required=False)
    invoice_public_id = serializers.UUIDField(required=False, allow_null=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    lines = DocumentLineInputSerializer(many=True)
