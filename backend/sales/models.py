# sales/models.py
"""
Sales sub-ledger READ MODELS.

Like the ledger tables these are projections: sales/commands.py emits
events and projections/sales.py materializes them here. Never save these
rows directly.

Models:
- PaymentTerm, Product: catalogue shared with purchases
- Customer: trade party (related_company set for intercompany customers)
- SalesOrder / SalesOrderLine: tracks invoiced quantity per line
- Invoice / InvoiceLine: receivable documents
- Receipt: cash received against one invoice
- CreditNote / CreditNoteLine / CreditNoteApplication
"""

from decimal import Decimal
import uuid

from django.db import models

from accounts.models import Company
from accounting.models import Account, AccountingReadModel
from accounting.trade import (
    ZERO,
    AdjustmentNote,
    NoteApplication,
    Settlement,
    TradeDocument,
    TradeDocumentLine,
    TradeOrder,
    TradeOrderLine,
    TradeParty,
)


class PaymentTerm(AccountingReadModel):
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="payment_terms",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=30)
    name = models.CharField(max_length=100)
    days_due = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["days_due", "code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_payment_term_code_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.days_due} days)"


class Product(AccountingReadModel):
    """
    Product or service sold and bought.

    revenue_account / expense_account override the company's default
    posting accounts for lines carrying this product.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="products",
    )
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    unit_price = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    cost_price = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    revenue_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    expense_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_product_code_per_company",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"


class Customer(TradeParty):
    class Meta(TradeParty.Meta):
        pass


class SalesOrder(TradeOrder):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        OPEN = "OPEN", "Open"
        PARTIAL = "PARTIAL", "Partially Invoiced"
        INVOICED = "INVOICED", "Invoiced"
        CLOSED = "CLOSED", "Closed"
        CANCELLED = "CANCELLED", "Cancelled"

    INVOICEABLE_STATUSES = (Status.OPEN, Status.PARTIAL)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="sales_orders",
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)

    class Meta(TradeOrder.Meta):
        pass


class SalesOrderLine(TradeOrderLine):
    DOCUMENTED_FIELD = "invoiced_quantity"

    order = models.ForeignKey(
        SalesOrder,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    invoiced_quantity = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    class Meta(TradeOrderLine.Meta):
        unique_together = ("order", "line_no")


class Invoice(TradeDocument):
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    sales_order = models.ForeignKey(
        SalesOrder,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    class Meta(TradeDocument.Meta):
        pass

    @property
    def invoice_date(self):
        return self.document_date


class InvoiceLine(TradeDocumentLine):
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    class Meta(TradeDocumentLine.Meta):
        unique_together = ("invoice", "line_no")


class Receipt(Settlement):
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="receipts",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        related_name="receipts",
    )

    class Meta(Settlement.Meta):
        pass


class CreditNote(AdjustmentNote):
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="credit_notes",
    )
    invoice = models.ForeignKey(
        Invoice,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="credit_notes",
    )

    class Meta(AdjustmentNote.Meta):
        pass


class CreditNoteLine(TradeDocumentLine):
    credit_note = models.ForeignKey(
        CreditNote,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    class Meta(TradeDocumentLine.Meta):
        unique_together = ("credit_note", "line_no")


class CreditNoteApplication(NoteApplication):
    credit_note = models.ForeignKey(
        CreditNote,
        on_delete=models.CASCADE,
        related_name="applications",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        related_name="credit_applications",
    )

    class Meta(NoteApplication.Meta):
        pass
