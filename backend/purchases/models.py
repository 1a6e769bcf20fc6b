# purchases/models.py
"""
Purchases sub-ledger READ MODELS.

Mirror of sales/models.py: purchases/commands.py emits events and
projections/purchases.py materializes them here. Products and payment
terms are the shared catalogue in sales.models.

Models:
- Vendor: trade party (related_company set for intercompany vendors)
- PurchaseOrder / PurchaseOrderLine: tracks billed quantity per line
- Bill / BillLine: payable documents
- Payment: cash paid against one bill
- DebitNote / DebitNoteLine / DebitNoteApplication
"""

from decimal import Decimal

from django.db import models

from accounting.trade import (
    AdjustmentNote,
    NoteApplication,
    Settlement,
    TradeDocument,
    TradeDocumentLine,
    TradeOrder,
    TradeOrderLine,
    TradeParty,
)


class Vendor(TradeParty):
    class Meta(TradeParty.Meta):
        pass


class PurchaseOrder(TradeOrder):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        OPEN = "OPEN", "Open"
        PARTIAL = "PARTIAL", "Partially Billed"
        BILLED = "BILLED", "Billed"
        CLOSED = "CLOSED", "Closed"
        CANCELLED = "CANCELLED", "Cancelled"

    BILLABLE_STATUSES = (Status.OPEN, Status.PARTIAL)

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="purchase_orders",
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)

    class Meta(TradeOrder.Meta):
        pass


class PurchaseOrderLine(TradeOrderLine):
    DOCUMENTED_FIELD = "billed_quantity"

    order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    billed_quantity = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    class Meta(TradeOrderLine.Meta):
        unique_together = ("order", "line_no")


class Bill(TradeDocument):
    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="bills",
    )
    vendor_invoice_number = models.CharField(max_length=100, blank=True, default="")

    class Meta(TradeDocument.Meta):
        pass

    @property
    def bill_date(self):
        return self.document_date


class BillLine(TradeDocumentLine):
    bill = models.ForeignKey(
        Bill,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    class Meta(TradeDocumentLine.Meta):
        unique_together = ("bill", "line_no")


class Payment(Settlement):
    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        related_name="payments",
    )

    class Meta(Settlement.Meta):
        pass


class DebitNote(AdjustmentNote):
    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name="debit_notes",
    )
    bill = models.ForeignKey(
        Bill,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="debit_notes",
    )

    class Meta(AdjustmentNote.Meta):
        pass


class DebitNoteLine(TradeDocumentLine):
    debit_note = models.ForeignKey(
        DebitNote,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    class Meta(TradeDocumentLine.Meta):
        unique_together = ("debit_note", "line_no")


class DebitNoteApplication(NoteApplication):
    debit_note = models.ForeignKey(
        DebitNote,
        on_delete=models.CASCADE,
        related_name="applications",
    )
    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        related_name="debit_applications",
    )

    class Meta(NoteApplication.Meta):
        pass
