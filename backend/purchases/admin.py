# purchases/admin.py
"""
Django admin for the purchases read models (view only).
"""

from django.contrib import admin

from accounting.admin import ReadOnlyInline, ReadOnlyModelAdmin
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


class PurchaseOrderLineInline(ReadOnlyInline):
    model = PurchaseOrderLine
    fields = ["line_no", "product", "description", "quantity", "unit_price", "tax_rate", "billed_quantity"]
    readonly_fields = fields


class BillLineInline(ReadOnlyInline):
    model = BillLine
    fields = ["line_no", "product", "description", "quantity", "unit_price", "tax_rate", "line_total", "account"]
    readonly_fields = fields


class DebitNoteLineInline(ReadOnlyInline):
    model = DebitNoteLine
    fields = ["line_no", "description", "quantity", "unit_price", "tax_rate", "line_total", "account"]
    readonly_fields = fields


class DebitNoteApplicationInline(ReadOnlyInline):
    model = DebitNoteApplication
    fields = ["bill", "amount", "applied_at"]
    readonly_fields = fields


@admin.register(Vendor)
class VendorAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "email", "payment_term", "related_company", "is_active", "company"]
    list_filter = ["company", "is_active"]
    search_fields = ["code", "name", "email", "tax_id"]


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "vendor", "order_date", "status", "total", "is_intercompany", "company"]
    list_filter = ["company", "status", "is_intercompany"]
    search_fields = ["number", "reference", "vendor__name"]
    date_hierarchy = "order_date"
    inlines = [PurchaseOrderLineInline]


@admin.register(Bill)
class BillAdmin(ReadOnlyModelAdmin):
    list_display = [
        "number", "vendor", "vendor_invoice_number", "document_date", "due_date",
        "status", "total", "amount_paid", "amount_credited", "balance_due", "company",
    ]
    list_filter = ["company", "status", "is_intercompany"]
    search_fields = ["number", "vendor_invoice_number", "reference", "vendor__name"]
    date_hierarchy = "document_date"
    inlines = [BillLineInline]


@admin.register(Payment)
class PaymentAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "vendor", "bill", "settlement_date", "amount", "payment_method", "status"]
    list_filter = ["company", "status", "payment_method"]
    search_fields = ["number", "reference", "bill__number"]


@admin.register(DebitNote)
class DebitNoteAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "vendor", "bill", "note_date", "total", "amount_applied", "status"]
    list_filter = ["company", "status"]
    search_fields = ["number", "reason", "vendor__name"]
    inlines = [DebitNoteLineInline, DebitNoteApplicationInline]
