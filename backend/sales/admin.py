# sales/admin.py
"""
Django admin for the sales read models (view only).
"""

from django.contrib import admin

from accounting.admin import ReadOnlyInline, ReadOnlyModelAdmin
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


class SalesOrderLineInline(ReadOnlyInline):
    model = SalesOrderLine
    fields = ["line_no", "product", "description", "quantity", "unit_price", "tax_rate", "invoiced_quantity"]
    readonly_fields = fields


class InvoiceLineInline(ReadOnlyInline):
    model = InvoiceLine
    fields = ["line_no", "product", "description", "quantity", "unit_price", "tax_rate", "line_total", "account"]
    readonly_fields = fields


class CreditNoteLineInline(ReadOnlyInline):
    model = CreditNoteLine
    fields = ["line_no", "description", "quantity", "unit_price", "tax_rate", "line_total", "account"]
    readonly_fields = fields


class CreditNoteApplicationInline(ReadOnlyInline):
    model = CreditNoteApplication
    fields = ["invoice", "amount", "applied_at"]
    readonly_fields = fields


@admin.register(PaymentTerm)
class PaymentTermAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "days_due", "is_active", "company"]
    list_filter = ["company"]


@admin.register(Product)
class ProductAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "unit_price", "cost_price", "is_active", "company"]
    list_filter = ["company", "is_active"]
    search_fields = ["code", "name"]


@admin.register(Customer)
class CustomerAdmin(ReadOnlyModelAdmin):
    list_display = ["code", "name", "email", "payment_term", "related_company", "is_active", "company"]
    list_filter = ["company", "is_active"]
    search_fields = ["code", "name", "email", "tax_id"]


@admin.register(SalesOrder)
class SalesOrderAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "customer", "order_date", "status", "total", "is_intercompany", "company"]
    list_filter = ["company", "status", "is_intercompany"]
    search_fields = ["number", "reference", "customer__name"]
    date_hierarchy = "order_date"
    inlines = [SalesOrderLineInline]


@admin.register(Invoice)
class InvoiceAdmin(ReadOnlyModelAdmin):
    list_display = [
        "number", "customer", "document_date", "due_date", "status",
        "total", "amount_paid", "amount_credited", "balance_due", "company",
    ]
    list_filter = ["company", "status", "is_intercompany"]
    search_fields = ["number", "reference", "customer__name"]
    date_hierarchy = "document_date"
    inlines = [InvoiceLineInline]


@admin.register(Receipt)
class ReceiptAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "customer", "invoice", "settlement_date", "amount", "payment_method", "status"]
    list_filter = ["company", "status", "payment_method"]
    search_fields = ["number", "reference", "invoice__number"]


@admin.register(CreditNote)
class CreditNoteAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "customer", "invoice", "note_date", "total", "amount_applied", "status"]
    list_filter = ["company", "status"]
    search_fields = ["number", "reason", "customer__name"]
    inlines = [CreditNoteLineInline, CreditNoteApplicationInline]
