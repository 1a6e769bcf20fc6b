# intercompany/admin.py
"""
Django admin for the intercompany read models (view only).
"""

from django.contrib import admin

from accounting.admin import ReadOnlyModelAdmin
from .models import IntercompanyAdjustment, IntercompanyTransaction


@admin.register(IntercompanyTransaction)
class IntercompanyTransactionAdmin(ReadOnlyModelAdmin):
    list_display = [
        "reference", "source_company", "target_company", "transaction_date",
        "amount", "amount_invoiced", "amount_settled", "status", "payment_status",
    ]
    list_filter = ["status", "payment_status", "tenant"]
    search_fields = ["reference", "description"]


@admin.register(IntercompanyAdjustment)
class IntercompanyAdjustmentAdmin(ReadOnlyModelAdmin):
    list_display = ["reference", "source_company", "target_company", "adjustment_date", "amount", "status"]
    list_filter = ["tenant"]
    search_fields = ["reference", "reason"]
