# projections/admin.py
"""Django admin for projection models (view only)."""

from django.contrib import admin

from .models import AccountBalance, FiscalPeriod, ProjectionAppliedEvent


class ProjectionManagedAdmin(admin.ModelAdmin):
    """Rows are written by projections only."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AccountBalance)
class AccountBalanceAdmin(ProjectionManagedAdmin):
    list_display = [
        "account_code", "account_name", "balance",
        "debit_total", "credit_total", "entry_count", "company",
    ]
    list_filter = ["company", "account__account_type"]
    search_fields = ["account__code", "account__name"]
    list_select_related = ["company", "account"]
    ordering = ["company", "account__code"]

    @admin.display(description="Code", ordering="account__code")
    def account_code(self, obj):
        return obj.account.code

    @admin.display(description="Name")
    def account_name(self, obj):
        return obj.account.name


@admin.register(FiscalPeriod)
class FiscalPeriodAdmin(ProjectionManagedAdmin):
    list_display = ["fiscal_year", "period", "start_date", "end_date", "status", "company"]
    list_filter = ["company", "fiscal_year", "status"]
    ordering = ["company", "fiscal_year", "period"]


@admin.register(ProjectionAppliedEvent)
class ProjectionAppliedEventAdmin(ProjectionManagedAdmin):
    list_display = ["projection_name", "event", "applied_at", "company"]
    list_filter = ["company", "projection_name"]
    list_select_related = ["company", "event"]
    ordering = ["-applied_at"]
