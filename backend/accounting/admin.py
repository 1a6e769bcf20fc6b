# accounting/admin.py
"""
Django admin configuration for accounting models.

IMPORTANT: These are READ MODELS.
==============================
All accounting models are event-sourced read models. The admin interface
is for viewing only. All mutations MUST go through the command layer,
which emits events.

ReadOnlyModelAdmin and ReadOnlyInline are shared by the sales, purchases
and intercompany admins.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import Account, CompanySequence, JournalEntry, JournalLine


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """
    Base admin class for read-only models.

    Direct admin edits bypass the event system and corrupt data integrity.
    To modify these models, use the command layer.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def changeform_view(self, request, object_id=None, form_url="", extra_context=None):
        extra_context = extra_context or {}
        extra_context["show_save"] = False
        extra_context["show_save_and_continue"] = False
        extra_context["show_save_and_add_another"] = False
        extra_context["readonly_message"] = (
            "This is a read model. Use the API/command layer to make changes."
        )
        return super().changeform_view(request, object_id, form_url, extra_context)


class ReadOnlyInline(admin.TabularInline):
    """Base inline class for read-only models."""
    extra = 0

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class JournalLineInline(ReadOnlyInline):
    model = JournalLine
    readonly_fields = ["line_no", "account", "description", "debit", "credit"]
    fields = ["line_no", "account", "description", "debit", "credit"]


# =============================================================================
# Account Admin
# =============================================================================

@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    """Chart of Accounts (read-only)."""

    list_display = [
        "code", "name", "account_type", "normal_balance", "role",
        "status", "is_header", "parent", "company",
    ]
    list_filter = ["company", "account_type", "status", "is_header"]
    search_fields = ["code", "name", "role"]
    list_select_related = ["company", "parent"]
    ordering = ["company", "code"]

    fieldsets = (
        (None, {
            "fields": ("company", "code", "name"),
        }),
        ("Classification", {
            "fields": ("account_type", "normal_balance", "role", "status", "is_header"),
        }),
        ("Hierarchy", {
            "fields": ("parent", "description"),
        }),
        ("Timestamps", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    readonly_fields = [
        "company", "code", "name", "account_type", "normal_balance",
        "role", "status", "is_header", "parent", "description",
        "created_at", "updated_at",
    ]


# =============================================================================
# Journal Entry Admin
# =============================================================================

@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyModelAdmin):
    """Journal Entries (read-only)."""

    list_display = [
        "id", "entry_number", "date", "memo_truncated", "kind",
        "status_colored", "source_module", "source_document", "company",
    ]
    list_filter = ["company", "status", "kind", "source_module", "date"]
    search_fields = ["entry_number", "memo", "source_document"]
    date_hierarchy = "date"
    list_select_related = ["company", "posted_by", "created_by"]
    ordering = ["-date", "-id"]

    fieldsets = (
        (None, {
            "fields": ("company", "entry_number", "date", "period"),
        }),
        ("Content", {
            "fields": ("memo", "kind", "currency"),
        }),
        ("Status & Workflow", {
            "fields": ("status", "posted_at", "posted_by", "reversed_at", "reversed_by"),
        }),
        ("Source", {
            "fields": ("source_module", "source_document", "reverses_entry"),
        }),
        ("Audit", {
            "fields": ("created_at", "created_by", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    readonly_fields = [
        "company", "entry_number", "date", "period", "memo", "kind", "currency",
        "status", "posted_at", "posted_by", "reversed_at", "reversed_by",
        "source_module", "source_document", "reverses_entry",
        "created_at", "created_by", "updated_at",
    ]
    inlines = [JournalLineInline]

    def memo_truncated(self, obj):
        if len(obj.memo) > 50:
            return f"{obj.memo[:50]}..."
        return obj.memo
    memo_truncated.short_description = "Memo"

    def status_colored(self, obj):
        colors = {
            JournalEntry.Status.INCOMPLETE: "#999",
            JournalEntry.Status.DRAFT: "#007bff",
            JournalEntry.Status.POSTED: "#28a745",
            JournalEntry.Status.REVERSED: "#dc3545",
        }
        color = colors.get(obj.status, "#000")
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color,
            obj.get_status_display(),
        )
    status_colored.short_description = "Status"
    status_colored.admin_order_field = "status"


@admin.register(JournalLine)
class JournalLineAdmin(ReadOnlyModelAdmin):
    list_display = ["entry", "line_no", "account", "description", "debit", "credit"]
    list_filter = ["entry__status", "company", "account__account_type"]
    search_fields = ["description", "account__code", "account__name"]
    list_select_related = ["entry", "account"]
    ordering = ["entry", "line_no"]
    readonly_fields = ["entry", "company", "line_no", "account", "description", "debit", "credit"]


@admin.register(CompanySequence)
class CompanySequenceAdmin(ReadOnlyModelAdmin):
    list_display = ["company", "name", "next_value", "updated_at"]
    list_filter = ["company"]
    search_fields = ["name"]
