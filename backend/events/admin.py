# events/admin.py
"""
Events are read-only in admin (they're immutable).
Bookmarks can be paused, resumed and reset for debugging projections.
"""

import json

from django.contrib import admin
from django.utils.html import format_html

from .models import BusinessEvent, EventBookmark


@admin.register(BusinessEvent)
class BusinessEventAdmin(admin.ModelAdmin):
    list_display = [
        "company_sequence", "event_type", "aggregate_display",
        "caused_by_user", "origin", "occurred_at", "company",
    ]
    list_filter = ["company", "event_type", "aggregate_type", "origin"]
    search_fields = ["event_type", "aggregate_id", "caused_by_user__email", "idempotency_key"]
    date_hierarchy = "occurred_at"
    list_select_related = ["company", "caused_by_user"]
    ordering = ["-occurred_at"]
    readonly_fields = [
        "id", "company", "event_type", "aggregate_type", "aggregate_id",
        "sequence", "company_sequence", "idempotency_key", "data_formatted",
        "metadata", "caused_by_user", "caused_by_event", "origin", "occurred_at",
    ]
    exclude = ["data"]

    @admin.display(description="Aggregate")
    def aggregate_display(self, obj):
        return f"{obj.aggregate_type}#{obj.aggregate_id}"

    @admin.display(description="Data")
    def data_formatted(self, obj):
        return format_html(
            "<pre style='white-space: pre-wrap; max-width: 600px;'>{}</pre>",
            json.dumps(obj.data, indent=2, default=str),
        )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EventBookmark)
class EventBookmarkAdmin(admin.ModelAdmin):
    list_display = [
        "consumer_name", "company", "last_event",
        "last_processed_at", "is_paused", "error_count",
    ]
    list_filter = ["company", "is_paused", "consumer_name"]
    search_fields = ["consumer_name"]
    readonly_fields = ["last_processed_at", "error_count", "last_error", "created_at", "updated_at"]
    actions = ["pause_consumers", "resume_consumers", "reset_errors"]

    @admin.action(description="Pause selected consumers")
    def pause_consumers(self, request, queryset):
        updated = queryset.update(is_paused=True)
        self.message_user(request, f"Paused {updated} consumer(s).")

    @admin.action(description="Resume selected consumers")
    def resume_consumers(self, request, queryset):
        updated = queryset.update(is_paused=False)
        self.message_user(request, f"Resumed {updated} consumer(s).")

    @admin.action(description="Reset error counts")
    def reset_errors(self, request, queryset):
        updated = queryset.update(error_count=0, last_error="")
        self.message_user(request, f"Reset {updated} consumer(s).")
